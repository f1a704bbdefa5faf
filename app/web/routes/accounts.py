"""
Account API routes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.db.stores import AccountStore
from app.web.dependencies import get_account_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["accounts"])


@router.get("/accounts")
async def list_accounts(user_id: Optional[str] = None, store: AccountStore = Depends(get_account_store)):
    """Destination accounts for imports."""
    accounts = await asyncio.to_thread(store.list_accounts, user_id)
    return JSONResponse(
        {
            "accounts": [
                {"id": account.id, "name": account.name, "currency": account.currency}
                for account in accounts
            ]
        }
    )
