"""
Import wizard API routes.

One import session per wizard run:
source selection -> upload -> mapping/options -> run -> stats
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from app.config import settings
from app.db.stores import TradeStore
from app.imports.detect import ACCEPTED_EXTENSIONS
from app.imports.errors import FormatError, InvalidStepError, PreconditionError
from app.imports.executor import ImportExecutor
from app.imports.models import DataSource, ImportMode
from app.imports.session import ImportSession
from app.imports.timezones import BROKER_TIMEZONES
from app.web.dependencies import (
    create_import_session,
    discard_import_session,
    get_import_session,
    get_trade_store,
)
from app.web.schemas import MappingUpdate, OptionsUpdate, SessionCreate, SourceSelect
from app.web.utils import read_report_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/import", tags=["imports"])


def _error(message: str, status_code: int, session: Optional[ImportSession] = None) -> JSONResponse:
    body = {"error": message}
    if session is not None:
        body["session"] = session.snapshot()
    return JSONResponse(body, status_code=status_code)


# ==================== REFERENCE DATA ====================


@router.get("/sources")
async def list_sources():
    """Supported data sources with accepted extensions and default broker timezone."""
    return JSONResponse(
        {
            "sources": [
                {
                    "value": source.value,
                    "label": source.label,
                    "extensions": list(ACCEPTED_EXTENSIONS[source]),
                    "default_timezone": settings.default_broker_timezone(source.value),
                }
                for source in DataSource
            ]
        }
    )


@router.get("/timezones")
async def list_timezones():
    return JSONResponse(
        {"timezones": [{"value": value, "label": label} for value, label in BROKER_TIMEZONES.items()]}
    )


# ==================== SESSIONS ====================


@router.post("/sessions")
async def create_session(payload: Optional[SessionCreate] = None):
    """Start an import wizard, optionally with the source already chosen."""
    session = create_import_session()
    if payload and payload.data_source:
        session.select_source(DataSource(payload.data_source.value))
    return JSONResponse(session.snapshot(), status_code=201)


@router.get("/sessions/{session_id}")
async def get_session_state(session: ImportSession = Depends(get_import_session)):
    return JSONResponse(session.snapshot())


@router.delete("/sessions/{session_id}")
async def delete_session(session: ImportSession = Depends(get_import_session)):
    discard_import_session(session.id)
    return JSONResponse({"message": f"Deleted import session {session.id}"})


@router.post("/sessions/{session_id}/source")
async def select_source(payload: SourceSelect, session: ImportSession = Depends(get_import_session)):
    try:
        session.select_source(DataSource(payload.data_source.value))
    except InvalidStepError as e:
        return _error(str(e), 409, session)
    return JSONResponse(session.snapshot())


@router.post("/sessions/{session_id}/upload")
async def upload_file(
    file: UploadFile = File(...),
    session: ImportSession = Depends(get_import_session),
):
    """Upload the broker report; parsing runs off the event loop."""
    try:
        filename, content = await read_report_upload(file, settings.max_upload_bytes)
    except HTTPException as e:
        return _error(e.detail, e.status_code, session)

    try:
        await asyncio.to_thread(session.upload, filename, content, file.content_type)
    except FormatError as e:
        return _error(str(e), 400, session)
    except InvalidStepError as e:
        return _error(str(e), 409, session)

    logger.info(f"Session {session.id}: parsed {filename} ({len(session.parsed.rows)} rows)")
    return JSONResponse(session.snapshot())


@router.patch("/sessions/{session_id}/mapping")
async def update_mapping(payload: MappingUpdate, session: ImportSession = Depends(get_import_session)):
    """Manual mapping overrides, applied in order."""
    for field_name, header in payload.mapping.items():
        try:
            session.set_mapping(field_name, header)
        except InvalidStepError as e:
            return _error(str(e), 409, session)
        except KeyError:
            return _error(f"Unknown mapping field '{field_name}'", 400, session)
        except ValueError as e:
            return _error(str(e), 400, session)
    return JSONResponse(session.snapshot())


@router.patch("/sessions/{session_id}/options")
async def update_options(payload: OptionsUpdate, session: ImportSession = Depends(get_import_session)):
    try:
        session.configure(
            broker_timezone=payload.broker_timezone,
            mode=ImportMode(payload.mode.value) if payload.mode else None,
            account_id=payload.account_id,
        )
    except InvalidStepError as e:
        return _error(str(e), 409, session)
    except ValueError as e:
        return _error(str(e), 400, session)
    return JSONResponse(session.snapshot())


@router.post("/sessions/{session_id}/run")
async def run_import(
    session: ImportSession = Depends(get_import_session),
    store: TradeStore = Depends(get_trade_store),
):
    """Execute the import (non-blocking) and return the statistics."""
    executor = ImportExecutor(store)
    try:
        stats = await asyncio.to_thread(session.run, executor)
    except (InvalidStepError, PreconditionError) as e:
        return _error(str(e), 409, session)
    except Exception as e:
        logger.error(f"Import error: {e}")
        return _error(str(e), 500, session)

    return JSONResponse({"stats": stats.to_dict(), "session": session.snapshot()})


@router.post("/sessions/{session_id}/reset")
async def reset_session(session: ImportSession = Depends(get_import_session)):
    session.reset()
    return JSONResponse(session.snapshot())
