"""
Pydantic schemas for API request/response validation.
"""

from typing import Any, Optional
from enum import Enum
from pydantic import BaseModel, Field


# ==================== RESPONSE HELPERS ====================


def success_response(data: Any = None, message: str = None) -> dict:
    """Create a standardized success response dict."""
    response = {"success": True}
    if data is not None:
        response["data"] = data
    if message:
        response["message"] = message
    return response


# ==================== IMPORT SESSION MODELS ====================


class DataSourceName(str, Enum):
    """Data source names accepted by the API."""

    metatrader = "metatrader"
    ninjatrader = "ninjatrader"
    tradovate = "tradovate"


class ImportModeName(str, Enum):
    append = "append"
    replace = "replace"


class SessionCreate(BaseModel):
    """Create an import session, optionally selecting the source right away."""

    data_source: Optional[DataSourceName] = None


class SourceSelect(BaseModel):
    data_source: DataSourceName


class MappingUpdate(BaseModel):
    """Field -> header overrides. An empty header clears the field."""

    mapping: dict[str, str] = Field(default_factory=dict)


class OptionsUpdate(BaseModel):
    broker_timezone: Optional[str] = None
    mode: Optional[ImportModeName] = None
    account_id: Optional[str] = None
