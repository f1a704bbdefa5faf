"""
Import session state machine.

source_selection -> upload -> mapping -> importing -> complete

The only backward transitions are an explicit reset (back to
source_selection, all state cleared), a failed upload (stays on upload) and a
failed run (back to mapping with the error message). A failed run is not
rolled back: trades saved before the failure stay saved.
"""

from __future__ import annotations

import enum
import logging
import uuid
from typing import Any, Optional

from app.config import settings
from app.imports.detect import parse_upload
from app.imports.errors import FormatError, InvalidStepError
from app.imports.executor import ImportExecutor, ImportRequest
from app.imports.mapping import apply_auto_mapping
from app.imports.models import ColumnMapping, DataSource, ImportMode, ImportStats, ParsedFile
from app.imports.timezones import BROKER_TIMEZONES, validate_timezone

logger = logging.getLogger(__name__)


class ImportStep(enum.Enum):
    SOURCE_SELECTION = "source_selection"
    UPLOAD = "upload"
    MAPPING = "mapping"
    IMPORTING = "importing"
    COMPLETE = "complete"


class ImportSession:
    """State for one user-driven import, from source selection to statistics."""

    def __init__(self, session_id: Optional[str] = None, user_id: str = ""):
        self.id = session_id or str(uuid.uuid4())
        self.user_id = user_id
        self.reset()

    def reset(self) -> None:
        """Return to source selection and clear everything."""
        self.step = ImportStep.SOURCE_SELECTION
        self.data_source: Optional[DataSource] = None
        self.filename: Optional[str] = None
        self.parsed: Optional[ParsedFile] = None
        self.mapping = ColumnMapping()
        self.broker_timezone: Optional[str] = None
        self.mode = ImportMode(settings.default_import_mode)
        self.account_id: Optional[str] = None
        self.stats: Optional[ImportStats] = None
        self.error: Optional[str] = None

    def _require(self, *steps: ImportStep) -> None:
        if self.step not in steps:
            expected = " or ".join(s.value for s in steps)
            raise InvalidStepError(
                f"Operation not allowed in step '{self.step.value}' (expected {expected})",
                step=self.step.value,
            )

    @property
    def headers(self) -> list[str]:
        return list(self.parsed.headers) if self.parsed else []

    # ==================== TRANSITIONS ====================

    def select_source(self, data_source: DataSource) -> None:
        """Pick the broker dialect. Fixed for the rest of the session."""
        self._require(ImportStep.SOURCE_SELECTION)
        self.data_source = data_source
        self.broker_timezone = settings.default_broker_timezone(data_source.value)
        self.step = ImportStep.UPLOAD

    def upload(self, filename: str, content: bytes, content_type: Optional[str] = None) -> ParsedFile:
        """
        Parse an uploaded file and propose a column mapping.

        A new file may replace the current one while still on the mapping step.

        Raises:
            FormatError: The file was rejected; the session stays on upload
        """
        self._require(ImportStep.UPLOAD, ImportStep.MAPPING)
        try:
            parsed = parse_upload(self.data_source, filename, content, content_type)
        except FormatError as e:
            self.step = ImportStep.UPLOAD
            self.parsed = None
            self.error = str(e)
            logger.warning(f"Upload rejected ({filename}): {e}")
            raise

        self.filename = filename
        self.parsed = parsed
        self.mapping = apply_auto_mapping(ColumnMapping(), self.data_source, parsed.headers)
        self.error = None
        self.step = ImportStep.MAPPING
        return parsed

    def set_mapping(self, field_name: str, header: str) -> None:
        """Manually assign a discovered header to a field ("" clears it)."""
        self._require(ImportStep.MAPPING)
        self.mapping.set(field_name, header, self.headers)

    def configure(
        self,
        broker_timezone: Optional[str] = None,
        mode: Optional[ImportMode] = None,
        account_id: Optional[str] = None,
    ) -> None:
        """Set run options. Timezones outside BROKER_TIMEZONES raise ValueError."""
        self._require(ImportStep.UPLOAD, ImportStep.MAPPING)
        if broker_timezone is not None:
            validate_timezone(broker_timezone)
            if broker_timezone not in BROKER_TIMEZONES:
                raise ValueError(f"Unsupported broker timezone: {broker_timezone}")
            self.broker_timezone = broker_timezone
        if mode is not None:
            self.mode = mode
        if account_id is not None:
            self.account_id = account_id or None

    def run(self, executor: ImportExecutor) -> ImportStats:
        """
        Execute the import.

        Any exception sends the session back to mapping with the message
        recorded, then propagates.
        """
        self._require(ImportStep.MAPPING)
        self.step = ImportStep.IMPORTING
        self.error = None

        request = ImportRequest(
            rows=self.parsed.rows,
            mapping=self.mapping,
            data_source=self.data_source,
            source_timezone=self.broker_timezone,
            account_id=self.account_id,
            mode=self.mode,
            user_id=self.user_id,
            target_timezone=settings.target_timezone,
        )
        try:
            stats = executor.run(request)
        except Exception as e:
            self.step = ImportStep.MAPPING
            self.error = str(e)
            logger.error(f"Import session {self.id} failed: {e}")
            raise

        self.stats = stats
        self.step = ImportStep.COMPLETE
        return stats

    # ==================== VIEW ====================

    def preview(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        if not self.parsed:
            return []
        limit = settings.preview_rows if limit is None else limit
        return [
            {key: (value.isoformat() if hasattr(value, "isoformat") else value) for key, value in row.items()}
            for row in self.parsed.rows[:limit]
        ]

    def snapshot(self) -> dict[str, Any]:
        """JSON-serializable view of the session."""
        return {
            "id": self.id,
            "step": self.step.value,
            "data_source": self.data_source.value if self.data_source else None,
            "filename": self.filename,
            "headers": self.headers,
            "row_count": len(self.parsed.rows) if self.parsed else 0,
            "total_net_profit": self.parsed.total_net_profit if self.parsed else None,
            "mapping": self.mapping.to_dict(),
            "missing_required": self.mapping.missing_required() if self.parsed else [],
            "broker_timezone": self.broker_timezone,
            "mode": self.mode.value,
            "account_id": self.account_id,
            "preview": self.preview(),
            "stats": self.stats.to_dict() if self.stats else None,
            "error": self.error,
        }
