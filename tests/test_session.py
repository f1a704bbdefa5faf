"""Tests for the import session state machine."""

import pytest


def _session_on_mapping(fake_xlsx):
    from app.imports.models import DataSource
    from app.imports.session import ImportSession

    session = ImportSession(user_id="user-1")
    session.select_source(DataSource.METATRADER)
    session.upload("report.xlsx", fake_xlsx())
    return session


class TestTransitions:
    """Tests for the forward path through the steps."""

    def test_new_session_starts_at_source_selection(self):
        from app.imports.session import ImportSession, ImportStep

        session = ImportSession()

        assert session.step is ImportStep.SOURCE_SELECTION
        assert session.id
        assert session.snapshot()["mapping"]["symbol"] == ""

    def test_select_source_sets_default_timezone(self):
        from app.imports.models import DataSource
        from app.imports.session import ImportSession, ImportStep

        session = ImportSession()
        session.select_source(DataSource.NINJATRADER)

        assert session.step is ImportStep.UPLOAD
        assert session.broker_timezone == "America/Sao_Paulo"

    def test_upload_proposes_mapping(self, metatrader_xlsx):
        from app.imports.session import ImportStep

        session = _session_on_mapping(metatrader_xlsx)
        snapshot = session.snapshot()

        assert session.step is ImportStep.MAPPING
        assert snapshot["row_count"] == 2
        assert snapshot["mapping"]["entry_date"] == "Entry Time"
        assert snapshot["missing_required"] == []
        assert snapshot["filename"] == "report.xlsx"
        assert len(snapshot["preview"]) == 2

    def test_full_run(self, metatrader_xlsx, fake_store):
        from app.imports.executor import ImportExecutor
        from app.imports.session import ImportStep

        session = _session_on_mapping(metatrader_xlsx)
        session.configure(account_id="acct-1")
        stats = session.run(ImportExecutor(fake_store))

        assert session.step is ImportStep.COMPLETE
        assert stats.success == 2
        assert session.snapshot()["stats"] == {"total": 2, "success": 2, "skipped": 0, "failed": 0}
        assert {t.user_id for t in fake_store.trades} == {"user-1"}

    def test_reupload_on_mapping_replaces_file(self, metatrader_xlsx):
        from tests.conftest import MT_ROWS

        session = _session_on_mapping(metatrader_xlsx)
        session.set_mapping("symbol", "Position")
        session.upload("again.xlsx", metatrader_xlsx(rows=MT_ROWS[:1]))

        assert session.filename == "again.xlsx"
        assert session.snapshot()["row_count"] == 1
        assert session.mapping.symbol == "Symbol"


class TestFailures:
    """Tests for error paths and backward transitions."""

    def test_rejected_upload_stays_on_upload(self):
        from app.imports.errors import FormatError
        from app.imports.models import DataSource
        from app.imports.session import ImportSession, ImportStep

        session = ImportSession()
        session.select_source(DataSource.METATRADER)

        with pytest.raises(FormatError):
            session.upload("history.csv", b"a,b,c\n")

        assert session.step is ImportStep.UPLOAD
        assert "CSV" in session.error
        assert session.parsed is None

    def test_run_failure_returns_to_mapping(self, metatrader_xlsx, fake_store):
        from app.imports.errors import PreconditionError
        from app.imports.executor import ImportExecutor
        from app.imports.session import ImportStep

        session = _session_on_mapping(metatrader_xlsx)

        with pytest.raises(PreconditionError):
            session.run(ImportExecutor(fake_store))

        assert session.step is ImportStep.MAPPING
        assert "account" in session.error

    def test_storage_exception_returns_to_mapping(self, metatrader_xlsx, fake_store):
        from app.imports.executor import ImportExecutor
        from app.imports.session import ImportStep

        fake_store.raise_on_save = RuntimeError("database is locked")
        session = _session_on_mapping(metatrader_xlsx)
        session.configure(account_id="acct-1")

        with pytest.raises(RuntimeError):
            session.run(ImportExecutor(fake_store))

        assert session.step is ImportStep.MAPPING
        assert session.error == "database is locked"

    def test_out_of_order_calls(self, metatrader_xlsx, fake_store):
        from app.imports.errors import InvalidStepError
        from app.imports.executor import ImportExecutor
        from app.imports.models import DataSource
        from app.imports.session import ImportSession

        session = ImportSession()
        with pytest.raises(InvalidStepError):
            session.upload("report.xlsx", metatrader_xlsx())
        with pytest.raises(InvalidStepError):
            session.run(ImportExecutor(fake_store))

        session.select_source(DataSource.METATRADER)
        with pytest.raises(InvalidStepError) as exc:
            session.select_source(DataSource.TRADOVATE)
        assert exc.value.step == "upload"

    def test_configure_rejects_unknown_timezone(self, metatrader_xlsx):
        session = _session_on_mapping(metatrader_xlsx)

        with pytest.raises(ValueError):
            session.configure(broker_timezone="Europe/Atlantis")
        assert session.broker_timezone == "Europe/Helsinki"

    def test_configure_rejects_unlisted_timezone(self, metatrader_xlsx):
        """Valid IANA zones outside the broker list are refused."""
        session = _session_on_mapping(metatrader_xlsx)

        with pytest.raises(ValueError, match="Unsupported broker timezone"):
            session.configure(broker_timezone="Australia/Sydney")
        assert session.broker_timezone == "Europe/Helsinki"

        session.configure(broker_timezone="Asia/Tokyo")
        assert session.broker_timezone == "Asia/Tokyo"

    def test_reset_clears_everything(self, metatrader_xlsx):
        from app.imports.session import ImportStep

        session = _session_on_mapping(metatrader_xlsx)
        session.configure(account_id="acct-1")
        session.reset()

        snapshot = session.snapshot()
        assert session.step is ImportStep.SOURCE_SELECTION
        assert snapshot["data_source"] is None
        assert snapshot["row_count"] == 0
        assert snapshot["account_id"] is None
