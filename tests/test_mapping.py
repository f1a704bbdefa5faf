"""Tests for column auto-mapping."""

import pytest


class TestAutoMapping:
    """Tests for the per-source mapping rules."""

    def test_metatrader_exact_headers(self):
        from app.imports.mapping import default_mapping
        from app.imports.models import DataSource
        from app.imports.parsers.metatrader_html import HEADERS

        mapping = default_mapping(DataSource.METATRADER, HEADERS)

        assert mapping.entry_date == "Entry Time"
        assert mapping.symbol == "Symbol"
        assert mapping.direction == "Type"
        assert mapping.volume == "Volume"
        assert mapping.entry_price == "Entry Price"
        assert mapping.exit_date == "Exit Time"
        assert mapping.exit_price == "Exit Price"
        assert mapping.profit == "Profit"
        assert mapping.commission == "Commission"
        assert mapping.swap == "Swap"
        assert mapping.stop_loss == "S/L"
        assert mapping.take_profit == "T/P"
        assert mapping.missing_required() == []

    def test_metatrader_keyword_fallback(self):
        """Unfamiliar headers are matched by keyword without reusing a header."""
        from app.imports.mapping import default_mapping
        from app.imports.models import DataSource

        headers = ["Open Date", "Instrument Name", "Trade Side", "Lot Size", "Open Price", "Net Profit"]
        mapping = default_mapping(DataSource.METATRADER, headers)

        assert mapping.entry_date == "Open Date"
        assert mapping.symbol == "Instrument Name"
        assert mapping.direction == "Trade Side"
        assert mapping.volume == "Lot Size"
        assert mapping.entry_price == "Open Price"
        assert mapping.profit == "Net Profit"

    def test_header_never_claimed_twice(self):
        from app.imports.mapping import default_mapping
        from app.imports.models import DataSource

        mapping = default_mapping(DataSource.METATRADER, ["Time", "Symbol", "Type", "Volume", "Price"])
        values = [v for v in mapping.to_dict().values() if v]

        assert len(values) == len(set(values))

    def test_case_insensitive_exact(self):
        from app.imports.mapping import default_mapping
        from app.imports.models import DataSource

        mapping = default_mapping(DataSource.METATRADER, ["entry time", "SYMBOL", "type", "volume", "entry price"])

        assert mapping.entry_date == "entry time"
        assert mapping.symbol == "SYMBOL"
        assert mapping.missing_required() == []

    def test_ninjatrader_fixed_grid(self, ninjatrader_csv):
        from app.imports.mapping import default_mapping
        from app.imports.models import DataSource
        from app.imports.parsers import ninjatrader

        parsed = ninjatrader.parse(ninjatrader_csv())
        mapping = default_mapping(DataSource.NINJATRADER, parsed.headers)

        assert mapping.entry_date == "Hora entrada"
        assert mapping.symbol == "Ativo"
        assert mapping.direction == "Pos mercado."
        assert mapping.volume == "Qtd"
        assert mapping.entry_price == "Preço entrada"
        assert mapping.exit_date == "Hora saída"
        assert mapping.exit_price == "Preço saída"
        assert mapping.profit == "Profit"
        assert mapping.commission == "Corretagem"
        assert mapping.swap == ""

    def test_tradovate_synthesized_columns(self, tradovate_csv):
        from app.imports.mapping import default_mapping
        from app.imports.models import DataSource
        from app.imports.parsers import tradovate

        parsed = tradovate.parse_csv(tradovate_csv())
        mapping = default_mapping(DataSource.TRADOVATE, parsed.headers)

        assert mapping.entry_date == "Entry Time"
        assert mapping.direction == "Direction"
        assert mapping.entry_price == "Entry Price"
        assert mapping.volume == "qty"
        assert mapping.profit == "pnl"
        assert mapping.missing_required() == []

    def test_manual_choices_kept(self):
        """Auto-mapping only fills empty fields."""
        from app.imports.mapping import apply_auto_mapping
        from app.imports.models import ColumnMapping, DataSource
        from app.imports.parsers.metatrader_html import HEADERS

        current = ColumnMapping(symbol="Ticket")
        mapping = apply_auto_mapping(current, DataSource.METATRADER, HEADERS)

        assert mapping.symbol == "Ticket"
        assert mapping.entry_date == "Entry Time"
        assert current.entry_date == ""

    def test_merge_mapping_fills_only_empty_fields(self):
        from app.imports.mapping import merge_mapping
        from app.imports.models import ColumnMapping

        current = ColumnMapping(symbol="Ticket", swap="")
        proposed = ColumnMapping(symbol="Symbol", entry_date="Entry Time", swap="Swap")

        merged = merge_mapping(current, proposed)

        assert merged.symbol == "Ticket"
        assert merged.entry_date == "Entry Time"
        assert merged.swap == "Swap"
        assert merged.volume == ""
        assert current.swap == ""


class TestColumnMapping:
    """Tests for manual mapping overrides."""

    def test_set_unknown_field(self):
        from app.imports.models import ColumnMapping

        with pytest.raises(KeyError):
            ColumnMapping().set("ticker", "Symbol")

    def test_set_header_not_in_file(self):
        from app.imports.models import ColumnMapping

        with pytest.raises(ValueError):
            ColumnMapping().set("symbol", "Ticker", headers=["Symbol"])

    def test_clear_field(self):
        from app.imports.models import ColumnMapping

        mapping = ColumnMapping(symbol="Symbol")
        mapping.set("symbol", "", headers=["Symbol"])

        assert mapping.symbol == ""
        assert "symbol" in mapping.missing_required()
