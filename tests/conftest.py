"""Pytest configuration and fixtures."""

import io
import os
import tempfile

import pytest


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment with a temp database and local storage."""
    with tempfile.TemporaryDirectory() as tmpdir:
        os.environ["DATABASE_URL"] = f"sqlite:///{tmpdir}/test_journal.db"
        # Never talk to Supabase from tests
        for key in ("FORCE_SUPABASE", "ENVIRONMENT", "RENDER"):
            os.environ.pop(key, None)

        yield


# ==================== FAKE STORAGE ====================


class FakeTradeStore:
    """In-memory trade store with switchable failure modes."""

    def __init__(self):
        self.trades = []
        self.fail_delete = False
        self.reject_symbols = set()
        self.raise_on_save = None
        self.save_calls = 0

    def save_trade(self, trade) -> bool:
        self.save_calls += 1
        if self.raise_on_save is not None:
            raise self.raise_on_save
        if trade.symbol in self.reject_symbols:
            return False
        self.trades.append(trade)
        return True

    def list_trades_lite(self, account_id):
        return [t.lite() for t in self.trades if t.account_id == account_id]

    def delete_all_trades(self, account_id) -> bool:
        if self.fail_delete:
            return False
        self.trades = [t for t in self.trades if t.account_id != account_id]
        return True


@pytest.fixture
def fake_store():
    return FakeTradeStore()


# ==================== FILE BUILDERS ====================

MT_HEADER = [
    "Time", "Position", "Symbol", "Type", "Volume", "Price", "S / L", "T / P",
    "Time", "Price", "Commission", "Swap", "Profit",
]

MT_ROWS = [
    ["2025.01.15 17:30:00", 1001, "EURUSD.cash", "buy", 0.5, 1.0301, 1.0251, 1.0401,
     "2025.01.15 19:00:00", 1.0351, -3.5, -1.2, 250.0],
    ["2025.01.16 09:15", 1002, "XAUUSD", "sell", 1.0, 2650.5, 0, 0,
     "2025.01.16 11:45", 2655.5, -7.0, 0.0, -500.0],
]


def build_metatrader_xlsx(rows=None, header=None, marker="Positions", total_net_profit=None) -> bytes:
    """MetaTrader 5 "Trade History Report" workbook."""
    import openpyxl

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Trade History Report"])
    ws.append(["Name:", "Demo Account"])
    ws.append([marker])
    ws.append(header or MT_HEADER)
    for row in MT_ROWS if rows is None else rows:
        ws.append(row)
    ws.append(["Orders"])
    ws.append(["Open Time", "Order", "Symbol", "Type", "Volume"])
    ws.append(["2025.01.17 10:00:00", 2001, "GBPUSD", "buy", 1.0])
    if total_net_profit is not None:
        ws.append([])
        ws.append(["Total Net Profit:", None, None, total_net_profit])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _html_row(cells) -> str:
    return "<tr>" + "".join(f"<td>{cell}</td>" for cell in cells) + "</tr>"


def build_metatrader_html(rows=None, encoding="utf-16", total_net_profit="-257.20") -> bytes:
    """MetaTrader terminal "Report" HTML export."""
    rows = rows if rows is not None else [
        ["2025.01.15 17:30:00", "1001", "EURUSD", "buy", "0.50", "1.03010", "1.02510",
         "1.04010", "2025.01.15 19:00:00", "1.03510", "-3.50", "-1.20", "250.00"],
        ["2025.01.16 09:15:00", "1002", "XAUUSD", "sell", "1.00", "2 650.50", "0.00",
         "0.00", "2025.01.16 11:45:00", "2 655.50", "-7.00", "0.00", "-500.00"],
        ["2025.01.16 12:00:00", "1003", "XAUUSD", "balance", "", "", "", "", "", "", "", "", "1000.00"],
    ]
    body = [
        "<html><head><title>Report</title></head><body><table>",
        "<tr><td colspan=13><b>Positions</b></td></tr>",
        _html_row(MT_HEADER),
        *[_html_row(row) for row in rows],
        "<tr><td colspan=13><b>Orders</b></td></tr>",
        _html_row(["2025.01.17 10:00:00", "2001", "GBPUSD", "buy", "1.00", "1.25", "0", "0",
                   "2025.01.17 11:00:00", "1.26", "0", "0", "100.00"]),
        f"<tr><td>Total Net Profit:</td><td><b>{total_net_profit}</b></td></tr>",
        "</table></body></html>",
    ]
    text = "\n".join(body)
    if encoding == "utf-16":
        return text.encode("utf-16")
    return text.encode(encoding)


NT_HEADER = (
    "Núm. Neg.;Ativo;Conta;Estratégia;Pos mercado.;Qtd;Preço entrada;Preço saída;"
    "Hora entrada;Hora saída;Nome da entrada;Nome da saída;Profit;Corretagem;"
)


def build_ninjatrader_csv(lines=None) -> bytes:
    """NinjaTrader trade grid export (semicolon, comma decimals)."""
    lines = lines if lines is not None else [
        "1;MNQ 03-25;Sim101;;Comprada;2;21500,25;21510,75;15/01/2025 10:30:00;15/01/2025 10:45:00;"
        "Entry;Exit;$ 42,00;$ 1,24;",
        "2;MNQ 03-25;Sim101;;Vendida;1;21520,00;21530,00;15/01/2025 11:00:00;15/01/2025 11:20:00;"
        "Entry;Stop;-$ 20,00;$ 0,62;",
        ";;;;;;;;;;;;$ 22,00;$ 1,86;",
    ]
    return ("\n".join([NT_HEADER, *lines]) + "\n").encode("utf-8")


TRADOVATE_HEADER = (
    "symbol,_priceFormat,_priceFormatType,_tickSize,buyFillId,sellFillId,qty,buyPrice,"
    "sellPrice,pnl,boughtTimestamp,soldTimestamp,duration"
)


def build_tradovate_csv(lines=None, header=None) -> bytes:
    """Tradovate Performance CSV export."""
    header = header or TRADOVATE_HEADER
    lines = lines if lines is not None else [
        'NQZ5,-2,0,0.25,1,2,1,25501.00,25511.00,$200.00,12/01/2025 09:35:10,12/01/2025 09:40:00,4min 50sec',
        'NQZ5,-2,0,0.25,3,4,1,25480.00,25485.75,"$(115.00)",12/01/2025 10:05:30,12/01/2025 10:01:00,4min 30sec',
    ]
    return ("\n".join([header, *lines]) + "\n").encode("utf-8")


TRADOVATE_PDF_LINES = [
    "Performance Report",
    "TRADES",
    "Symbol Qty Buy Price Buy Time Duration Sell Time Sell Price P&L",
    "NQZ5 1 25501.00 12/01/2025 09:35:10 4min 50sec 12/01/2025 09:40:00 25511.00 $200.00",
    "NQZ5 1 25480.00 12/01/2025 10:05:30 4min 30sec 12/01/2025 10:01:00 25485.75 $(115.00)",
]


def build_tradovate_pdf(lines=None) -> bytes:
    """Single-page PDF with the Performance report TRADES table as text."""
    import fitz

    doc = fitz.open()
    page = doc.new_page()
    y = 72
    for line in TRADOVATE_PDF_LINES if lines is None else lines:
        page.insert_text((36, y), line, fontsize=8)
        y += 14
    content = doc.tobytes()
    doc.close()
    return content


@pytest.fixture
def metatrader_xlsx():
    return build_metatrader_xlsx


@pytest.fixture
def metatrader_html():
    return build_metatrader_html


@pytest.fixture
def ninjatrader_csv():
    return build_ninjatrader_csv


@pytest.fixture
def tradovate_csv():
    return build_tradovate_csv


@pytest.fixture
def tradovate_pdf():
    return build_tradovate_pdf
