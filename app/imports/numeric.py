"""
Broker-specific number dialects.

MetaTrader  - dot decimal, optional space/comma thousands ("1 234.50");
              money cells also take currency and parentheses ("($ 12.50)")
NinjaTrader - comma decimal with optional currency and sign ("-$ 14,00", "($ 12,34)")
Tradovate   - dot decimal money with parentheses negatives ("$1,255.00", "$(115.00)")
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from app.imports.models import DataSource

_SPACES_RE = re.compile(r"\s")
_CURRENCY_RE = re.compile(r"R\$|[$€£]")


def _to_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _split_sign(text: str) -> tuple[bool, str]:
    """Strip parentheses and leading minus (before or after the currency marker)."""
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]
    text = _CURRENCY_RE.sub("", text)
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]
    if text.startswith("-"):
        negative = True
        text = text[1:]
    return negative, text


def parse_dot_decimal(value: Any, money: bool = False) -> Optional[float]:
    """
    Parse a dot-decimal number, dropping comma and space thousands separators.

    With ``money`` set, currency symbols and parentheses negatives are
    accepted as well ("($ 12.50)", "-€3.40").
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return _to_float(str(value))
    text = _SPACES_RE.sub("", str(value))
    if not text:
        return None
    if not money:
        return _to_float(text.replace(",", ""))

    negative, text = _split_sign(text)
    number = _to_float(text.replace(",", ""))
    if number is None:
        return None
    return -abs(number) if negative else number


def parse_ninjatrader_number(value: Any) -> Optional[float]:
    """
    Parse NinjaTrader money or price cells.

    When both separators appear the last one is the decimal separator;
    a lone comma is a decimal comma.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return _to_float(str(value))

    text = _SPACES_RE.sub("", str(value))
    if not text:
        return None
    negative, text = _split_sign(text)

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")

    number = _to_float(text)
    if number is None:
        return None
    return -abs(number) if negative else number


def parse_tradovate_number(value: Any) -> Optional[float]:
    """Parse Tradovate money ("$(115.00)") or plain price ("25501.00") cells."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return _to_float(str(value))

    text = _SPACES_RE.sub("", str(value))
    if not text:
        return None
    negative, text = _split_sign(text)
    number = _to_float(text.replace(",", ""))
    if number is None:
        return None
    return -abs(number) if negative else number


def parse_number(value: Any, data_source: Optional[DataSource], money: bool = False) -> Optional[float]:
    """
    Parse a numeric cell using the data source's dialect.

    Args:
        value: Raw cell (string, number or None)
        data_source: Selects the dialect; None means dot-decimal
        money: The cell is a profit/commission/swap amount, so currency
            symbols and parentheses negatives are accepted for every source

    Returns:
        The number, or None when unparseable
    """
    if data_source is DataSource.NINJATRADER:
        return parse_ninjatrader_number(value)
    if data_source is DataSource.TRADOVATE:
        return parse_tradovate_number(value)
    return parse_dot_decimal(value, money=money)
