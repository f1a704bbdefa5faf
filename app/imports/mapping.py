"""
Column auto-mapping.

Each data source has a declarative table of field rules. One generic matcher
evaluates them in two passes: exact header names for every field first, then
keyword (substring) matches for the fields still unmapped. A header claimed
by one field is never reused by another.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from app.imports.models import ColumnMapping, DataSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldRule:
    """Exact header names (checked case-sensitively, then case-insensitively) and keywords."""

    exact: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()


METATRADER_RULES = {
    "entry_date": FieldRule(
        exact=("Entry Time", "Open Time", "Time", "Data Abertura", "Hora Entrada"),
        keywords=("time", "date", "hora", "data", "horário"),
    ),
    "symbol": FieldRule(
        exact=("Symbol", "Ativo", "Instrumento"),
        keywords=("symbol", "ativo", "par", "instrument"),
    ),
    "direction": FieldRule(
        exact=("Type", "Tipo", "Direção", "Direcao"),
        keywords=("type", "tipo", "direç", "direc", "side"),
    ),
    "volume": FieldRule(
        exact=("Volume", "Size", "Lote", "Qtd", "Quantidade"),
        keywords=("volume", "lot", "size", "qtd", "quant"),
    ),
    "entry_price": FieldRule(
        exact=("Entry Price", "Open Price", "Price", "Preço Entrada", "Preco Entrada"),
        keywords=("price", "preço", "preco"),
    ),
    "exit_date": FieldRule(
        exact=("Exit Time", "Close Time", "Data Fechamento", "Hora Saída", "Hora Saida"),
        keywords=("close time", "exit time", "saída", "saida", "fechamento"),
    ),
    "exit_price": FieldRule(
        exact=("Exit Price", "Close Price", "Preço Saída", "Preco Saida"),
        keywords=("exit price", "close price", "preço saída", "preco saida"),
    ),
    "profit": FieldRule(
        exact=("Profit", "Lucro", "P/L", "PnL"),
        keywords=("profit", "lucro", "pnl"),
    ),
    "commission": FieldRule(
        exact=("Commission", "Comission", "Comissao", "Comissão", "Fee", "Fees", "Corretagem", "Cost"),
        keywords=("commission", "comiss", "fee", "corretagem"),
    ),
    "swap": FieldRule(
        exact=("Swap", "Swaps", "Rollover", "Taxes", "Taxa", "Taxas"),
        keywords=("swap", "rollover"),
    ),
    "stop_loss": FieldRule(exact=("S/L", "S / L", "SL", "Stop Loss", "StopLoss"), keywords=("stop",)),
    "take_profit": FieldRule(exact=("T/P", "T / P", "TP", "Take Profit", "TakeProfit"), keywords=("take",)),
}

# Fixed grid layout; no heuristics
NINJATRADER_RULES = {
    "entry_date": FieldRule(exact=("Hora entrada", "Entry time")),
    "symbol": FieldRule(exact=("Ativo", "Instrument")),
    "direction": FieldRule(exact=("Pos mercado.", "Market pos.")),
    "volume": FieldRule(exact=("Qtd", "Qty")),
    "entry_price": FieldRule(exact=("Preço entrada", "Entry price")),
    "exit_date": FieldRule(exact=("Hora saída", "Exit time")),
    "exit_price": FieldRule(exact=("Preço saída", "Exit price")),
    "profit": FieldRule(exact=("Profit",)),
    "commission": FieldRule(exact=("Corretagem", "Commission")),
}

# Direction-aware columns are added by the Tradovate parser
TRADOVATE_RULES = {
    "entry_date": FieldRule(exact=("Entry Time",)),
    "symbol": FieldRule(exact=("symbol",)),
    "direction": FieldRule(exact=("Direction",)),
    "volume": FieldRule(exact=("qty",)),
    "entry_price": FieldRule(exact=("Entry Price",)),
    "exit_date": FieldRule(exact=("Exit Time",)),
    "exit_price": FieldRule(exact=("Exit Price",)),
    "profit": FieldRule(exact=("pnl",)),
}

MAPPING_RULES = {
    DataSource.METATRADER: METATRADER_RULES,
    DataSource.NINJATRADER: NINJATRADER_RULES,
    DataSource.TRADOVATE: TRADOVATE_RULES,
}


def _find_exact(candidates: tuple[str, ...], headers: list[str], claimed: set[str]) -> Optional[str]:
    available = [h for h in headers if h not in claimed]
    for candidate in candidates:
        if candidate in available:
            return candidate
    lowered = {h.lower(): h for h in reversed(available)}
    for candidate in candidates:
        if candidate.lower() in lowered:
            return lowered[candidate.lower()]
    return None


def _find_keyword(keywords: tuple[str, ...], headers: list[str], claimed: set[str]) -> Optional[str]:
    for keyword in keywords:
        for header in headers:
            if header not in claimed and keyword in header.lower():
                return header
    return None


def match_headers(rules: dict[str, FieldRule], headers: list[str]) -> dict[str, str]:
    """Evaluate a rule table against headers. Returns field -> header for matched fields."""
    matched: dict[str, str] = {}
    claimed: set[str] = set()

    for field_name, rule in rules.items():
        header = _find_exact(rule.exact, headers, claimed)
        if header:
            matched[field_name] = header
            claimed.add(header)

    for field_name, rule in rules.items():
        if field_name in matched or not rule.keywords:
            continue
        header = _find_keyword(rule.keywords, headers, claimed)
        if header:
            matched[field_name] = header
            claimed.add(header)

    return matched


def default_mapping(data_source: Optional[DataSource], headers: list[str]) -> ColumnMapping:
    """Propose a column mapping for a data source's discovered headers."""
    mapping = ColumnMapping()
    if data_source is None:
        return mapping
    for field_name, header in match_headers(MAPPING_RULES[data_source], headers).items():
        mapping.set(field_name, header)
    logger.debug(f"Auto-mapping for {data_source.value}: {mapping.to_dict()}")
    return mapping


def merge_mapping(current: ColumnMapping, proposed: ColumnMapping) -> ColumnMapping:
    """Fill only the fields of ``current`` that are still empty; set fields are never overwritten."""
    updates = {
        name: proposed.get(name)
        for name in ColumnMapping.field_names()
        if not current.get(name) and proposed.get(name)
    }
    return replace(current, **updates)


def apply_auto_mapping(
    current: ColumnMapping, data_source: Optional[DataSource], headers: list[str]
) -> ColumnMapping:
    """Fill unset fields of ``current`` from the default mapping; manual choices are kept."""
    return merge_mapping(current, default_mapping(data_source, headers))
