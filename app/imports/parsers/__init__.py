"""Broker report parsers. Each turns raw file bytes into a ParsedFile."""

from app.imports.parsers import metatrader_html, metatrader_xlsx, ninjatrader, tradovate

__all__ = ["metatrader_html", "metatrader_xlsx", "ninjatrader", "tradovate"]
