"""Byte decoding shared by the text-based broker parsers."""

from __future__ import annotations

import codecs

from app.imports.errors import FormatError


def decode_report(content: bytes) -> str:
    """
    Decode a broker report.

    UTF-16 LE/BE by byte-order mark, then UTF-8 (BOM tolerant), then the
    Windows-1252 single-byte codepage many MetaTrader terminals write.
    Bytes that Windows-1252 leaves undefined fall back to Latin-1, which
    maps every byte.

    Raises:
        FormatError: Empty content or a UTF-16 report with a broken body
    """
    if not content:
        raise FormatError("File is empty")

    try:
        if content.startswith(codecs.BOM_UTF16_LE):
            return content[len(codecs.BOM_UTF16_LE):].decode("utf-16-le")
        if content.startswith(codecs.BOM_UTF16_BE):
            return content[len(codecs.BOM_UTF16_BE):].decode("utf-16-be")
    except UnicodeDecodeError as e:
        raise FormatError(f"Could not decode UTF-16 report: {e}") from e

    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    try:
        return content.decode("cp1252")
    except UnicodeDecodeError:
        return content.decode("latin-1")


_HTML_MARKERS = ("<html", "<!doctype", "<table", "<head", "<body")


def looks_like_html(content: bytes) -> bool:
    """Sniff the first bytes of a file for an HTML document (any supported encoding)."""
    head = content[:1024]
    if head.startswith(codecs.BOM_UTF16_LE):
        text = head[2:].decode("utf-16-le", errors="ignore")
    elif head.startswith(codecs.BOM_UTF16_BE):
        text = head[2:].decode("utf-16-be", errors="ignore")
    else:
        text = head.decode("utf-8", errors="ignore")
    text = text.lstrip("\ufeff \t\r\n").lower()
    return text.startswith("<") and any(marker in text for marker in _HTML_MARKERS)
