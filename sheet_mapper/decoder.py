"""
decoder.py — byte-order-mark detection and strict text decoding.

Public API:
    decoded = decode_bytes(raw, preferred_encoding=None)
    decoded.text, decoded.encoding, decoded.has_bom
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from typing import Optional

import chardet

from sheet_mapper.config import DEFAULT_CONFIG, ParserConfig

logger = logging.getLogger(__name__)

UTF8 = "utf-8"
UTF16_LE = "utf-16le"
UTF16_BE = "utf-16be"

# Longest marks first so a UTF-8 mark is never mistaken for a shorter one.
BOMS = (
    (codecs.BOM_UTF8, UTF8),
    (codecs.BOM_UTF16_LE, UTF16_LE),
    (codecs.BOM_UTF16_BE, UTF16_BE),
)


class DecodeError(ValueError):
    """Raised when bytes cannot be decoded without substitution."""


@dataclass(frozen=True)
class DecodedText:
    text: str
    encoding: str
    has_bom: bool


def detect_bom(raw: bytes) -> tuple[Optional[str], int]:
    """Return ``(encoding, bom_length)`` for a leading byte-order mark."""
    for mark, encoding in BOMS:
        if raw.startswith(mark):
            return encoding, len(mark)
    return None, 0


def _strict_decode(payload: bytes, encoding: str) -> str:
    try:
        return payload.decode(encoding, errors="strict")
    except LookupError as exc:
        raise DecodeError(f"Unknown encoding: {encoding}") from exc
    except UnicodeDecodeError as exc:
        bad = payload[exc.start : exc.end]
        raise DecodeError(
            f"Could not decode bytes as {encoding}: byte {bad!r} at position {exc.start}"
        ) from exc


def _guess_encoding(payload: bytes, config: ParserConfig) -> Optional[str]:
    result = chardet.detect(payload)
    detected = result.get("encoding")
    confidence = result.get("confidence") or 0.0
    if not detected or confidence < config.fallback_confidence:
        return None
    return detected.lower()


def decode_bytes(
    raw: bytes,
    preferred_encoding: Optional[str] = None,
    config: ParserConfig = DEFAULT_CONFIG,
) -> DecodedText:
    """
    Decode a whole file buffer.

    A byte-order mark always wins over ``preferred_encoding`` and is stripped
    from the returned text. Without a mark the preferred encoding is used, or
    UTF-8 by default. When nothing was preferred and UTF-8 fails, chardet's
    guess is tried (strictly) before giving up.

    Raises:
        DecodeError  for malformed byte sequences or unknown encoding names.
    """
    bom_encoding, bom_length = detect_bom(raw)
    if bom_encoding:
        logger.debug("Found %s byte-order mark", bom_encoding)
        # The UTF-16 codecs pair bytes into code units in the named order.
        text = _strict_decode(raw[bom_length:], bom_encoding)
        return DecodedText(text=text, encoding=bom_encoding, has_bom=True)

    if preferred_encoding:
        encoding = preferred_encoding.strip().lower()
        return DecodedText(text=_strict_decode(raw, encoding), encoding=encoding, has_bom=False)

    try:
        return DecodedText(text=_strict_decode(raw, UTF8), encoding=UTF8, has_bom=False)
    except DecodeError:
        if not config.detect_fallback_encoding:
            raise
        guessed = _guess_encoding(raw, config)
        if guessed is None or guessed in (UTF8, "ascii"):
            raise
        logger.info("UTF-8 decode failed; falling back to detected encoding %s", guessed)
        return DecodedText(text=_strict_decode(raw, guessed), encoding=guessed, has_bom=False)
