from __future__ import annotations

import hashlib
import re


_ONLY_DIGITS = re.compile(r"\D+")
_MOJIBAKE_HINTS = ("Ã", "Â", "â", "ð", "Ð", "�")


def normalize_digits(value: str) -> str:
    return _ONLY_DIGITS.sub("", value or "")


def normalize_cnpj(value: str) -> str:
    return normalize_digits(value)


def compute_sha256(payload_bytes: bytes) -> str:
    return "sha256:" + hashlib.sha256(payload_bytes).hexdigest()


def _mojibake_score(value: str) -> int:
    return sum(value.count(ch) for ch in _MOJIBAKE_HINTS)


def repair_mojibake_utf8(value):
    """
    Best-effort fix for workbook text saved as UTF-8 but re-read as latin-1/cp1252.
    Example: 'LicenÃ§a Ambiental' -> 'Licença Ambiental'
    """
    if not isinstance(value, str):
        return value
    if not value or not any(ch in value for ch in _MOJIBAKE_HINTS):
        return value
    try:
        repaired = value.encode("latin-1").decode("utf-8")
    except UnicodeError:
        return value
    if not repaired or "�" in repaired:
        return value
    if _mojibake_score(repaired) > _mojibake_score(value):
        return value
    return repaired
