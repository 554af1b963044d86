"""
VeriFlow Tokens and References

Access-token issuance and human-readable case references.
"""
from __future__ import annotations

import re
import secrets
from datetime import datetime
from typing import Iterable, Protocol


REFERENCE_PREFIX = "VER"
_REFERENCE_PATTERN = re.compile(r"^VER-(\d{4})-(\d{6})$")


class TokenIssuer(Protocol):
    def issue(self) -> str: ...


class SecretTokenIssuer:
    """URL-safe random tokens from the OS CSPRNG."""

    def __init__(self, nbytes: int = 16) -> None:
        self.nbytes = nbytes

    def issue(self) -> str:
        return secrets.token_urlsafe(self.nbytes)


def next_reference(existing: Iterable[str], now: datetime) -> str:
    """
    Next reference in the form VER-YYYY-NNNNNN.

    Numbering continues from the highest existing number across all years.
    """
    highest = 0
    for reference in existing:
        match = _REFERENCE_PATTERN.match(reference or "")
        if match:
            highest = max(highest, int(match.group(2)))
    return f"{REFERENCE_PREFIX}-{now.year}-{highest + 1:06d}"
