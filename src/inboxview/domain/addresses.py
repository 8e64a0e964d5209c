from __future__ import annotations
import re
from typing import Optional

from inboxview.domain.exceptions import InvalidAddress

_ADDRESS_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_address(address: Optional[str]) -> str:
    """Validate a target address and return its canonical (lower-cased) form."""
    candidate = (address or "").strip()
    if not candidate or not _ADDRESS_RE.match(candidate):
        raise InvalidAddress(address)
    return candidate.lower()
