"""Trash ID generation.

IDs look like ``1761607543_xPfnR2k9Qa``: Unix seconds, an underscore and a
random alphanumeric suffix. The suffix keeps IDs unique for bursts inside the
same second.
"""

import random
import re
import string
import time
from typing import Callable, Optional

SUFFIX_LENGTH = 10
SAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]")
# Selectors shaped like this are looked up as exact IDs on restore.
ID_PATTERN = re.compile(r"^\d{10,}_[A-Za-z0-9]{8,}$")

_ALPHABET = string.ascii_letters + string.digits
_rng = random.SystemRandom()


def _random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(_rng.choice(_ALPHABET) for _ in range(length))


def new_id(
    now: Optional[Callable[[], float]] = None,
    suffix_source: Callable[[], str] = _random_suffix,
) -> str:
    """Return a new filesystem-safe trash ID. Never empty, never fails."""
    timestamp = str(int((now or time.time)()))
    suffix = SAFE_CHARS_RE.sub("", suffix_source() or "")
    if not suffix:
        return timestamp
    return f"{timestamp}_{suffix}"


def looks_like_id(value: str) -> bool:
    return bool(ID_PATTERN.match(value.strip()))
