# scouting/utils/misc_utils.py
import math
import re
import hashlib
from typing import Any, Optional


def generate_canonical_id(*args: Any) -> str:
    """Generates a consistent, filesystem-safe ID from one or more strings."""
    combined = "-".join(str(arg).lower() for arg in args if arg)
    safe_string = re.sub(r"[^a-z0-9_-]+", "-", combined).strip("-")
    if len(safe_string) > 100:
        return hashlib.sha1(safe_string.encode()).hexdigest()[:16]
    return safe_string or "entity"


def coerce_rank(value: Any) -> Optional[int]:
    """Reads a rank from an int, a float, or a string like '3rd' / '#12'."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = re.search(r"\d+", value.replace(",", ""))
        if m:
            return int(m.group(0))
    return None


def positive_number(value: Optional[float]) -> Optional[float]:
    """Returns `value` only when it is a finite number greater than zero."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value) and value > 0:
        return value
    return None
