from __future__ import annotations
from typing import Optional, Any

def parse_american(value: Any) -> Optional[int]:
    """Parse an American price into an int.

    Accepts ints/floats and signed strings ("+425", "-110", "110").
    Returns None for missing or unparseable values and for 0.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            n = int(round(float(value)))
        except (ValueError, OverflowError):
            return None
        return n or None
    s = str(value).strip().replace("+", "")
    if not s:
        return None
    try:
        n = int(round(float(s)))
    except (ValueError, OverflowError):
        return None
    return n or None
