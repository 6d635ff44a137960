# cityhub/utils/params.py
# Lenient query-string parsing: bad values fall back to defaults instead of 422s.

import math
from typing import Optional

from fastapi import HTTPException

from cityhub.models.dto import ErrorResponse


def clamp_int(raw: Optional[str], low: int, high: int, default: int) -> int:
    """
    Parse `raw` as a number and clamp it to [low, high].
    Unparseable input and zero both give `default`, so `count=0` means "unset".
    """
    try:
        value = float(raw) if raw is not None else float(default)
    except ValueError:
        value = float(default)
    if not math.isfinite(value) or value == 0:
        value = float(default)
    return max(low, min(high, int(value)))


def parse_float(raw: Optional[str]) -> Optional[float]:
    """Finite float or None."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def api_error(status_code: int, error: str, detail: str) -> HTTPException:
    """HTTPException carrying the standard ErrorResponse body."""
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(error=error, detail=detail).model_dump(),
    )
