from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import requests
from requests.exceptions import RequestException

from .config import TRACE_ENABLED, logger


def post_json(url: str, payload: Any, params: Dict[str, Any] | None = None, *,
              timeout: float = 30) -> Tuple[Optional[int], Optional[Any]]:
    """POST a JSON body. Returns (status, parsed JSON); (None, None) on transport failure.

    A non-JSON body comes back as (status, None).
    """
    try:
        r = requests.post(url, params=params, json=payload, timeout=timeout)
    except RequestException:
        logger.exception("POST failed for %s", url)
        return None, None
    if TRACE_ENABLED:
        logger.debug("POST %s status=%s", url, r.status_code)
    try:
        return r.status_code, r.json()
    except ValueError:
        return r.status_code, None
