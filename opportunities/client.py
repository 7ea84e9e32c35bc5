from __future__ import annotations

import asyncio
from typing import Optional

import requests
from requests.exceptions import RequestException

from .config import logger
from .errors import OpportunityFetchError
from .filters import OpportunityFilters
from .models import OpportunityPage


class OpportunityClient:
    """GET client for the opportunities endpoint."""

    def __init__(self, url: str, *, timeout: float = 15.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, filters: OpportunityFilters, *, refresh: bool = False) -> OpportunityPage:
        params = filters.to_query_params(refresh=refresh)
        try:
            r = self.session.get(self.url, params=params, timeout=self.timeout)
        except RequestException as e:
            raise OpportunityFetchError(f"Failed to fetch: {e}") from e
        logger.debug("GET %s status=%s", self.url, r.status_code)
        if r.status_code != 200:
            raise OpportunityFetchError(f"Failed to fetch: {r.status_code} {r.reason or ''}".rstrip(),
                                        status=r.status_code)
        try:
            payload = r.json() or {}
        except ValueError as e:
            raise OpportunityFetchError("Failed to fetch: invalid JSON") from e
        if not isinstance(payload, dict):
            raise OpportunityFetchError("Failed to fetch: unexpected payload")
        return OpportunityPage.from_response(payload)

    async def __call__(self, filters: OpportunityFilters, refresh: bool = False) -> OpportunityPage:
        return await asyncio.to_thread(self.fetch, filters, refresh=refresh)
