from __future__ import annotations

from typing import Optional


class OpportunityFetchError(Exception):
    """The opportunities endpoint could not be read."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
