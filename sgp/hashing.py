"""Content hashes for leg sets and per-book token sets.

Both are order independent: inputs are canonicalised, sorted and joined
before hashing, so the same combination always maps to the same cache key.
"""
from __future__ import annotations

import hashlib
from typing import Iterable, List, Optional, Sequence

from oddsblaze.config import BOOK_PRIORITY

from .models import SgpLeg


def _digest(s: str) -> str:
    return hashlib.sha1(s.encode("utf-8")).hexdigest()[:16]


def _line(line: Optional[float]) -> str:
    return "null" if line is None else f"{line:g}"


def leg_key(leg: SgpLeg) -> str:
    return f"{leg.event_id}:{leg.player_id or 'game'}:{leg.market}:{_line(leg.line)}:{leg.side}"


def compute_legs_hash(legs: Iterable[SgpLeg]) -> str:
    return _digest("|".join(sorted(leg_key(l) for l in legs)))


def compute_token_hash(tokens: Iterable[str]) -> str:
    return _digest("|".join(sorted(tokens)))


def tokens_for_book(legs: Sequence[SgpLeg], book: str) -> List[str]:
    return [t for t in (leg.token_for(book) for leg in legs) if t]


def books_with_full_support(legs: Sequence[SgpLeg], books: Iterable[str]) -> List[str]:
    return [b for b in books if len(tokens_for_book(legs, b)) == len(legs)]


def sort_by_priority(books: Iterable[str]) -> List[str]:
    """Popular books first; unknown books keep their relative order at the end."""
    rank = {b: i for i, b in enumerate(BOOK_PRIORITY)}
    return sorted(books, key=lambda b: rank.get(b, len(rank)))
