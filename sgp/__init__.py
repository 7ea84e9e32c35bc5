"""
sgp
===

Same-game-parlay quote aggregation across books.

Public API (stable):
- SgpAggregator, resolve_books, format_sse (from aggregator)
- QuoteCache (from cache)
- compute_legs_hash, compute_token_hash, books_with_full_support,
  sort_by_priority (from hashing)
- SgpLeg, SgpBookOdds, AggregateResult, parse_request (from models)
- SgpStreamReader, fetch_quote_stream (from client)
"""
from .aggregator import SgpAggregator, StreamEvent, StreamPlan, format_sse, resolve_books
from .cache import QuoteCache, cache_key
from .client import SgpQuoteResult, SgpStreamReader, fetch_quote_stream
from .errors import SgpRequestError
from .hashing import books_with_full_support, compute_legs_hash, compute_token_hash, sort_by_priority, tokens_for_book
from .models import AggregateResult, SgpBookOdds, SgpLeg, SgpQuoteCacheEntry, parse_request

__all__ = [
    "SgpAggregator", "StreamEvent", "StreamPlan", "format_sse", "resolve_books",
    "QuoteCache", "cache_key",
    "SgpQuoteResult", "SgpStreamReader", "fetch_quote_stream",
    "SgpRequestError",
    "books_with_full_support", "compute_legs_hash", "compute_token_hash", "sort_by_priority", "tokens_for_book",
    "AggregateResult", "SgpBookOdds", "SgpLeg", "SgpQuoteCacheEntry", "parse_request",
]
