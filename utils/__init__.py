"""
utils
=====

Small helpers shared by the stream and SGP packages.

Public API (re-exports):
- parse_american (odds)
- now_ms, to_epoch_seconds (time)
"""
from .odds import parse_american
from .timeutil import now_ms, to_epoch_seconds

__all__ = ["parse_american", "now_ms", "to_epoch_seconds"]
