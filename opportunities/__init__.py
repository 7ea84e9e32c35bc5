"""
opportunities
=============

Live, diffable view of positive-EV opportunities under one filter set.

Public API (stable):
- OpportunityStream, StreamState, ConnectionState (from stream)
- diff_snapshots, SnapshotDiff (from diff)
- OpportunityFilters, is_relevant_key (from filters)
- OpportunityClient, OpportunityFetchError (from client / errors)
- SignalFeed, bridge_to_loop (from signals)
- ManualScheduler, LoopScheduler (from timers)
"""
from .client import OpportunityClient
from .diff import SnapshotDiff, diff_snapshots
from .errors import OpportunityFetchError
from .filters import OpportunityFilters, is_relevant_key
from .models import ChangeRecord, Direction, Opportunity, OpportunityPage, Signal
from .signals import SignalFeed, bridge_to_loop
from .stream import ConnectionState, OpportunityStream, StreamState
from .timers import LoopScheduler, ManualScheduler

__all__ = [
    "OpportunityClient",
    "SnapshotDiff",
    "diff_snapshots",
    "OpportunityFetchError",
    "OpportunityFilters",
    "is_relevant_key",
    "ChangeRecord",
    "Direction",
    "Opportunity",
    "OpportunityPage",
    "Signal",
    "SignalFeed",
    "bridge_to_loop",
    "ConnectionState",
    "OpportunityStream",
    "StreamState",
    "LoopScheduler",
    "ManualScheduler",
]
