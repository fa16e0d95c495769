from .advance import AdvancePolicy, IntraStep
from .counters import CachedScope, CounterLayout, PlaycounterStore
from .models import HistoryNode, Playhead
from .playheads import PlayheadEngine
from .scopes import ScopeLattice, ScopeMaps, resolve_scopes
from .selection import weighted_pick
from .traversal import EdgeTraversal, TraversalHop, TraversalOutcome
from .validation import PlaytreeValidator

__all__ = [
    "AdvancePolicy",
    "CachedScope",
    "CounterLayout",
    "EdgeTraversal",
    "HistoryNode",
    "IntraStep",
    "PlaycounterStore",
    "Playhead",
    "PlayheadEngine",
    "PlaytreeValidator",
    "ScopeLattice",
    "ScopeMaps",
    "TraversalHop",
    "TraversalOutcome",
    "resolve_scopes",
    "weighted_pick",
]
