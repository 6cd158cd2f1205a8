"""Timeline store contract and the store-facing cut applier."""

from fillercut.timeline.applier import ApplierPhase, ApplyReport, CutPlanApplier
from fillercut.timeline.store import InMemoryTimelineStore, TimelineStore

__all__ = [
    "ApplierPhase",
    "ApplyReport",
    "CutPlanApplier",
    "InMemoryTimelineStore",
    "TimelineStore",
]
