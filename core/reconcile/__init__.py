"""
core/reconcile - PVC 어노테이션 → EBS 태그 재조정

Example:
    from core.reconcile import EventLoop, Reconciler

    reconciler = Reconciler(gateway)
    EventLoop(source.watch_events(), reconciler).run()
"""

from .classifier import MANAGED_PROVISIONERS, is_managed
from .loop import EventLoop, LoopStats
from .reconciler import Reconciler
from .types import (
    PROVISIONER_ANNOTATION,
    SEPARATOR_ANNOTATION,
    TAGS_ANNOTATION,
    ClaimEvent,
    EventKind,
    ReconcileOutcome,
    ReconcileState,
    StorageClaim,
    TagOutcome,
    TagResult,
)

__all__: list[str] = [
    # Classifier
    "MANAGED_PROVISIONERS",
    "is_managed",
    # Loop
    "EventLoop",
    "LoopStats",
    "Reconciler",
    # Types
    "PROVISIONER_ANNOTATION",
    "TAGS_ANNOTATION",
    "SEPARATOR_ANNOTATION",
    "EventKind",
    "StorageClaim",
    "ClaimEvent",
    "TagResult",
    "TagOutcome",
    "ReconcileState",
    "ReconcileOutcome",
]
