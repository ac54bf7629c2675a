"""
core/reconcile/loop.py - PVC 이벤트 루프

이벤트 소스에서 하나를 꺼내 끝까지 재조정한 뒤 다음 이벤트를 꺼냅니다.
ADDED / MODIFIED만 재조정하며 DELETED / OTHER는 무시합니다
(PVC 삭제 시 볼륨 태그를 제거하지 않음).

단일 이벤트 처리 중 발생한 예외는 여기서 잡아 로그로 남기며,
루프는 이벤트 소스가 끝날 때까지 계속됩니다.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from .reconciler import Reconciler
from .types import ClaimEvent, EventKind, ReconcileOutcome

logger = logging.getLogger(__name__)


@dataclass
class LoopStats:
    """루프 누적 통계"""

    received: int = 0
    reconciled: int = 0
    ignored: int = 0
    errors: int = 0
    by_kind: dict[str, int] = field(default_factory=dict)

    def record(self, kind: EventKind) -> None:
        self.received += 1
        self.by_kind[kind.value] = self.by_kind.get(kind.value, 0) + 1


class EventLoop:
    """순차 이벤트 루프

    Example:
        loop = EventLoop(source.watch_events(), Reconciler(gateway))
        stats = loop.run()
    """

    def __init__(self, events: Iterable[ClaimEvent], reconciler: Reconciler):
        self.events = events
        self.reconciler = reconciler
        self.stats = LoopStats()

    def handle(self, event: ClaimEvent) -> ReconcileOutcome | None:
        """이벤트 하나 처리 (무시된 이벤트나 예외 발생 시 None)"""
        self.stats.record(event.kind)

        if not event.kind.triggers_reconcile:
            self.stats.ignored += 1
            logger.debug(f"[{event.claim.key}] {event.kind.value} 이벤트 무시")
            return None

        try:
            outcome = self.reconciler.reconcile(event)
        except Exception:
            self.stats.errors += 1
            logger.exception(f"[{event.claim.key}] {event.kind.value} 이벤트 재조정 중 예외")
            return None

        self.stats.reconciled += 1
        return outcome

    def run(self) -> LoopStats:
        """이벤트 소스가 끝날 때까지 실행"""
        logger.info("PVC 이벤트 루프 시작")
        for event in self.events:
            self.handle(event)

        logger.info(
            f"PVC 이벤트 루프 종료: 수신 {self.stats.received}, 재조정 {self.stats.reconciled}, "
            f"무시 {self.stats.ignored}, 예외 {self.stats.errors}"
        )
        return self.stats
