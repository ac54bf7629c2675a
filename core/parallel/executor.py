"""
core/parallel/executor.py - 볼륨 단위 직렬화 병렬 실행기

sync 모드에서 PVC 재조정을 ThreadPoolExecutor로 병렬 처리합니다.
같은 PV를 가리키는 이벤트는 한 작업으로 묶어 순서대로 처리하므로,
한 볼륨에 대해 "조회 후 생성" 시퀀스가 동시에 두 개 실행되지 않습니다.

주요 구성 요소:
- ParallelConfig: 병렬 실행 설정 (워커 수)
- VolumeSerializedExecutor: 볼륨별 직렬화 병렬 실행기
- SyncResult: 실행 결과 (재조정 결과 + 예외 건수)

Example:
    executor = VolumeSerializedExecutor(reconciler, ParallelConfig(max_workers=10))
    result = executor.execute(source.list_events())
    print(f"재조정 {len(result.outcomes)}건, 예외 {result.error_count}건")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.reconcile.reconciler import Reconciler
    from core.reconcile.types import ClaimEvent, ReconcileOutcome

logger = logging.getLogger(__name__)


@dataclass
class ParallelConfig:
    """병렬 실행 설정

    Attributes:
        max_workers: 최대 동시 스레드 수 (1~100)
    """

    max_workers: int = 10

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > 100:
            self.max_workers = 100


@dataclass
class SyncResult:
    """병렬 재조정 결과

    Attributes:
        outcomes: 재조정 결과 목록 (완료 순서)
        error_count: 재조정 중 예외가 발생한 이벤트 수
        duration_ms: 전체 소요 시간
    """

    outcomes: list[ReconcileOutcome] = field(default_factory=list)
    error_count: int = 0
    duration_ms: float = 0.0

    @property
    def failed_outcomes(self) -> list[ReconcileOutcome]:
        return [o for o in self.outcomes if o.has_failures]

    @property
    def has_failures(self) -> bool:
        return self.error_count > 0 or any(o.has_failures for o in self.outcomes)


def group_by_volume(events: Iterable[ClaimEvent]) -> list[list[ClaimEvent]]:
    """PV 이름 기준으로 이벤트 묶기 (미바인딩 PVC는 PVC별로 개별 그룹)

    그룹 순서와 그룹 내 이벤트 순서는 입력 순서를 유지합니다.
    """
    groups: dict[str, list[ClaimEvent]] = {}
    for event in events:
        claim = event.claim
        key = f"pv:{claim.volume_name}" if claim.volume_name else f"pvc:{claim.key}"
        groups.setdefault(key, []).append(event)
    return list(groups.values())


class VolumeSerializedExecutor:
    """볼륨별 직렬화 병렬 실행기

    서로 다른 볼륨은 병렬로, 같은 볼륨은 순차로 재조정합니다.
    ADDED / MODIFIED 이외의 이벤트는 건너뜁니다.
    """

    def __init__(self, reconciler: Reconciler, config: ParallelConfig | None = None):
        self.reconciler = reconciler
        self.config = config or ParallelConfig()

    def execute(
        self,
        events: Iterable[ClaimEvent],
        on_complete: Callable[[ClaimEvent, ReconcileOutcome | None], None] | None = None,
    ) -> SyncResult:
        """이벤트를 병렬 재조정

        Args:
            events: 재조정할 이벤트
            on_complete: 이벤트 하나가 끝날 때마다 호출 (예외 시 outcome=None)

        Returns:
            SyncResult
        """
        groups = group_by_volume(e for e in events if e.kind.triggers_reconcile)
        result = SyncResult()

        if not groups:
            logger.warning("재조정할 PVC가 없습니다")
            return result

        total = sum(len(g) for g in groups)
        logger.info(f"병렬 재조정 시작: PVC {total}개, 볼륨 그룹 {len(groups)}개, max_workers={self.config.max_workers}")
        start_time = time.monotonic()

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = [executor.submit(self._run_group, group, on_complete) for group in groups]
            for future in as_completed(futures):
                outcomes, errors = future.result()
                result.outcomes.extend(outcomes)
                result.error_count += errors

        result.duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            f"병렬 재조정 완료: 결과 {len(result.outcomes)}건, 예외 {result.error_count}건, "
            f"총 {result.duration_ms:.0f}ms"
        )
        return result

    def _run_group(
        self,
        group: list[ClaimEvent],
        on_complete: Callable[[ClaimEvent, ReconcileOutcome | None], None] | None,
    ) -> tuple[list[ReconcileOutcome], int]:
        """같은 볼륨의 이벤트를 순서대로 재조정 (워커 스레드 내에서 호출)"""
        outcomes: list[ReconcileOutcome] = []
        errors = 0
        for event in group:
            outcome: ReconcileOutcome | None = None
            try:
                outcome = self.reconciler.reconcile(event)
                outcomes.append(outcome)
            except Exception:
                errors += 1
                logger.exception(f"[{event.claim.key}] 재조정 중 예외")
            if on_complete:
                try:
                    on_complete(event, outcome)
                except Exception:
                    logger.exception(f"[{event.claim.key}] on_complete 콜백 예외")
        return outcomes, errors
