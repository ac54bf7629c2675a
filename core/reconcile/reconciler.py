"""
core/reconcile/reconciler.py - PVC 태그 재조정기

PVC 변경 이벤트 하나를 받아 EBS 볼륨 태그를 어노테이션과 맞춥니다.

상태 전이:
    Received -> Classified -> NotManaged (종료)
                           -> TagsParsed -> CurrentTagsFetched -> FetchFailed (종료)
                                                              -> Diffed -> TagsApplied (종료)
    볼륨 해석/로케이터 파싱 실패 시 ResolutionFailed (종료)

태그는 추가만 합니다. 어노테이션에서 빠진 태그를 볼륨에서 제거하지 않습니다.

Example:
    reconciler = Reconciler(gateway)
    outcome = reconciler.reconcile(ClaimEvent(EventKind.ADDED, claim))
    print(outcome.summary())
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.exceptions import GatewayFetchError, GatewayWriteError, ResolutionError
from core.parallel.errors import ErrorCollector, ErrorSeverity, safe_collect
from core.shared.aws.locator import parse_locator
from core.shared.aws.tags import DEFAULT_SEPARATOR, parse_tag_spec

from .classifier import is_managed
from .types import (
    SEPARATOR_ANNOTATION,
    TAGS_ANNOTATION,
    ClaimEvent,
    ReconcileOutcome,
    ReconcileState,
    TagOutcome,
    TagResult,
)

if TYPE_CHECKING:
    from core.shared.aws.gateway import CloudTagGateway

logger = logging.getLogger(__name__)


class Reconciler:
    """이벤트 단위 태그 재조정기

    상태를 갖지 않으며, 모든 데이터는 reconcile() 호출 안에서만 유효합니다.
    """

    def __init__(
        self,
        gateway: CloudTagGateway,
        collector: ErrorCollector | None = None,
        default_separator: str = DEFAULT_SEPARATOR,
    ):
        """초기화

        Args:
            gateway: EC2 태그 게이트웨이
            collector: 에러 수집기 (None이면 로깅만)
            default_separator: 구분자 어노테이션이 없을 때 사용할 구분자
        """
        self.gateway = gateway
        self.collector = collector
        self.default_separator = default_separator

    def reconcile(self, event: ClaimEvent) -> ReconcileOutcome:
        """PVC 이벤트 하나를 재조정하고 결과를 로그로 남김"""
        outcome = self._reconcile(event)
        self._log_outcome(outcome)
        return outcome

    def _reconcile(self, event: ClaimEvent) -> ReconcileOutcome:
        claim = event.claim
        outcome = ReconcileOutcome(
            namespace=claim.namespace,
            claim=claim.name,
            volume_name=claim.volume_name,
            event_kind=event.kind,
        )

        # 1. 분류
        if not is_managed(claim.annotations):
            return outcome
        outcome.managed = True

        # 2. 볼륨 해석 + 태그 파싱
        try:
            ref = parse_locator(claim.resolve_locator())
        except ResolutionError as e:
            outcome.state = ReconcileState.RESOLUTION_FAILED
            outcome.error = str(e)
            safe_collect(
                self.collector, e, claim.namespace, claim.name, "resolve_volume", ErrorSeverity.WARNING
            )
            return outcome
        outcome.region = ref.region
        outcome.volume_id = ref.volume_id

        separator = claim.annotations.get(SEPARATOR_ANNOTATION) or self.default_separator
        entries = parse_tag_spec(claim.annotations.get(TAGS_ANNOTATION, ""), separator)
        desired = []
        for entry in entries:
            if entry.is_ok:
                desired.append(entry)
            else:
                outcome.tags.append(TagOutcome(TagResult.MALFORMED, raw=entry.raw, error="'key=value' 형식이 아님"))
                logger.warning(f"[{claim.key}] 잘못된 태그 항목 무시: {entry.raw!r}")

        if not desired:
            outcome.state = ReconcileState.TAGS_APPLIED
            return outcome

        # 3. 현재 태그 조회
        try:
            current = self.gateway.current_tags(ref.region, ref.volume_id)
        except GatewayFetchError as e:
            outcome.state = ReconcileState.FETCH_FAILED
            outcome.error = str(e)
            safe_collect(
                self.collector,
                e,
                claim.namespace,
                claim.name,
                "describe_volumes",
                ErrorSeverity.CRITICAL,
                volume_id=ref.volume_id,
            )
            return outcome

        # 4. 비교 + 5. 적용 (키와 값이 모두 같아야 이미 존재하는 것으로 봄)
        for entry in desired:
            if entry.pair in current:
                outcome.tags.append(TagOutcome(TagResult.ALREADY_PRESENT, entry.key, entry.value, entry.raw))
                continue

            try:
                self.gateway.create_tag(ref.region, ref.volume_id, entry.key, entry.value)
            except GatewayWriteError as e:
                outcome.tags.append(TagOutcome(TagResult.FAILED, entry.key, entry.value, entry.raw, error=str(e)))
                safe_collect(
                    self.collector,
                    e,
                    claim.namespace,
                    claim.name,
                    "create_tags",
                    ErrorSeverity.WARNING,
                    volume_id=ref.volume_id,
                    tag_key=entry.key,
                )
                continue

            outcome.tags.append(TagOutcome(TagResult.APPLIED, entry.key, entry.value, entry.raw))

        outcome.state = ReconcileState.TAGS_APPLIED
        return outcome

    @staticmethod
    def _log_outcome(outcome: ReconcileOutcome) -> None:
        extra = {"outcome": outcome.to_dict()}
        if not outcome.managed:
            logger.debug(f"관리 대상 아님: {outcome.summary()}", extra=extra)
        elif outcome.has_failures:
            logger.warning(f"재조정 일부 실패: {outcome.summary()}", extra=extra)
        else:
            logger.info(f"재조정 완료: {outcome.summary()}", extra=extra)
