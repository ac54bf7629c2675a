"""
core/parallel/errors.py - 에러 수집 및 관리

재조정 중 발생하는 복구 가능한 에러(볼륨 해석 실패, 태그 조회/생성 실패)를
PVC 컨텍스트와 함께 일관되게 수집합니다. sync 모드의 요약 보고에 사용하며,
watch 모드는 collector 없이 safe_collect로 로깅만 합니다.

주요 구성 요소:
- ErrorSeverity: 에러 심각도 분류
- CollectedError: 수집된 에러 상세 정보
- ErrorCollector: 스레드 세이프 에러 수집기
- safe_collect: collector가 None이어도 동작하는 수집 헬퍼

Example:
    collector = ErrorCollector()

    try:
        gateway.create_tag(ref.region, ref.volume_id, "team", "infra")
    except GatewayWriteError as e:
        collector.collect(e, "payments", "data-pg-0", "create_tags", volume_id=ref.volume_id)

    if collector.has_errors:
        print(collector.get_summary())
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .decorators import categorize_error, get_error_code
from .types import ErrorCategory

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """에러 심각도 분류

    수집된 에러의 심각도를 나타내며, 로깅 레벨을 결정합니다.
    """

    CRITICAL = "critical"  # 이벤트 전체 실패 (태그 조회 불가 등)
    WARNING = "warning"  # 부분 실패 (태그 하나 생성 실패)
    INFO = "info"  # 정보성 (권한 없음, 미바인딩 PVC 등)
    DEBUG = "debug"


@dataclass
class CollectedError:
    """수집된 에러 상세 정보

    Attributes:
        timestamp: 에러 발생 시각
        namespace: PVC 네임스페이스
        claim: PVC 이름
        operation: 실패한 단계 (resolve_volume, describe_volumes, create_tags 등)
        error_code: 에러 코드 (예: "UnauthorizedOperation")
        error_message: 에러 메시지
        severity: 에러 심각도
        category: 에러 카테고리 (ErrorCategory)
        volume_id: 관련 EBS 볼륨 ID (선택사항)
        tag_key: 관련 태그 키 (선택사항)
    """

    timestamp: datetime
    namespace: str
    claim: str
    operation: str
    error_code: str
    error_message: str
    severity: ErrorSeverity
    category: ErrorCategory
    volume_id: str | None = None
    tag_key: str | None = None

    def __str__(self) -> str:
        loc = f"{self.namespace}/{self.claim}"
        if self.volume_id:
            loc = f"{loc} ({self.volume_id})"
        target = f"{self.operation}[{self.tag_key}]" if self.tag_key else self.operation
        return f"[{self.severity.value.upper()}] {loc} - {target}: {self.error_code}"

    def to_dict(self) -> dict[str, str | None]:
        """딕셔너리로 변환 (로깅/직렬화용)"""
        return {
            "timestamp": self.timestamp.isoformat(),
            "namespace": self.namespace,
            "claim": self.claim,
            "operation": self.operation,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "severity": self.severity.value,
            "category": self.category.value,
            "volume_id": self.volume_id,
            "tag_key": self.tag_key,
        }


class ErrorCollector:
    """스레드 세이프 에러 수집기

    sync 모드에서 여러 워커 스레드가 동시에 에러를 기록할 수 있습니다.
    """

    def __init__(self) -> None:
        self._errors: list[CollectedError] = []
        self._lock = threading.Lock()

    def collect(
        self,
        error: Exception,
        namespace: str,
        claim: str,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        volume_id: str | None = None,
        tag_key: str | None = None,
    ) -> CollectedError:
        """예외를 수집하고 로깅

        에러 코드와 카테고리는 예외에서 자동으로 추출합니다.

        Returns:
            수집된 CollectedError
        """
        collected = CollectedError(
            timestamp=datetime.now(),
            namespace=namespace,
            claim=claim,
            operation=operation,
            error_code=get_error_code(error),
            error_message=str(error),
            severity=severity,
            category=categorize_error(error),
            volume_id=volume_id,
            tag_key=tag_key,
        )

        with self._lock:
            self._errors.append(collected)

        log_msg = f"{collected}"
        if severity == ErrorSeverity.CRITICAL:
            logger.error(log_msg)
        elif severity == ErrorSeverity.WARNING:
            logger.warning(log_msg)
        elif severity == ErrorSeverity.INFO:
            logger.info(log_msg)
        else:
            logger.debug(log_msg)

        return collected

    @property
    def errors(self) -> list[CollectedError]:
        """수집된 모든 에러의 복사본 반환"""
        with self._lock:
            return list(self._errors)

    @property
    def has_errors(self) -> bool:
        """에러 존재 여부"""
        with self._lock:
            return len(self._errors) > 0

    def get_summary(self) -> str:
        """심각도별 에러 건수를 포함한 요약 문자열 반환

        Returns:
            포맷팅된 요약 문자열 (예: "에러 3건 (critical: 1건, warning: 2건)")
        """
        with self._lock:
            if not self._errors:
                return "에러 없음"

            by_severity: dict[str, int] = {}
            for e in self._errors:
                by_severity[e.severity.value] = by_severity.get(e.severity.value, 0) + 1

            parts = [f"{k}: {v}건" for k, v in sorted(by_severity.items())]
            return f"에러 {len(self._errors)}건 ({', '.join(parts)})"

    def get_by_claim(self) -> dict[str, list[CollectedError]]:
        """PVC별로 에러를 그룹핑하여 반환

        Returns:
            {"namespace/claim": [CollectedError, ...]} 딕셔너리
        """
        with self._lock:
            result: dict[str, list[CollectedError]] = {}
            for e in self._errors:
                result.setdefault(f"{e.namespace}/{e.claim}", []).append(e)
            return result


def safe_collect(
    collector: ErrorCollector | None,
    error: Exception,
    namespace: str,
    claim: str,
    operation: str,
    severity: ErrorSeverity = ErrorSeverity.WARNING,
    volume_id: str | None = None,
    tag_key: str | None = None,
) -> None:
    """안전한 에러 수집 (collector가 None이어도 동작)

    collector가 있으면 에러를 수집하고, 없으면 로깅만 수행합니다.
    """
    if collector:
        collector.collect(error, namespace, claim, operation, severity, volume_id, tag_key)
        return

    target = f"{operation}[{tag_key}]" if tag_key else operation
    volume = f" ({volume_id})" if volume_id else ""
    msg = f"[{namespace}/{claim}{volume}] {target}: {get_error_code(error)} - {error}"
    if severity == ErrorSeverity.CRITICAL:
        logger.error(msg)
    elif severity == ErrorSeverity.WARNING:
        logger.warning(msg)
    else:
        logger.info(msg)
