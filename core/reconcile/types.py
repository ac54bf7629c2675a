"""
core/reconcile/types.py - 재조정 공통 타입

watch 이벤트는 루프 경계에서 한 번만 ClaimEvent로 변환되며,
이후 코드는 원본 Kubernetes 객체를 다시 검사하지 않습니다.

주요 구성 요소:
- EventKind: 이벤트 종류 (ADDED / MODIFIED / DELETED / OTHER)
- StorageClaim: PVC 스냅샷 (이벤트 단위, 읽기 전용)
- ClaimEvent: (kind, claim) 쌍
- TagResult / TagOutcome: 태그별 적용 결과
- ReconcileState / ReconcileOutcome: 이벤트별 최종 상태와 결과
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from core.exceptions import ResolutionError

# =============================================================================
# 어노테이션 키
# =============================================================================

PROVISIONER_ANNOTATION = "volume.beta.kubernetes.io/storage-provisioner"
TAGS_ANNOTATION = "volume.beta.kubernetes.io/additional-resource-tags"
SEPARATOR_ANNOTATION = "volume.beta.kubernetes.io/additional-resource-tags-separator"


# =============================================================================
# 이벤트
# =============================================================================


class EventKind(Enum):
    """PVC watch 이벤트 종류"""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    OTHER = "OTHER"  # BOOKMARK, ERROR 등

    @classmethod
    def from_watch_type(cls, value: str) -> EventKind:
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER

    @property
    def triggers_reconcile(self) -> bool:
        return self in (EventKind.ADDED, EventKind.MODIFIED)


@dataclass(frozen=True)
class StorageClaim:
    """PVC 스냅샷

    Attributes:
        namespace: 네임스페이스
        name: PVC 이름
        volume_name: 바인딩된 PV 이름 (미바인딩이면 빈 문자열)
        annotations: 어노테이션 (읽기 전용 사본)
        locator_lookup: 이 PVC의 볼륨 로케이터를 해석하는 함수
    """

    namespace: str
    name: str
    volume_name: str = ""
    annotations: Mapping[str, str] = field(default_factory=dict)
    locator_lookup: Callable[[StorageClaim], str] | None = field(default=None, compare=False, repr=False)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def resolve_locator(self) -> str:
        """바인딩된 볼륨의 로케이터 문자열 해석

        Raises:
            ResolutionError: 미바인딩이거나 lookup이 없거나 해석 실패
        """
        if not self.volume_name:
            raise ResolutionError(self.key, "PVC가 아직 볼륨에 바인딩되지 않았습니다")
        if self.locator_lookup is None:
            raise ResolutionError(self.key, "볼륨 로케이터를 해석할 lookup이 없습니다")
        return self.locator_lookup(self)


@dataclass(frozen=True)
class ClaimEvent:
    """PVC 변경 이벤트"""

    kind: EventKind
    claim: StorageClaim


# =============================================================================
# 결과
# =============================================================================


class TagResult(Enum):
    """태그별 적용 결과"""

    APPLIED = "applied"
    ALREADY_PRESENT = "already-present"
    MALFORMED = "malformed"
    FAILED = "failed"


@dataclass
class TagOutcome:
    """태그 하나의 처리 결과

    Attributes:
        result: 적용 결과
        key: 태그 키 (MALFORMED이면 빈 문자열)
        value: 태그 값
        raw: 원본 세그먼트
        error: 실패 사유 (FAILED / MALFORMED)
    """

    result: TagResult
    key: str = ""
    value: str = ""
    raw: str = ""
    error: str | None = None

    def __str__(self) -> str:
        label = f"{self.key}={self.value}" if self.result != TagResult.MALFORMED else repr(self.raw)
        return f"{label}:{self.result.value}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.value,
            "key": self.key,
            "value": self.value,
            "raw": self.raw,
            "error": self.error,
        }


class ReconcileState(Enum):
    """재조정 종료 상태"""

    NOT_MANAGED = "not-managed"
    RESOLUTION_FAILED = "resolution-failed"
    FETCH_FAILED = "fetch-failed"
    TAGS_APPLIED = "tags-applied"


@dataclass
class ReconcileOutcome:
    """이벤트 하나의 재조정 결과 (구조화 로그용, 저장하지 않음)

    Attributes:
        namespace: PVC 네임스페이스
        claim: PVC 이름
        volume_name: PV 이름
        event_kind: 이벤트 종류
        managed: 관리 대상(EBS) 여부
        state: 종료 상태
        volume_id: EBS 볼륨 ID (해석 성공 시)
        region: AWS 리전 (해석 성공 시)
        tags: 태그별 결과 (파싱 순서)
        error: 이벤트 단위 실패 사유
    """

    namespace: str
    claim: str
    volume_name: str
    event_kind: EventKind
    managed: bool = False
    state: ReconcileState = ReconcileState.NOT_MANAGED
    volume_id: str = ""
    region: str = ""
    tags: list[TagOutcome] = field(default_factory=list)
    error: str | None = None

    def count(self, result: TagResult) -> int:
        return sum(1 for t in self.tags if t.result == result)

    @property
    def applied(self) -> list[TagOutcome]:
        return [t for t in self.tags if t.result == TagResult.APPLIED]

    @property
    def failed(self) -> list[TagOutcome]:
        return [t for t in self.tags if t.result == TagResult.FAILED]

    @property
    def has_failures(self) -> bool:
        """이벤트 실패 또는 태그 생성 실패가 있는지"""
        if self.state in (ReconcileState.RESOLUTION_FAILED, ReconcileState.FETCH_FAILED):
            return True
        return any(t.result == TagResult.FAILED for t in self.tags)

    def summary(self) -> str:
        """한 줄 요약 (로그 메시지용)"""
        parts = [
            f"namespace={self.namespace}",
            f"claim={self.claim}",
            f"volume={self.volume_name or '-'}",
            f"volume_id={self.volume_id or '-'}",
            f"event={self.event_kind.value}",
            f"state={self.state.value}",
        ]
        if self.tags:
            parts.append("tags=[" + ", ".join(str(t) for t in self.tags) + "]")
        if self.error:
            parts.append(f"error={self.error}")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "claim": self.claim,
            "volume_name": self.volume_name,
            "volume_id": self.volume_id,
            "region": self.region,
            "event_kind": self.event_kind.value,
            "classification": "managed" if self.managed else "not-managed",
            "state": self.state.value,
            "tags": [t.to_dict() for t in self.tags],
            "error": self.error,
        }
