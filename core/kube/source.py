"""
core/kube/source.py - PVC 이벤트 소스 및 볼륨 해석

Kubernetes API 객체를 StorageClaim / ClaimEvent로 변환합니다.
변환은 여기서 한 번만 일어나며, 재조정 코드는 원본 객체를 보지 않습니다.

- list_events: 전체 PVC를 한 번 조회하여 ADDED 이벤트로 반환 (sync 모드)
- watch_events: list 후 resourceVersion부터 watch (run 모드)
  - 410 Gone: 재조회 후 재개
  - 기타 오류: 지수 백오프 후 재연결
- resolve_locator: PVC -> PV -> EBS 로케이터 문자열

CSI 볼륨은 volumeHandle에 볼륨 ID만 있으므로 PV의 nodeAffinity에서
가용 영역을 찾아 `aws://<zone>/<volume-id>` 형식으로 조합합니다.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from core.exceptions import ClusterConfigError, ResolutionError
from core.parallel.decorators import RetryConfig, is_retryable
from core.reconcile.classifier import MANAGED_PROVISIONERS
from core.reconcile.types import ClaimEvent, EventKind, StorageClaim
from core.shared.aws.locator import build_locator

if TYPE_CHECKING:
    from kubernetes.client import CoreV1Api

    from core.config import TaggerConfig

logger = logging.getLogger(__name__)

# PV nodeAffinity에서 가용 영역을 나타내는 라벨 키 (우선순위 순)
ZONE_LABEL_KEYS = (
    "topology.ebs.csi.aws.com/zone",
    "topology.kubernetes.io/zone",
    "failure-domain.beta.kubernetes.io/zone",
)

# watch 재연결 백오프 (무한 재시도)
WATCH_RETRY_CONFIG = RetryConfig(max_retries=0, base_delay=1.0, max_delay=30.0)


def _zone_from_node_affinity(pv: Any) -> str:
    """PV nodeAffinity의 required 조건에서 가용 영역 추출 (없으면 빈 문자열)"""
    node_affinity = getattr(pv.spec, "node_affinity", None)
    required = getattr(node_affinity, "required", None)
    for term in getattr(required, "node_selector_terms", None) or []:
        for expr in term.match_expressions or []:
            if expr.key in ZONE_LABEL_KEYS and expr.values:
                return str(expr.values[0])
    return ""


def locator_from_volume(pv: Any, claim_key: str) -> str:
    """PersistentVolume 객체에서 EBS 로케이터 문자열 추출

    Raises:
        ResolutionError: EBS 볼륨 소스가 없거나 CSI 볼륨의 가용 영역을 알 수 없는 경우
    """
    spec = pv.spec
    ebs = getattr(spec, "aws_elastic_block_store", None)
    if ebs is not None and ebs.volume_id:
        return str(ebs.volume_id)

    csi = getattr(spec, "csi", None)
    if csi is not None and csi.driver in MANAGED_PROVISIONERS:
        zone = _zone_from_node_affinity(pv)
        if not zone:
            raise ResolutionError(claim_key, f"CSI 볼륨 {csi.volume_handle}의 가용 영역을 찾을 수 없습니다")
        return build_locator(zone, csi.volume_handle)

    raise ResolutionError(claim_key, f"PV {pv.metadata.name}에 EBS 볼륨 소스가 없습니다")


class ClaimEventSource:
    """PVC 이벤트 소스

    Example:
        source = ClaimEventSource(load_core_api(config), config)
        for event in source.watch_events():
            ...
    """

    def __init__(
        self,
        core_api: CoreV1Api,
        config: TaggerConfig,
        retry_config: RetryConfig = WATCH_RETRY_CONFIG,
    ):
        self.core_api = core_api
        self.config = config
        self.retry_config = retry_config
        self._stop = threading.Event()
        self._watcher: Any = None
        self._watcher_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # 변환
    # -------------------------------------------------------------------------

    def to_claim(self, obj: Any) -> StorageClaim:
        """V1PersistentVolumeClaim -> StorageClaim"""
        metadata = obj.metadata
        spec = getattr(obj, "spec", None)
        return StorageClaim(
            namespace=metadata.namespace or "",
            name=metadata.name or "",
            volume_name=(getattr(spec, "volume_name", None) or ""),
            annotations=dict(metadata.annotations or {}),
            locator_lookup=self.resolve_locator,
        )

    def to_event(self, raw: dict[str, Any]) -> ClaimEvent | None:
        """watch 이벤트 딕셔너리 -> ClaimEvent (PVC 객체가 아니면 None)"""
        obj = raw.get("object")
        if obj is None or getattr(obj, "metadata", None) is None:
            return None
        return ClaimEvent(EventKind.from_watch_type(str(raw.get("type", ""))), self.to_claim(obj))

    def resolve_locator(self, claim: StorageClaim) -> str:
        """PVC에 바인딩된 PV를 조회하여 EBS 로케이터 반환

        Raises:
            ResolutionError: PV 조회 실패 또는 EBS 볼륨이 아닌 경우
        """
        from kubernetes.client import ApiException

        try:
            pv = self.core_api.read_persistent_volume(claim.volume_name)
        except ApiException as e:
            raise ResolutionError(claim.key, f"PV {claim.volume_name} 조회 실패 (status={e.status})", cause=e) from e
        return locator_from_volume(pv, claim.key)

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    def _list_call(self) -> tuple[Any, dict[str, Any]]:
        if self.config.all_namespaces:
            return self.core_api.list_persistent_volume_claim_for_all_namespaces, {}
        return self.core_api.list_namespaced_persistent_volume_claim, {"namespace": self.config.namespace}

    def _list(self) -> tuple[list[ClaimEvent], str | None]:
        func, kwargs = self._list_call()
        result = func(**kwargs)
        events = [ClaimEvent(EventKind.ADDED, self.to_claim(item)) for item in result.items or []]
        resource_version = getattr(getattr(result, "metadata", None), "resource_version", None)
        return events, resource_version

    def list_events(self) -> list[ClaimEvent]:
        """전체 PVC를 ADDED 이벤트 목록으로 조회

        Raises:
            ClusterConfigError: PVC 목록 조회 권한이 없거나 조회 실패
        """
        from kubernetes.client import ApiException

        try:
            events, _ = self._list()
        except ApiException as e:
            raise ClusterConfigError("list_persistent_volume_claim", f"PVC 목록 조회 실패 (status={e.status})", e) from e
        logger.info(f"PVC {len(events)}개 조회")
        return events

    def stop(self) -> None:
        """watch 중단 요청 (다른 스레드/시그널 핸들러에서 호출)"""
        self._stop.set()
        with self._watcher_lock:
            watcher = self._watcher
        if watcher is not None:
            watcher.stop()

    def watch_events(self) -> Iterator[ClaimEvent]:
        """기존 PVC를 ADDED로 먼저 내보낸 뒤 변경 이벤트를 계속 내보냄

        최초 목록 조회 실패는 ClusterConfigError로 전파되고, 이후 watch 오류는
        백오프 후 재연결합니다. stop() 호출 시 종료합니다.
        """
        from kubernetes import watch
        from kubernetes.client import ApiException

        try:
            initial, resource_version = self._list()
        except ApiException as e:
            raise ClusterConfigError("list_persistent_volume_claim", f"PVC 목록 조회 실패 (status={e.status})", e) from e

        logger.info(f"PVC {len(initial)}개 조회, resourceVersion {resource_version}부터 watch 시작")
        yield from initial

        attempt = 0
        while not self._stop.is_set():
            watcher = watch.Watch()
            with self._watcher_lock:
                self._watcher = watcher
            func, kwargs = self._list_call()
            try:
                for raw in watcher.stream(
                    func,
                    resource_version=resource_version,
                    timeout_seconds=self.config.watch_timeout_seconds,
                    **kwargs,
                ):
                    if self._stop.is_set():
                        break
                    event = self.to_event(raw)
                    if event is None:
                        continue
                    rv = getattr(raw["object"].metadata, "resource_version", None)
                    if rv:
                        resource_version = rv
                    attempt = 0
                    yield event
            except ApiException as e:
                if e.status == 410:
                    # resourceVersion 없이 watch하면 현재 PVC 전체가 ADDED로 다시 전달됨
                    logger.warning("watch resourceVersion 만료, 처음부터 다시 watch")
                    resource_version = None
                    continue
                level = logging.WARNING if is_retryable(e) else logging.ERROR
                logger.log(level, f"PVC watch 오류 (status={e.status}): {e.reason}")
                self._backoff(attempt)
                attempt += 1
            except Exception:
                logger.exception("PVC watch 중 예상치 못한 오류")
                self._backoff(attempt)
                attempt += 1
            finally:
                with self._watcher_lock:
                    self._watcher = None

        logger.info("PVC watch 종료")

    def _backoff(self, attempt: int) -> None:
        delay = self.retry_config.get_delay(attempt)
        logger.debug(f"{delay:.2f}초 후 watch 재연결")
        self._stop.wait(timeout=delay)
