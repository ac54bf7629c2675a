"""
tests/conftest.py - pytest 공통 픽스처

AWS 자격 증명 격리, PVC/이벤트 팩토리, 호출을 기록하는 가짜 게이트웨이를 제공합니다.

Usage:
    def test_something(make_event, fake_gateway):
        event = make_event(tags="team=payments")
        outcome = Reconciler(fake_gateway).reconcile(event)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest

from core.exceptions import GatewayFetchError, GatewayWriteError
from core.reconcile.types import (
    PROVISIONER_ANNOTATION,
    SEPARATOR_ANNOTATION,
    TAGS_ANNOTATION,
    ClaimEvent,
    EventKind,
    StorageClaim,
)

DEFAULT_LOCATOR = "aws://eu-west-1a/vol-7iyw8ygidg"


# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """테스트 환경 설정 (실제 AWS/클러스터 설정을 읽지 않도록 격리)"""
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("AWS_DEFAULT_PROFILE", raising=False)
    for name in ("KUBECONFIG", "LOCAL", "VERBOSE", "NAMESPACE", "MAX_WORKERS", "WATCH_TIMEOUT"):
        monkeypatch.delenv(f"PVC_TAGGER_{name}", raising=False)
    yield


# =============================================================================
# PVC / 이벤트 팩토리
# =============================================================================


def build_claim(
    name: str = "data-pg-0",
    namespace: str = "payments",
    volume_name: str = "pvc-1234",
    provisioner: str | None = "ebs.csi.aws.com",
    tags: str | None = None,
    separator: str | None = None,
    locator: str | None = DEFAULT_LOCATOR,
    annotations: dict[str, str] | None = None,
) -> StorageClaim:
    """테스트용 StorageClaim 생성

    locator가 None이면 lookup 없이 생성합니다.
    """
    values: dict[str, str] = {}
    if provisioner is not None:
        values[PROVISIONER_ANNOTATION] = provisioner
    if tags is not None:
        values[TAGS_ANNOTATION] = tags
    if separator is not None:
        values[SEPARATOR_ANNOTATION] = separator
    if annotations:
        values.update(annotations)

    lookup = (lambda _claim: locator) if locator is not None else None
    return StorageClaim(
        namespace=namespace,
        name=name,
        volume_name=volume_name,
        annotations=values,
        locator_lookup=lookup,
    )


@pytest.fixture
def make_claim():
    """StorageClaim 팩토리"""
    return build_claim


@pytest.fixture
def make_event():
    """ClaimEvent 팩토리 (kind 기본값 ADDED)"""

    def _make(kind: EventKind = EventKind.ADDED, **kwargs) -> ClaimEvent:
        return ClaimEvent(kind, build_claim(**kwargs))

    return _make


# =============================================================================
# 가짜 게이트웨이
# =============================================================================


@dataclass
class FakeGateway:
    """CloudTagGateway 대역

    Attributes:
        tags: {(region, volume_id): {(key, value)}} 현재 태그
        fetch_error_code: 설정 시 current_tags가 GatewayFetchError 발생
        fail_keys: create_tag가 GatewayWriteError를 발생시킬 태그 키
        fetch_calls: current_tags 호출 기록
        create_calls: create_tag 호출 기록 (region, volume_id, key, value)
    """

    tags: dict[tuple[str, str], set[tuple[str, str]]] = field(default_factory=dict)
    fetch_error_code: str | None = None
    fail_keys: set[str] = field(default_factory=set)
    fetch_calls: list[tuple[str, str]] = field(default_factory=list)
    create_calls: list[tuple[str, str, str, str]] = field(default_factory=list)

    def current_tags(self, region: str, volume_id: str) -> set[tuple[str, str]]:
        self.fetch_calls.append((region, volume_id))
        if self.fetch_error_code:
            raise GatewayFetchError("describe_volumes", volume_id, self.fetch_error_code, "fetch failed")
        return set(self.tags.get((region, volume_id), set()))

    def create_tag(self, region: str, volume_id: str, key: str, value: str) -> None:
        self.create_calls.append((region, volume_id, key, value))
        if key in self.fail_keys:
            raise GatewayWriteError("create_tags", volume_id, "UnauthorizedOperation", "denied")
        current = self.tags.setdefault((region, volume_id), set())
        # 같은 키는 덮어씀
        for pair in [p for p in current if p[0] == key]:
            current.discard(pair)
        current.add((key, value))


@pytest.fixture
def fake_gateway():
    """호출을 기록하는 가짜 게이트웨이"""
    return FakeGateway()


# =============================================================================
# Kubernetes 객체 모킹
# =============================================================================


def build_pvc_object(
    name: str = "data-pg-0",
    namespace: str = "payments",
    volume_name: str | None = "pvc-1234",
    annotations: dict[str, str] | None = None,
    resource_version: str = "100",
) -> SimpleNamespace:
    """V1PersistentVolumeClaim 모양의 객체"""
    metadata = SimpleNamespace(
        name=name,
        namespace=namespace,
        annotations=annotations,
        resource_version=resource_version,
    )
    return SimpleNamespace(metadata=metadata, spec=SimpleNamespace(volume_name=volume_name))


@pytest.fixture
def make_pvc_object():
    """V1PersistentVolumeClaim 모양의 객체 팩토리"""
    return build_pvc_object
