"""
tests/core/kube/test_kube_source.py - PVC 이벤트 소스 및 볼륨 해석 테스트

Kubernetes API 객체는 MagicMock / SimpleNamespace로 모킹합니다.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client import ApiException

from core.config import TaggerConfig
from core.exceptions import ClusterConfigError, ResolutionError
from core.kube.source import ClaimEventSource, locator_from_volume
from core.parallel.decorators import RetryConfig
from core.reconcile.types import PROVISIONER_ANNOTATION, EventKind

NO_WAIT = RetryConfig(max_retries=0, base_delay=0.0, max_delay=0.0, jitter=False)


def _pv(ebs_volume_id=None, csi_driver=None, volume_handle="vol-0abc", zone_key=None, zone="eu-west-1a"):
    """V1PersistentVolume 모양의 객체"""
    ebs = SimpleNamespace(volume_id=ebs_volume_id) if ebs_volume_id else None
    csi = SimpleNamespace(driver=csi_driver, volume_handle=volume_handle) if csi_driver else None
    node_affinity = None
    if zone_key:
        expr = SimpleNamespace(key=zone_key, values=[zone])
        term = SimpleNamespace(match_expressions=[expr])
        node_affinity = SimpleNamespace(required=SimpleNamespace(node_selector_terms=[term]))
    spec = SimpleNamespace(aws_elastic_block_store=ebs, csi=csi, node_affinity=node_affinity)
    return SimpleNamespace(metadata=SimpleNamespace(name="pvc-1234"), spec=spec)


def _list_result(items, resource_version="100"):
    result = MagicMock()
    result.items = items
    result.metadata.resource_version = resource_version
    return result


@pytest.fixture
def core_api():
    return MagicMock()


@pytest.fixture
def source(core_api):
    return ClaimEventSource(core_api, TaggerConfig(), retry_config=NO_WAIT)


class TestLocatorFromVolume:
    """locator_from_volume 테스트"""

    def test_in_tree_ebs(self):
        pv = _pv(ebs_volume_id="aws://eu-west-1a/vol-7iyw8ygidg")
        assert locator_from_volume(pv, "ns/pvc") == "aws://eu-west-1a/vol-7iyw8ygidg"

    @pytest.mark.parametrize(
        "zone_key",
        [
            "topology.ebs.csi.aws.com/zone",
            "topology.kubernetes.io/zone",
            "failure-domain.beta.kubernetes.io/zone",
        ],
    )
    def test_csi_volume_uses_node_affinity_zone(self, zone_key):
        """CSI 볼륨은 nodeAffinity의 가용 영역으로 로케이터 조합"""
        pv = _pv(csi_driver="ebs.csi.aws.com", volume_handle="vol-0abc", zone_key=zone_key, zone="us-east-1c")
        assert locator_from_volume(pv, "ns/pvc") == "aws://us-east-1c/vol-0abc"

    def test_csi_without_zone(self):
        pv = _pv(csi_driver="ebs.csi.aws.com")
        with pytest.raises(ResolutionError):
            locator_from_volume(pv, "ns/pvc")

    def test_other_csi_driver(self):
        pv = _pv(csi_driver="efs.csi.aws.com", zone_key="topology.kubernetes.io/zone")
        with pytest.raises(ResolutionError):
            locator_from_volume(pv, "ns/pvc")

    def test_no_volume_source(self):
        with pytest.raises(ResolutionError) as exc_info:
            locator_from_volume(_pv(), "ns/pvc")
        assert exc_info.value.claim == "ns/pvc"


class TestConversion:
    """API 객체 변환 테스트"""

    def test_to_claim(self, source, make_pvc_object):
        obj = make_pvc_object(annotations={PROVISIONER_ANNOTATION: "ebs.csi.aws.com"})

        claim = source.to_claim(obj)

        assert claim.key == "payments/data-pg-0"
        assert claim.volume_name == "pvc-1234"
        assert claim.annotations[PROVISIONER_ANNOTATION] == "ebs.csi.aws.com"
        assert claim.locator_lookup == source.resolve_locator

    def test_to_claim_unbound_without_annotations(self, source, make_pvc_object):
        claim = source.to_claim(make_pvc_object(volume_name=None, annotations=None))
        assert claim.volume_name == ""
        assert dict(claim.annotations) == {}

    def test_to_claim_copies_annotations(self, source, make_pvc_object):
        annotations = {"a": "1"}
        claim = source.to_claim(make_pvc_object(annotations=annotations))
        annotations["a"] = "2"
        assert claim.annotations["a"] == "1"

    @pytest.mark.parametrize(
        "watch_type,kind",
        [("ADDED", EventKind.ADDED), ("MODIFIED", EventKind.MODIFIED), ("DELETED", EventKind.DELETED), ("BOOKMARK", EventKind.OTHER)],
    )
    def test_to_event(self, source, make_pvc_object, watch_type, kind):
        event = source.to_event({"type": watch_type, "object": make_pvc_object()})
        assert event.kind == kind
        assert event.claim.name == "data-pg-0"

    def test_to_event_without_object(self, source):
        assert source.to_event({"type": "ERROR", "object": None}) is None


class TestResolveLocator:
    """resolve_locator 테스트"""

    def test_reads_bound_volume(self, source, core_api, make_pvc_object):
        core_api.read_persistent_volume.return_value = _pv(ebs_volume_id="aws://eu-west-1a/vol-1")
        claim = source.to_claim(make_pvc_object(volume_name="pvc-1234"))

        assert claim.resolve_locator() == "aws://eu-west-1a/vol-1"
        core_api.read_persistent_volume.assert_called_once_with("pvc-1234")

    def test_api_error_becomes_resolution_error(self, source, core_api, make_pvc_object):
        core_api.read_persistent_volume.side_effect = ApiException(status=404, reason="Not Found")
        claim = source.to_claim(make_pvc_object())

        with pytest.raises(ResolutionError) as exc_info:
            claim.resolve_locator()
        assert "404" in str(exc_info.value)


class TestListEvents:
    """list_events 테스트"""

    def test_all_namespaces(self, source, core_api, make_pvc_object):
        core_api.list_persistent_volume_claim_for_all_namespaces.return_value = _list_result(
            [make_pvc_object(name="a"), make_pvc_object(name="b")]
        )

        events = source.list_events()

        assert [e.claim.name for e in events] == ["a", "b"]
        assert all(e.kind == EventKind.ADDED for e in events)

    def test_single_namespace(self, core_api, make_pvc_object):
        core_api.list_namespaced_persistent_volume_claim.return_value = _list_result([make_pvc_object()])
        source = ClaimEventSource(core_api, TaggerConfig(namespace="payments"))

        assert len(source.list_events()) == 1
        core_api.list_namespaced_persistent_volume_claim.assert_called_once_with(namespace="payments")
        core_api.list_persistent_volume_claim_for_all_namespaces.assert_not_called()

    def test_list_failure_raises_cluster_config_error(self, source, core_api):
        core_api.list_persistent_volume_claim_for_all_namespaces.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(ClusterConfigError):
            source.list_events()


class TestWatchEvents:
    """watch_events 테스트"""

    def _raw(self, make_pvc_object, name, rv, watch_type="MODIFIED"):
        return {"type": watch_type, "object": make_pvc_object(name=name, resource_version=rv)}

    def test_list_then_watch_with_gone_restart(self, source, core_api, make_pvc_object):
        """초기 목록 후 watch, 410이면 resourceVersion 없이 재시작"""
        core_api.list_persistent_volume_claim_for_all_namespaces.return_value = _list_result(
            [make_pvc_object(name="initial")], resource_version="100"
        )

        def first_stream(*args, **kwargs):
            yield self._raw(make_pvc_object, "first", "101")
            raise ApiException(status=410, reason="Gone")

        def second_stream(*args, **kwargs):
            yield self._raw(make_pvc_object, "second", "200", "ADDED")

        with patch("kubernetes.watch.Watch") as watch_cls:
            stream = watch_cls.return_value.stream
            stream.side_effect = [first_stream(), second_stream()]

            received = []
            for event in source.watch_events():
                received.append((event.kind, event.claim.name))
                if len(received) == 3:
                    source.stop()

        assert received == [
            (EventKind.ADDED, "initial"),
            (EventKind.MODIFIED, "first"),
            (EventKind.ADDED, "second"),
        ]
        assert stream.call_args_list[0].kwargs["resource_version"] == "100"
        assert stream.call_args_list[1].kwargs["resource_version"] is None
        assert stream.call_args_list[0].kwargs["timeout_seconds"] == TaggerConfig().watch_timeout_seconds

    def test_reconnects_after_error_from_last_version(self, source, core_api, make_pvc_object):
        """일반 오류는 백오프 후 마지막 resourceVersion부터 재연결"""
        core_api.list_persistent_volume_claim_for_all_namespaces.return_value = _list_result([], "100")

        def failing_stream(*args, **kwargs):
            yield self._raw(make_pvc_object, "first", "150")
            raise ApiException(status=500, reason="Internal")

        def second_stream(*args, **kwargs):
            yield self._raw(make_pvc_object, "second", "160")

        with patch("kubernetes.watch.Watch") as watch_cls:
            stream = watch_cls.return_value.stream
            stream.side_effect = [failing_stream(), second_stream()]

            names = []
            for event in source.watch_events():
                names.append(event.claim.name)
                if len(names) == 2:
                    source.stop()

        assert names == ["first", "second"]
        assert stream.call_args_list[1].kwargs["resource_version"] == "150"

    def test_initial_list_failure(self, source, core_api):
        core_api.list_persistent_volume_claim_for_all_namespaces.side_effect = ApiException(status=401, reason="Unauthorized")

        with pytest.raises(ClusterConfigError):
            next(source.watch_events())

    def test_stop_before_watch(self, source, core_api, make_pvc_object):
        core_api.list_persistent_volume_claim_for_all_namespaces.return_value = _list_result([make_pvc_object()])

        with patch("kubernetes.watch.Watch") as watch_cls:
            source.stop()
            events = list(source.watch_events())

        assert len(events) == 1
        watch_cls.return_value.stream.assert_not_called()
