"""
tests/test_parallel_errors.py - core/parallel/errors.py 테스트
"""

import logging
import threading
from datetime import datetime

from botocore.exceptions import ClientError

from core.exceptions import GatewayWriteError, ResolutionError
from core.parallel.errors import (
    CollectedError,
    ErrorCollector,
    ErrorSeverity,
    safe_collect,
)
from core.parallel.types import ErrorCategory


def _write_error(code: str = "UnauthorizedOperation") -> GatewayWriteError:
    cause = ClientError({"Error": {"Code": code, "Message": "denied"}}, "CreateTags")
    return GatewayWriteError.from_client_error("create_tags", "vol-1", cause)


class TestErrorSeverity:
    """ErrorSeverity 열거형 테스트"""

    def test_all_severities_exist(self):
        """모든 심각도 레벨 존재 확인"""
        assert ErrorSeverity.CRITICAL.value == "critical"
        assert ErrorSeverity.WARNING.value == "warning"
        assert ErrorSeverity.INFO.value == "info"
        assert ErrorSeverity.DEBUG.value == "debug"


class TestCollectedError:
    """CollectedError 데이터 클래스 테스트"""

    def _make(self, **kwargs) -> CollectedError:
        values = {
            "timestamp": datetime(2024, 1, 1, 12, 0, 0),
            "namespace": "payments",
            "claim": "data-pg-0",
            "operation": "create_tags",
            "error_code": "UnauthorizedOperation",
            "error_message": "denied",
            "severity": ErrorSeverity.WARNING,
            "category": ErrorCategory.ACCESS_DENIED,
        }
        values.update(kwargs)
        return CollectedError(**values)

    def test_str_representation(self):
        """문자열 표현"""
        error = self._make(volume_id="vol-1", tag_key="team")
        assert str(error) == "[WARNING] payments/data-pg-0 (vol-1) - create_tags[team]: UnauthorizedOperation"

    def test_str_without_volume(self):
        error = self._make(operation="resolve_volume", error_code="ResolutionError")
        assert str(error) == "[WARNING] payments/data-pg-0 - resolve_volume: ResolutionError"

    def test_to_dict(self):
        data = self._make(volume_id="vol-1").to_dict()
        assert data["timestamp"] == "2024-01-01T12:00:00"
        assert data["severity"] == "warning"
        assert data["category"] == "access_denied"
        assert data["volume_id"] == "vol-1"
        assert data["tag_key"] is None


class TestErrorCollector:
    """ErrorCollector 테스트"""

    def test_collect_extracts_code_and_category(self):
        collector = ErrorCollector()

        collected = collector.collect(
            _write_error(), "payments", "data-pg-0", "create_tags", volume_id="vol-1", tag_key="team"
        )

        assert collected.error_code == "UnauthorizedOperation"
        assert collected.category == ErrorCategory.ACCESS_DENIED
        assert collected.tag_key == "team"
        assert collector.errors == [collected]
        assert collector.has_errors

    def test_empty_collector(self):
        collector = ErrorCollector()
        assert not collector.has_errors
        assert collector.get_summary() == "에러 없음"

    def test_summary_by_severity(self):
        collector = ErrorCollector()
        collector.collect(_write_error(), "payments", "a", "create_tags")
        collector.collect(_write_error(), "payments", "b", "create_tags")
        collector.collect(ResolutionError("payments/c", "unbound"), "payments", "c", "resolve_volume", ErrorSeverity.CRITICAL)

        assert collector.get_summary() == "에러 3건 (critical: 1건, warning: 2건)"

    def test_get_by_claim(self):
        collector = ErrorCollector()
        collector.collect(_write_error(), "payments", "a", "create_tags", tag_key="team")
        collector.collect(_write_error(), "payments", "a", "create_tags", tag_key="env")
        collector.collect(_write_error(), "billing", "b", "create_tags")

        grouped = collector.get_by_claim()

        assert len(grouped["payments/a"]) == 2
        assert len(grouped["billing/b"]) == 1

    def test_errors_returns_copy(self):
        collector = ErrorCollector()
        collector.collect(_write_error(), "payments", "a", "create_tags")
        collector.errors.clear()
        assert len(collector.errors) == 1

    def test_thread_safe(self):
        """여러 스레드에서 동시에 수집"""
        collector = ErrorCollector()

        def worker(n: int) -> None:
            for i in range(50):
                collector.collect(_write_error(), "ns", f"pvc-{n}-{i}", "create_tags", ErrorSeverity.DEBUG)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(collector.errors) == 200

    def test_critical_logged_as_error(self, caplog):
        collector = ErrorCollector()
        with caplog.at_level(logging.DEBUG, logger="core.parallel.errors"):
            collector.collect(_write_error(), "payments", "a", "describe_volumes", ErrorSeverity.CRITICAL)
        assert caplog.records[-1].levelno == logging.ERROR


class TestSafeCollect:
    """safe_collect 테스트"""

    def test_with_collector(self):
        collector = ErrorCollector()
        safe_collect(collector, _write_error(), "payments", "a", "create_tags", tag_key="team")
        assert collector.errors[0].tag_key == "team"

    def test_without_collector_logs_only(self, caplog):
        with caplog.at_level(logging.WARNING, logger="core.parallel.errors"):
            safe_collect(None, _write_error(), "payments", "a", "create_tags", volume_id="vol-1", tag_key="team")

        assert "[payments/a (vol-1)] create_tags[team]: UnauthorizedOperation" in caplog.text
