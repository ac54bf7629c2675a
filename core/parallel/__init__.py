"""
core/parallel - 병렬 처리 및 API 에러 처리 모듈

주요 구성 요소:
- get_client: retry가 설정된 boto3 client 생성
- VolumeSerializedExecutor: 볼륨별 직렬화 병렬 재조정 (sync 모드)
- ErrorCollector: 재조정 에러 수집
- categorize_error / RetryConfig: 에러 분류, 재연결 백오프

Example:
    from core.parallel import ParallelConfig, VolumeSerializedExecutor

    executor = VolumeSerializedExecutor(reconciler, ParallelConfig(max_workers=10))
    result = executor.execute(events)

    if result.has_failures:
        print(collector.get_summary())
"""

from .client import get_client
from .decorators import RetryConfig, categorize_error, get_error_code, is_retryable
from .errors import CollectedError, ErrorCollector, ErrorSeverity, safe_collect
from .executor import ParallelConfig, SyncResult, VolumeSerializedExecutor, group_by_volume
from .types import ErrorCategory

__all__: list[str] = [
    # Executor
    "VolumeSerializedExecutor",
    "ParallelConfig",
    "SyncResult",
    "group_by_volume",
    # Client (retry 적용)
    "get_client",
    # Decorators
    "RetryConfig",
    "categorize_error",
    "get_error_code",
    "is_retryable",
    # Error handling
    "ErrorCollector",
    "ErrorSeverity",
    "CollectedError",
    "safe_collect",
    # Types
    "ErrorCategory",
]
