"""
core/parallel/types.py - 병렬 처리 공통 타입
"""

from enum import Enum


class ErrorCategory(Enum):
    """AWS / Kubernetes API 에러 분류"""

    THROTTLING = "throttling"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EXPIRED_TOKEN = "expired_token"
    INVALID_REQUEST = "invalid_request"
    SERVICE_ERROR = "service_error"
    UNKNOWN = "unknown"
