"""
core/exceptions.py - 통합 예외 계층 구조

PVC 태그 전파 전체에서 사용되는 예외 클래스들을 정의합니다.
재조정(reconcile) 중 발생하는 예외는 모두 이벤트 단위로 복구 가능하며,
기동 시점의 예외(클러스터 설정, AWS 세션)만 프로세스를 종료시킵니다.

예외 계층 구조:
    TaggerError (베이스)
    ├── ConfigError (설정 관련)
    ├── ClusterConfigError (클러스터 설정 로드 실패, 기동 시 치명적)
    ├── SessionError (AWS 세션 생성 실패, 기동 시 치명적)
    ├── ResolutionError (PVC → 볼륨 로케이터 해석 실패)
    │   └── LocatorParseError (로케이터 형식 오류)
    └── GatewayError (EC2 태그 API 호출 실패)
        ├── GatewayFetchError (현재 태그 조회 실패)
        └── GatewayWriteError (태그 생성 실패)

Usage:
    from core.exceptions import GatewayWriteError

    try:
        ec2.create_tags(Resources=[volume_id], Tags=[...])
    except ClientError as e:
        raise GatewayWriteError.from_client_error(
            operation="create_tags",
            volume_id=volume_id,
            client_error=e,
        ) from e
"""

from typing import Any, Dict, Optional

# =============================================================================
# 베이스 예외
# =============================================================================


class TaggerError(Exception):
    """PVC Tagger 기본 예외 클래스

    모든 커스텀 예외의 베이스 클래스입니다.

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 설정/기동 관련 예외
# =============================================================================


class ConfigError(TaggerError):
    """설정 관련 예외"""

    def __init__(
        self,
        key: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"설정 오류 [{key}]: {message}"
        super().__init__(full_message, cause)
        self.config_key = key
        self.details["config_key"] = key


class ClusterConfigError(TaggerError):
    """클러스터 접속 설정(in-cluster / kubeconfig) 로드 실패"""

    def __init__(
        self,
        source: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"클러스터 설정 오류 [{source}]: {message}"
        super().__init__(full_message, cause)
        self.source = source
        self.details["source"] = source


class SessionError(TaggerError):
    """AWS 세션 생성 실패"""

    def __init__(
        self,
        identifier: str,  # profile_name or "default"
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"세션 오류 [{identifier}]: {message}"
        super().__init__(full_message, cause)
        self.identifier = identifier
        self.details["identifier"] = identifier


# =============================================================================
# 재조정 관련 예외 (이벤트 단위로 복구)
# =============================================================================


class ResolutionError(TaggerError):
    """PVC에 바인딩된 볼륨 로케이터를 해석할 수 없는 경우"""

    def __init__(
        self,
        claim: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"볼륨 해석 실패 [{claim}]: {message}"
        super().__init__(full_message, cause)
        self.claim = claim
        self.details["claim"] = claim


class LocatorParseError(ResolutionError):
    """볼륨 로케이터 형식 오류

    `aws://<zone>/<volume-id>` 형식이 아닌 경우 발생합니다.
    """

    def __init__(self, locator: str, reason: str = "예상 형식: <scheme>://<zone>/<volume-id>"):
        super().__init__(claim=locator, message=f"잘못된 로케이터 '{locator}' ({reason})")
        self.locator = locator
        self.details["locator"] = locator


class GatewayError(TaggerError):
    """EC2 태그 API 호출 관련 예외

    boto3/botocore의 ClientError를 래핑하여 일관된 예외 처리를 제공합니다.
    """

    def __init__(
        self,
        operation: str,
        volume_id: str,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        message = f"ec2.{operation} [{volume_id}]"
        if error_code:
            message = f"{message} 실패 ({error_code})"
        if error_message:
            message = f"{message}: {error_message}"

        super().__init__(message, cause)
        self.operation = operation
        self.volume_id = volume_id
        self.error_code = error_code
        self.error_message = error_message
        self.details.update(
            {
                "operation": operation,
                "volume_id": volume_id,
                "error_code": error_code,
            }
        )

    @classmethod
    def from_client_error(
        cls,
        operation: str,
        volume_id: str,
        client_error: Exception,
    ) -> "GatewayError":
        """botocore.exceptions.ClientError로부터 생성

        Args:
            operation: API 작업 이름
            volume_id: 대상 EBS 볼륨 ID
            client_error: ClientError 또는 BotoCoreError 예외

        Returns:
            호출한 클래스의 인스턴스
        """
        error_code = None
        error_message = None

        # ClientError 형식 파싱 (BotoCoreError는 response 없음)
        response = getattr(client_error, "response", None)
        if isinstance(response, dict):
            error_info = response.get("Error", {})
            error_code = error_info.get("Code")
            error_message = error_info.get("Message")

        return cls(
            operation=operation,
            volume_id=volume_id,
            error_code=error_code,
            error_message=error_message,
            cause=client_error,
        )


class GatewayFetchError(GatewayError):
    """현재 볼륨 태그 조회 실패 - 해당 이벤트의 태그 적용을 중단"""

    pass


class GatewayWriteError(GatewayError):
    """단일 태그 생성 실패 - 해당 태그만 failed로 기록하고 배치는 계속"""

    pass


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================

ACCESS_DENIED_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedAccess",
    "UnauthorizedOperation",
}

THROTTLING_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RateExceeded",
}

NOT_FOUND_CODES = {
    "ResourceNotFoundException",
    "NotFoundException",
    "InvalidVolume.NotFound",
    "InvalidID",
}


def _error_code(error: Exception) -> Optional[str]:
    if isinstance(error, GatewayError):
        return error.error_code
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code", "")
    return None


def is_access_denied(error: Exception) -> bool:
    """액세스 거부 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        액세스 거부 오류이면 True
    """
    return _error_code(error) in ACCESS_DENIED_CODES


def is_throttling(error: Exception) -> bool:
    """스로틀링 오류인지 확인"""
    return _error_code(error) in THROTTLING_CODES


def is_not_found(error: Exception) -> bool:
    """리소스를 찾을 수 없는 오류인지 확인 (볼륨 삭제됨 등)"""
    return _error_code(error) in NOT_FOUND_CODES


def format_error_for_user(error: Exception) -> str:
    """사용자에게 표시할 에러 메시지 포맷팅

    Args:
        error: 예외

    Returns:
        사용자 친화적인 에러 메시지
    """
    if isinstance(error, TaggerError):
        # 커스텀 예외는 이미 포맷팅됨
        return str(error)

    # boto3 ClientError
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        error_info = response.get("Error", {})
        code = error_info.get("Code", "UnknownError")
        message = error_info.get("Message", str(error))

        friendly_messages = {
            "UnauthorizedOperation": "권한이 없습니다. ec2:DescribeVolumes / ec2:CreateTags 정책을 확인하세요.",
            "ExpiredToken": "인증 토큰이 만료되었습니다.",
            "InvalidClientTokenId": "잘못된 자격 증명입니다.",
            "RequestLimitExceeded": "요청이 너무 많습니다. 잠시 후 다시 시도하세요.",
        }

        return friendly_messages.get(code, f"{code}: {message}")

    return str(error)
