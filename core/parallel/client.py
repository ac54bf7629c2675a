"""
core/parallel/client.py - EC2 태그 API용 boto3 client 생성

retry 횟수, 타임아웃, 연결 풀 크기는 core.config.settings에서 가져옵니다.
태그 API는 리전 단위이므로 CloudTagGateway가 리전마다 한 번 호출합니다.

Example:
    from core.parallel.client import get_client

    ec2 = get_client(session, "ec2", region_name="eu-west-1")
    ec2.describe_volumes(VolumeIds=["vol-0123"])
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, cast

from core.config import settings

if TYPE_CHECKING:
    import boto3
    from botocore.config import Config

RetryMode = Literal["legacy", "standard", "adaptive"]

# 스로틀링 시 전송 속도를 스스로 낮춤
DEFAULT_RETRY_MODE: RetryMode = "adaptive"


def build_client_config(
    max_attempts: int | None = None,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
) -> Config:
    """settings 기반 botocore Config 생성

    Args:
        max_attempts: 최대 시도 횟수 (None이면 settings.API_RETRY_COUNT)
        retry_mode: 재시도 모드
    """
    from botocore.config import Config

    attempts = settings.API_RETRY_COUNT if max_attempts is None else max_attempts
    return Config(
        retries={"max_attempts": attempts, "mode": retry_mode},  # pyright: ignore[reportArgumentType]
        connect_timeout=settings.API_CONNECT_TIMEOUT,
        read_timeout=settings.API_TIMEOUT,
        max_pool_connections=settings.API_MAX_POOL_CONNECTIONS,
    )


def get_client(
    session: boto3.Session,
    service_name: str,
    region_name: str | None = None,
    max_attempts: int | None = None,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    **kwargs: Any,
) -> Any:
    """retry/타임아웃이 적용된 boto3 client 생성

    Args:
        session: 기동 시 생성한 boto3 Session
        service_name: AWS 서비스 이름
        region_name: 리전 (None이면 세션 기본값)
        max_attempts: 최대 시도 횟수 (None이면 settings 값)
        retry_mode: 재시도 모드
        **kwargs: session.client()에 전달할 추가 인자. config가 있으면 기본 Config에 병합

    Returns:
        boto3 client
    """
    config = build_client_config(max_attempts, retry_mode)
    if "config" in kwargs:
        config = config.merge(kwargs.pop("config"))

    return session.client(  # pyright: ignore[reportCallIssue]
        cast(Any, service_name),
        region_name=region_name,
        config=config,
        **kwargs,
    )
