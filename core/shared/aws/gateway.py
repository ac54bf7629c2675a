"""
core/shared/aws/gateway.py - EBS 볼륨 태그 게이트웨이

EC2 태그 API를 감싸는 유일한 외부 쓰기 지점입니다.

- current_tags: DescribeVolumes(VolumeIds=[id]) 한 번으로 현재 태그 조회
- create_tag: CreateTags로 단일 리소스에 단일 태그 생성/덮어쓰기

EC2 API는 리전 단위이므로 리전별 client를 생성하며, 같은 리전의 client는
스레드 세이프하게 재사용합니다. 조회 결과는 캐시하지 않습니다.

Usage:
    import boto3
    from core.shared.aws.gateway import CloudTagGateway

    gateway = CloudTagGateway(boto3.Session())
    current = gateway.current_tags("us-east-1", "vol-abc123")
    if ("team", "infra") not in current:
        gateway.create_tag("us-east-1", "vol-abc123", "team", "infra")
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import GatewayFetchError, GatewayWriteError, SessionError
from core.parallel.client import get_client

from .tags import TagPair, tags_from_aws, to_aws_tags

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)


def create_session(profile_name: str | None = None) -> boto3.Session:
    """기동 시 AWS 세션 생성

    Raises:
        SessionError: 프로파일을 찾을 수 없는 등 세션 생성 실패
    """
    import boto3

    try:
        return boto3.Session(profile_name=profile_name) if profile_name else boto3.Session()
    except BotoCoreError as e:
        raise SessionError(profile_name or "default", "AWS 세션을 생성할 수 없습니다", cause=e) from e


class CloudTagGateway:
    """EC2 볼륨 태그 조회/생성 게이트웨이"""

    def __init__(self, session: boto3.Session, max_attempts: int | None = None):
        """초기화

        Args:
            session: 기동 시 생성된 boto3 Session
            max_attempts: client 최대 시도 횟수 (None이면 settings.API_RETRY_COUNT)
        """
        self.session = session
        self._max_attempts = max_attempts
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def _client(self, region: str) -> Any:
        """리전별 EC2 client (최초 요청 시 생성)"""
        with self._lock:
            client = self._clients.get(region)
            if client is None:
                client = get_client(self.session, "ec2", region_name=region, max_attempts=self._max_attempts)
                self._clients[region] = client
            return client

    def current_tags(self, region: str, volume_id: str) -> set[TagPair]:
        """볼륨에 현재 붙어 있는 태그 조회

        Args:
            region: AWS 리전
            volume_id: EBS 볼륨 ID

        Returns:
            {(key, value)} 집합

        Raises:
            GatewayFetchError: 인증/전송/볼륨 없음 등 모든 조회 실패
        """
        try:
            resp = self._client(region).describe_volumes(VolumeIds=[volume_id])
        except (ClientError, BotoCoreError) as e:
            raise GatewayFetchError.from_client_error("describe_volumes", volume_id, e) from e

        volumes = resp.get("Volumes", [])
        if not volumes:
            raise GatewayFetchError(
                operation="describe_volumes",
                volume_id=volume_id,
                error_code="InvalidVolume.NotFound",
                error_message="응답에 볼륨이 없습니다",
            )

        tags = tags_from_aws(volumes[0].get("Tags"))
        logger.debug(f"[{region}/{volume_id}] 현재 태그 {len(tags)}개")
        return tags

    def create_tag(self, region: str, volume_id: str, key: str, value: str) -> None:
        """볼륨에 단일 태그 생성 (같은 키가 있으면 값 덮어씀)

        Raises:
            GatewayWriteError: CreateTags 호출 실패
        """
        try:
            self._client(region).create_tags(
                Resources=[volume_id],
                Tags=to_aws_tags([(key, value)]),
            )
        except (ClientError, BotoCoreError) as e:
            raise GatewayWriteError.from_client_error("create_tags", volume_id, e) from e

        logger.debug(f"[{region}/{volume_id}] 태그 생성: {key}={value}")
