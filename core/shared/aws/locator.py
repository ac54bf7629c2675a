"""
core/shared/aws/locator.py - EBS 볼륨 로케이터 파서

Kubernetes PersistentVolume이 보고하는 EBS 로케이터 문자열을
리전과 볼륨 ID로 분해합니다.

    aws://eu-west-1b/vol-7iyw8ygidg  ->  VolumeRef(region="eu-west-1", volume_id="vol-7iyw8ygidg")

Usage:
    from core.shared.aws.locator import parse_locator

    ref = parse_locator("aws://us-east-1a/vol-abc123")
    ref.region     # "us-east-1"
    ref.volume_id  # "vol-abc123"
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.exceptions import LocatorParseError

# 가용 영역 코드의 마지막 소문자 한 글자 (eu-west-1b -> b)
_ZONE_SUFFIX = re.compile(r"[a-z]$")


@dataclass(frozen=True)
class VolumeRef:
    """EBS 볼륨 참조

    Attributes:
        region: AWS 리전 (예: "eu-west-1")
        volume_id: EBS 볼륨 ID (예: "vol-7iyw8ygidg")
    """

    region: str
    volume_id: str

    def __str__(self) -> str:
        return f"{self.region}/{self.volume_id}"


def zone_to_region(zone: str) -> str:
    """가용 영역 코드에서 마지막 소문자 한 글자를 제거하여 리전 반환"""
    return _ZONE_SUFFIX.sub("", zone, count=1)


def build_locator(zone: str, volume_id: str, scheme: str = "aws") -> str:
    """가용 영역과 볼륨 ID로 로케이터 문자열 생성 (CSI 볼륨용)"""
    return f"{scheme}://{zone}/{volume_id}"


def parse_locator(locator: str) -> VolumeRef:
    """`<scheme>://<zone>/<volume-id>` 형식의 로케이터 파싱

    Args:
        locator: PV의 awsElasticBlockStore.volumeID 값

    Returns:
        VolumeRef

    Raises:
        LocatorParseError: '/'로 나눈 세그먼트가 4개 미만인 경우
    """
    parts = locator.split("/")
    if len(parts) < 4:
        raise LocatorParseError(locator)

    zone, volume_id = parts[2], parts[3]
    return VolumeRef(region=zone_to_region(zone), volume_id=volume_id)
