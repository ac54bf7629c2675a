"""AWS 관련 공유 유틸리티.

하위 모듈:
- locator: EBS 볼륨 로케이터 -> (리전, 볼륨 ID)
- tags: 태그 어노테이션 파싱, AWS 태그 형식 변환
- gateway: EC2 볼륨 태그 조회/생성
"""

from . import gateway, locator, tags

__all__ = ["locator", "tags", "gateway"]
