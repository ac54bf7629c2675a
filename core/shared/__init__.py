"""공유 유틸리티 - 재조정 코드와 CLI에서 공통 사용.

- aws: EBS 로케이터 파싱, 태그 문자열 파싱, EC2 태그 게이트웨이

의존성 구조:
    core.parallel / core.exceptions (인프라)
       ↑
    core.shared (공유 유틸리티)
       ↑
    core.reconcile / core.kube
"""

from . import aws

__all__ = ["aws"]
