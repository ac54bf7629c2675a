"""
core/reconcile/classifier.py - 스토리지 백엔드 분류

PVC 어노테이션의 프로비저너 값으로 EBS 기반 볼륨인지 판단합니다.
새 CSI 드라이버 이름은 MANAGED_PROVISIONERS에 한 줄 추가로 지원합니다.
"""

from collections.abc import Mapping

from .types import PROVISIONER_ANNOTATION

MANAGED_PROVISIONERS: frozenset[str] = frozenset(
    {
        "kubernetes.io/aws-ebs",  # in-tree 드라이버
        "ebs.csi.aws.com",
        "kubernetes.io/ebs.csi.aws.com",
    }
)


def is_managed(annotations: Mapping[str, str] | None) -> bool:
    """프로비저너 어노테이션이 관리 대상 목록에 있으면 True"""
    if not annotations:
        return False
    return annotations.get(PROVISIONER_ANNOTATION) in MANAGED_PROVISIONERS
