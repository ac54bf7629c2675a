"""
core/kube - Kubernetes API 연동

클러스터 설정 로드와 PVC 이벤트 소스를 제공합니다.
"""

from .client import load_core_api
from .source import ClaimEventSource, locator_from_volume

__all__: list[str] = [
    "load_core_api",
    "ClaimEventSource",
    "locator_from_volume",
]
