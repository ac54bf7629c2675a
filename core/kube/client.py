"""
core/kube/client.py - Kubernetes API 클라이언트 생성

in-cluster 설정(서비스 어카운트) 또는 kubeconfig 파일로 CoreV1Api를 만듭니다.
기동 시 한 번만 호출되며, 실패는 프로세스 종료 사유입니다.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.exceptions import ClusterConfigError

if TYPE_CHECKING:
    from kubernetes.client import CoreV1Api

    from core.config import TaggerConfig

logger = logging.getLogger(__name__)


def load_core_api(config: TaggerConfig) -> CoreV1Api:
    """설정에 따라 CoreV1Api 생성

    local 모드이거나 kubeconfig가 명시되면 kubeconfig를, 그 외에는
    in-cluster 설정을 사용합니다.

    Raises:
        ClusterConfigError: 클러스터 설정을 로드할 수 없는 경우
    """
    from kubernetes import client
    from kubernetes import config as kube_config

    use_kubeconfig = config.local or bool(config.kubeconfig)
    source = config.kubeconfig_path if use_kubeconfig else "in-cluster"

    try:
        if use_kubeconfig:
            kube_config.load_kube_config(config_file=config.kubeconfig_path or None)
        else:
            kube_config.load_incluster_config()
    except (kube_config.ConfigException, OSError) as e:
        raise ClusterConfigError(source, "클러스터 설정을 로드할 수 없습니다", cause=e) from e

    logger.info(f"클러스터 설정 로드: {source}")
    return client.CoreV1Api()
