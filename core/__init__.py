# core/__init__.py
"""
core - k8s-pvc-tagger 인프라 및 재조정 로직

PVC 어노테이션에 선언한 태그를 EBS 볼륨 태그로 전파합니다.

아키텍처:
    core/
    ├── kube/           # Kubernetes 클라이언트, PVC 이벤트 소스, 볼륨 해석
    ├── reconcile/      # 분류, 재조정, 이벤트 루프
    ├── parallel/       # boto3 client, 에러 분류/수집, sync 병렬 실행기
    ├── shared/         # 로케이터/태그 파서, EC2 태그 게이트웨이
    ├── config.py       # 중앙 설정 관리
    └── exceptions.py   # 통합 예외 계층

Usage:
    from core.config import TaggerConfig
    from core.kube import ClaimEventSource, load_core_api
    from core.reconcile import EventLoop, Reconciler
    from core.shared.aws.gateway import CloudTagGateway, create_session

    config = TaggerConfig.from_env(local=True)
    source = ClaimEventSource(load_core_api(config), config)
    gateway = CloudTagGateway(create_session(config.aws_profile))
    EventLoop(source.watch_events(), Reconciler(gateway)).run()
"""

from core import config, exceptions, kube, parallel, reconcile, shared

__all__: list[str] = [
    # 서브패키지
    "kube",
    "reconcile",
    "parallel",
    "shared",
    # 모듈
    "config",
    "exceptions",
]
