"""
core/config.py - 중앙 설정 관리

프로세스 전역 상수(Settings)와 실행 설정(TaggerConfig)을 정의합니다.
TaggerConfig는 CLI에서 한 번 생성되어 클러스터 클라이언트, 태그 게이트웨이,
이벤트 루프 생성자에 명시적으로 전달됩니다. 코어 모듈은 환경변수나
전역 플래그를 직접 읽지 않습니다.

Usage:
    from core.config import TaggerConfig, settings

    config = TaggerConfig.from_env(local=True, verbose=True)
    print(config.kubeconfig_path)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path

from core.exceptions import ConfigError

# 환경변수 접두사 (PVC_TAGGER_NAMESPACE 등)
ENV_PREFIX = "PVC_TAGGER_"

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """불변 기본 설정값"""

    API_CONNECT_TIMEOUT: int = 10
    API_TIMEOUT: int = 30
    API_RETRY_COUNT: int = 5
    API_MAX_POOL_CONNECTIONS: int = 25
    DEFAULT_TAG_SEPARATOR: str = ","
    DEFAULT_MAX_WORKERS: int = 10
    WATCH_TIMEOUT_SECONDS: int = 300
    PACKAGE_NAME: str = "k8s-pvc-tagger"


settings = Settings()


# =============================================================================
# 환경변수 헬퍼
# =============================================================================


def get_env_bool(name: str, default: bool = False) -> bool:
    """환경변수를 bool로 변환 (인식할 수 없는 값이면 default)"""
    value = os.environ.get(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def get_env_int(name: str, default: int = 0) -> int:
    """환경변수를 int로 변환 (변환 실패 시 default)"""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_default_profile() -> str | None:
    """AWS_PROFILE → AWS_DEFAULT_PROFILE 순으로 프로파일 조회"""
    return os.environ.get("AWS_PROFILE") or os.environ.get("AWS_DEFAULT_PROFILE")


def get_default_kubeconfig() -> str:
    """기본 kubeconfig 경로 (~/.kube/config, HOME이 없으면 빈 문자열)"""
    home = os.environ.get("HOME") or os.environ.get("USERPROFILE")
    if not home:
        return ""
    return str(Path(home) / ".kube" / "config")


@lru_cache(maxsize=1)
def get_version() -> str:
    """설치된 패키지 버전 (개발 트리에서는 0.0.0-dev)"""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version(settings.PACKAGE_NAME)
    except PackageNotFoundError:
        return "0.0.0-dev"


# =============================================================================
# 로그 설정
# =============================================================================


@dataclass
class LogConfig:
    """로깅 설정

    Attributes:
        level: 로그 레벨 이름
        format: logging.Formatter 형식 문자열 (시간/레벨은 RichHandler가 표시)
        date_format: 시간 형식
    """

    level: str = "INFO"
    format: str = "%(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_env(cls) -> LogConfig:
        """LOG_LEVEL / LOG_FORMAT 환경변수에서 로드"""
        default = cls()
        return cls(
            level=os.environ.get("LOG_LEVEL", default.level).upper(),
            format=os.environ.get("LOG_FORMAT", default.format),
            date_format=default.date_format,
        )


# =============================================================================
# 실행 설정
# =============================================================================


@dataclass(frozen=True)
class TaggerConfig:
    """PVC Tagger 실행 설정

    Attributes:
        kubeconfig: kubeconfig 파일 경로 (local 모드에서만 사용)
        local: True이면 kubeconfig, False이면 in-cluster 설정 사용
        verbose: 상세 로그 출력
        namespace: 감시할 네임스페이스 (빈 문자열이면 전체)
        aws_profile: AWS 프로파일 (None이면 기본 자격 증명 체인)
        max_workers: sync 모드 동시 처리 스레드 수
        watch_timeout_seconds: watch 스트림 재연결 주기
    """

    kubeconfig: str = ""
    local: bool = False
    verbose: bool = False
    namespace: str = ""
    aws_profile: str | None = None
    max_workers: int = settings.DEFAULT_MAX_WORKERS
    watch_timeout_seconds: int = settings.WATCH_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigError("max_workers", f"1 이상이어야 합니다 (입력값: {self.max_workers})")
        if self.watch_timeout_seconds < 1:
            raise ConfigError(
                "watch_timeout_seconds", f"1 이상이어야 합니다 (입력값: {self.watch_timeout_seconds})"
            )

    @property
    def kubeconfig_path(self) -> str:
        """local 모드에서 사용할 kubeconfig 경로"""
        return self.kubeconfig or get_default_kubeconfig()

    @property
    def all_namespaces(self) -> bool:
        return not self.namespace

    @classmethod
    def from_env(cls, **overrides: object) -> TaggerConfig:
        """PVC_TAGGER_* 환경변수에서 설정을 만들고 overrides를 덮어씀

        None인 override 값은 무시합니다 (CLI 미지정 옵션).
        """
        base = cls(
            kubeconfig=os.environ.get(f"{ENV_PREFIX}KUBECONFIG", ""),
            local=get_env_bool(f"{ENV_PREFIX}LOCAL", False),
            verbose=get_env_bool(f"{ENV_PREFIX}VERBOSE", False),
            namespace=os.environ.get(f"{ENV_PREFIX}NAMESPACE", ""),
            aws_profile=get_default_profile(),
            max_workers=get_env_int(f"{ENV_PREFIX}MAX_WORKERS", settings.DEFAULT_MAX_WORKERS),
            watch_timeout_seconds=get_env_int(f"{ENV_PREFIX}WATCH_TIMEOUT", settings.WATCH_TIMEOUT_SECONDS),
        )
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(base, **changes) if changes else base
