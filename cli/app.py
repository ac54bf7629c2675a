"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 CLI 애플리케이션 진입점입니다.

명령어 구조:
    pvc-tagger --version                    # 버전 표시
    pvc-tagger run                          # PVC watch 후 태그 전파 (상주)
    pvc-tagger sync                         # 전체 PVC 한 번 재조정 후 종료
    pvc-tagger parse-locator <locator>      # 볼륨 로케이터 해석 확인
    pvc-tagger parse-tags <raw>             # 태그 어노테이션 파싱 확인

공통 옵션 (run / sync):
    --kubeconfig PATH   kubeconfig 경로 (기본: ~/.kube/config, --local 필요)
    --local             클러스터 밖에서 kubeconfig로 실행
    -v, --verbose       DEBUG 로그 출력
    -n, --namespace     감시할 네임스페이스 (기본: 전체)
    -p, --profile       AWS 프로파일

종료 코드:
    0   정상 종료
    1   기동 실패 (클러스터 설정 / AWS 세션 / 설정 값) 또는 sync 중 실패 발생

Usage:
    $ pvc-tagger run --local -v
    $ pvc-tagger sync -n payments --max-workers 4
    $ python -m cli.app parse-tags "team=payments,env=prod"
"""

from __future__ import annotations

import json
import logging
import signal
from collections.abc import Callable
from typing import Any

import click
from rich.markup import escape

from core.config import LogConfig, TaggerConfig, get_version
from core.exceptions import (
    ClusterConfigError,
    ConfigError,
    LocatorParseError,
    SessionError,
    format_error_for_user,
)
from core.kube import ClaimEventSource, load_core_api
from core.parallel import ErrorCollector, ParallelConfig, VolumeSerializedExecutor
from core.reconcile import EventLoop, Reconciler
from core.shared.aws.gateway import CloudTagGateway, create_session
from core.shared.aws.locator import parse_locator
from core.shared.aws.tags import DEFAULT_SEPARATOR, format_tag_spec, parse_tag_spec
from cli.ui.console import (
    console,
    print_error,
    print_info,
    print_outcome_table,
    print_success,
    print_table,
    print_warning,
    setup_logging,
)

logger = logging.getLogger(__name__)

VERSION = get_version()

# 기동 실패로 간주하는 예외 (종료 코드 1)
STARTUP_ERRORS = (ConfigError, ClusterConfigError, SessionError)


# =============================================================================
# 공통 옵션 / 런타임 구성
# =============================================================================


def runtime_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """run / sync 공통 옵션"""
    options = [
        click.option("--kubeconfig", default=None, help="kubeconfig 경로 (기본: ~/.kube/config)"),
        click.option("--local", is_flag=True, help="클러스터 밖에서 kubeconfig로 실행"),
        click.option("-v", "--verbose", is_flag=True, help="DEBUG 로그 출력"),
        click.option("-n", "--namespace", default=None, help="감시할 네임스페이스 (기본: 전체)"),
        click.option("-p", "--profile", "aws_profile", default=None, help="AWS 프로파일"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(**overrides: Any) -> TaggerConfig:
    """환경변수 + CLI 옵션으로 TaggerConfig 생성 후 로깅 설정

    Raises:
        SystemExit: 설정 값이 잘못된 경우 (종료 코드 1)
    """
    try:
        config = TaggerConfig.from_env(**overrides)
    except ConfigError as e:
        print_error(format_error_for_user(e))
        raise SystemExit(1) from e

    setup_logging(LogConfig.from_env(), verbose=config.verbose)
    logger.debug(f"설정: {config}")
    return config


def _build_runtime(
    config: TaggerConfig, collector: ErrorCollector | None = None
) -> tuple[ClaimEventSource, Reconciler]:
    """클러스터 클라이언트, 태그 게이트웨이, 재조정기 생성

    collector가 None이면 재조정 에러는 로깅만 됩니다 (run).
    sync만 수집기를 넘겨 종료 시 요약에 사용합니다.

    Raises:
        ClusterConfigError: 클러스터 설정 로드 실패
        SessionError: AWS 세션 생성 실패
    """
    core_api = load_core_api(config)
    source = ClaimEventSource(core_api, config)

    session = create_session(config.aws_profile)
    gateway = CloudTagGateway(session)

    reconciler = Reconciler(gateway, collector=collector)
    return source, reconciler


def _install_signal_handlers(stop: Callable[[], None]) -> None:
    """SIGINT / SIGTERM 수신 시 watch 종료 요청"""

    def handler(signum: int, _frame: Any) -> None:
        logger.info(f"시그널 {signal.Signals(signum).name} 수신, 종료 중...")
        stop()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


# =============================================================================
# CLI 그룹
# =============================================================================


@click.group()
@click.version_option(VERSION, prog_name="pvc-tagger")
def cli() -> None:
    """PVC 어노테이션의 태그를 EBS 볼륨에 전파합니다.

    \b
    관리 대상 PVC: storage-provisioner 어노테이션이
      kubernetes.io/aws-ebs, ebs.csi.aws.com, kubernetes.io/ebs.csi.aws.com 중 하나
    태그 어노테이션:
      volume.beta.kubernetes.io/additional-resource-tags
      volume.beta.kubernetes.io/additional-resource-tags-separator (기본 ',')
    """


@cli.command("run")
@runtime_options
@click.option("--watch-timeout", type=int, default=None, help="watch 재연결 주기 (초)")
def run_command(
    kubeconfig: str | None,
    local: bool,
    verbose: bool,
    namespace: str | None,
    aws_profile: str | None,
    watch_timeout: int | None,
) -> None:
    """PVC 변경을 watch하며 태그 전파 (상주 실행)

    \b
    Examples:
        pvc-tagger run                      # in-cluster
        pvc-tagger run --local -v           # ~/.kube/config 사용
        pvc-tagger run --local -n payments  # 네임스페이스 한정
    """
    config = _load_config(
        kubeconfig=kubeconfig,
        local=local or None,
        verbose=verbose or None,
        namespace=namespace,
        aws_profile=aws_profile,
        watch_timeout_seconds=watch_timeout,
    )

    try:
        source, reconciler = _build_runtime(config)
        _install_signal_handlers(source.stop)
        stats = EventLoop(source.watch_events(), reconciler).run()
    except STARTUP_ERRORS as e:
        logger.error(f"기동 실패: {format_error_for_user(e)}")
        print_error(format_error_for_user(e))
        raise SystemExit(1) from e

    logger.info(f"종료: 수신 {stats.received}, 재조정 {stats.reconciled}, 예외 {stats.errors}")


@cli.command("sync")
@runtime_options
@click.option("-w", "--max-workers", type=int, default=None, help="동시 처리 스레드 수")
@click.option("--json", "as_json", is_flag=True, help="JSON 형식으로 출력")
def sync_command(
    kubeconfig: str | None,
    local: bool,
    verbose: bool,
    namespace: str | None,
    aws_profile: str | None,
    max_workers: int | None,
    as_json: bool,
) -> None:
    """전체 PVC를 한 번 재조정하고 종료

    같은 볼륨은 순차로, 서로 다른 볼륨은 병렬로 처리합니다.
    실패(해석/조회/태그 생성)가 하나라도 있으면 종료 코드 1을 반환합니다.

    \b
    Examples:
        pvc-tagger sync --local             # 전체 네임스페이스
        pvc-tagger sync --local -w 4        # 동시 4개
        pvc-tagger sync --local --json      # JSON 출력
    """
    config = _load_config(
        kubeconfig=kubeconfig,
        local=local or None,
        verbose=verbose or None,
        namespace=namespace,
        aws_profile=aws_profile,
        max_workers=max_workers,
    )

    collector = ErrorCollector()
    try:
        source, reconciler = _build_runtime(config, collector)
        events = source.list_events()
    except STARTUP_ERRORS as e:
        print_error(format_error_for_user(e))
        raise SystemExit(1) from e

    executor = VolumeSerializedExecutor(reconciler, ParallelConfig(max_workers=config.max_workers))
    result = executor.execute(events)

    if as_json:
        output = {
            "outcomes": [o.to_dict() for o in result.outcomes],
            "errors": [e.to_dict() for e in collector.errors],
            "exceptions": result.error_count,
            "duration_ms": round(result.duration_ms, 1),
        }
        click.echo(json.dumps(output, ensure_ascii=False, indent=2))
    else:
        print_outcome_table(result.outcomes)
        console.print()
        if result.has_failures:
            if collector.has_errors:
                print_warning(collector.get_summary())
                for claim_key, errors in collector.get_by_claim().items():
                    console.print(f"  [bold]{escape(claim_key)}[/bold]")
                    for error in errors:
                        console.print(f"    [dim]{escape(str(error))}[/dim]")
            if result.error_count:
                print_warning(f"재조정 중 예외 {result.error_count}건 (로그 참고)")
        else:
            print_success(f"PVC {len(result.outcomes)}개 동기화 완료 ({result.duration_ms:.0f}ms)")

    if result.has_failures:
        raise SystemExit(1)


# =============================================================================
# 진단 명령어
# =============================================================================


@cli.command("parse-locator")
@click.argument("locator")
@click.option("--json", "as_json", is_flag=True, help="JSON 형식으로 출력")
def parse_locator_command(locator: str, as_json: bool) -> None:
    """볼륨 로케이터를 리전과 볼륨 ID로 해석

    \b
    Examples:
        pvc-tagger parse-locator aws://eu-west-1a/vol-7iyw8ygidg
    """
    try:
        ref = parse_locator(locator)
    except LocatorParseError as e:
        print_error(str(e))
        raise SystemExit(1) from e

    if as_json:
        click.echo(json.dumps({"region": ref.region, "volume_id": ref.volume_id}))
    else:
        print_table("볼륨 로케이터", ["항목", "값"], [["리전", ref.region], ["볼륨 ID", ref.volume_id]])


@cli.command("parse-tags")
@click.argument("raw")
@click.option("-s", "--separator", default=DEFAULT_SEPARATOR, show_default=True, help="태그 구분자")
@click.option("--json", "as_json", is_flag=True, help="JSON 형식으로 출력")
def parse_tags_command(raw: str, separator: str, as_json: bool) -> None:
    """태그 어노테이션 값을 파싱하여 결과 확인

    형식 오류 세그먼트가 있으면 종료 코드 1을 반환합니다.

    \b
    Examples:
        pvc-tagger parse-tags "team=payments,env=prod"
        pvc-tagger parse-tags "a=1;b=2" -s ";"
    """
    entries = parse_tag_spec(raw, separator)
    normalized = format_tag_spec([e.pair for e in entries if e.is_ok], separator)
    malformed = [e for e in entries if not e.is_ok]

    if as_json:
        output = {"entries": [e.to_dict() for e in entries], "normalized": normalized}
        click.echo(json.dumps(output, ensure_ascii=False, indent=2))
    else:
        if entries:
            rows = [[i, e.status.value, e.key, e.value, repr(e.raw)] for i, e in enumerate(entries, 1)]
            print_table("태그 파싱 결과", ["#", "상태", "키", "값", "원본"], rows)
        else:
            print_info("태그가 없습니다")
        if normalized:
            console.print(f"[dim]정규화:[/dim] {escape(normalized)}")
        if malformed:
            print_warning(f"형식 오류 세그먼트 {len(malformed)}개 ('='가 없음)")

    if malformed:
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
