"""
cli/ui/console.py - Rich 콘솔 유틸리티

일관된 콘솔 출력과 로깅 설정을 위한 함수들
"""

from __future__ import annotations

import logging
import platform
from collections.abc import Iterable
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from core.config import LogConfig
    from core.reconcile.types import ReconcileOutcome

# 라이브러리 노이즈 로그 제한 (verbose에서도 WARNING 이상만)
NOISY_LOGGERS = (
    "botocore",
    "boto3",
    "urllib3",
    "kubernetes.client.rest",
)


def get_console(stderr: bool = False) -> Console:
    """Rich Console 인스턴스를 생성하고 반환합니다."""
    is_windows = platform.system().lower() == "windows"

    return Console(
        stderr=stderr,
        color_system="auto",
        highlight=True,
        soft_wrap=True,
        markup=True,
        emoji=not is_windows,
    )


# 전역 콘솔 인스턴스 (명령 출력은 stdout, 로그는 stderr)
console = get_console()
err_console = get_console(stderr=True)


def setup_logging(log_config: LogConfig, verbose: bool = False) -> None:
    """루트 logger에 RichHandler 설정

    verbose이면 DEBUG, 아니면 log_config.level을 사용합니다.
    메시지 형식은 log_config.format을 따르고 시간/레벨 표시는 RichHandler가 담당합니다.
    여러 번 호출해도 핸들러는 하나만 유지됩니다.

    Args:
        log_config: 로그 설정
        verbose: 상세 로그 여부
    """
    level = logging.DEBUG if verbose else getattr(logging, log_config.level.upper(), logging.INFO)

    handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)
    handler.setFormatter(logging.Formatter(log_config.format, datefmt=log_config.date_format))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# =============================================================================
# 표준 출력 스타일 (이모지 없이 Rich 스타일만 사용)
# =============================================================================

# 상태 심볼
SYMBOL_SUCCESS = "✓"  # 완료
SYMBOL_ERROR = "✗"  # 에러
SYMBOL_WARNING = "!"  # 경고
SYMBOL_INFO = "•"  # 정보


def print_success(message: str) -> None:
    """성공 메시지 출력 (초록색 체크마크)"""
    console.print(f"[green]{SYMBOL_SUCCESS} {escape(message)}[/green]")


def print_error(message: str) -> None:
    """에러 메시지 출력 (빨간색 X, stderr)"""
    err_console.print(f"[red]{SYMBOL_ERROR} {escape(message)}[/red]")


def print_warning(message: str) -> None:
    """경고 메시지 출력 (노란색 경고)"""
    console.print(f"[yellow]{SYMBOL_WARNING} {escape(message)}[/yellow]")


def print_info(message: str) -> None:
    """정보 메시지 출력 (파란색 정보)"""
    console.print(f"[blue]{SYMBOL_INFO} {escape(message)}[/blue]")


def print_table(
    title: str,
    columns: list[str],
    rows: list[list],
) -> None:
    """테이블 형식으로 데이터를 출력합니다.

    Args:
        title: 테이블 제목
        columns: 컬럼 헤더 리스트
        rows: 행 데이터 리스트
    """
    table = Table(title=title, show_header=True, header_style="bold magenta")

    for column in columns:
        table.add_column(column)

    for row in rows:
        table.add_row(*[escape(str(cell)) for cell in row])

    console.print(table)


# 종료 상태별 색상
STATE_STYLES = {
    "not-managed": "dim",
    "resolution-failed": "red",
    "fetch-failed": "red",
    "tags-applied": "green",
}


def print_outcome_table(outcomes: Iterable[ReconcileOutcome], title: str = "PVC 태그 동기화 결과") -> None:
    """재조정 결과 테이블 출력

    관리 대상이 아닌 PVC는 건수만 표시하고 행은 생략합니다.

    Args:
        outcomes: 재조정 결과 목록
        title: 테이블 제목
    """
    from core.reconcile.types import TagResult

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("PVC", style="cyan")
    table.add_column("볼륨")
    table.add_column("상태")
    table.add_column("적용", justify="right")
    table.add_column("기존", justify="right")
    table.add_column("오류", justify="right")
    table.add_column("실패", justify="right")

    skipped = 0
    for outcome in sorted(outcomes, key=lambda o: (o.namespace, o.claim)):
        if not outcome.managed:
            skipped += 1
            continue
        state = outcome.state.value
        style = STATE_STYLES.get(state, "white")
        if state == "tags-applied" and outcome.has_failures:
            style = "yellow"
        table.add_row(
            escape(f"{outcome.namespace}/{outcome.claim}"),
            escape(outcome.volume_id or "-"),
            f"[{style}]{state}[/{style}]",
            str(outcome.count(TagResult.APPLIED)),
            str(outcome.count(TagResult.ALREADY_PRESENT)),
            str(outcome.count(TagResult.MALFORMED)),
            str(outcome.count(TagResult.FAILED)),
        )

    console.print(table)
    if skipped:
        console.print(f"[dim]관리 대상이 아닌 PVC {skipped}개 건너뜀[/dim]")
