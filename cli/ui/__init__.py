# cli/ui - 콘솔 컴포넌트 (rich)
"""
콘솔 출력 모듈

CLI 전용 UI 컴포넌트들 (결과 테이블, 상태 메시지, 로깅 설정)
"""

from .console import (
    SYMBOL_ERROR,
    SYMBOL_INFO,
    SYMBOL_SUCCESS,
    SYMBOL_WARNING,
    console,
    err_console,
    get_console,
    print_error,
    print_info,
    print_outcome_table,
    print_success,
    print_table,
    print_warning,
    setup_logging,
)

__all__: list[str] = [
    "console",
    "err_console",
    "get_console",
    "setup_logging",
    "print_success",
    "print_error",
    "print_warning",
    "print_info",
    "print_table",
    "print_outcome_table",
    "SYMBOL_SUCCESS",
    "SYMBOL_ERROR",
    "SYMBOL_WARNING",
    "SYMBOL_INFO",
]
