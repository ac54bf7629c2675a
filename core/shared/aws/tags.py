"""
core/shared/aws/tags.py - 태그 문자열 파싱 및 AWS 태그 형식 변환

PVC 어노테이션의 태그 문자열을 (key, value) 목록으로 파싱하고,
EC2 API의 [{"Key": ..., "Value": ...}] 형식과 상호 변환합니다.

Usage:
    from core.shared.aws.tags import parse_tag_spec

    entries = parse_tag_spec("team=payments,badtag,env=prod")
    [e.is_ok for e in entries]   # [True, False, True]

    for entry in entries:
        if entry.is_ok:
            print(entry.key, entry.value)
        else:
            print(f"잘못된 태그: {entry.raw}")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from core.config import settings

# 구분자 어노테이션이 없거나 비어 있을 때
DEFAULT_SEPARATOR = settings.DEFAULT_TAG_SEPARATOR

# (key, value) 쌍
TagPair = tuple[str, str]


class TagEntryStatus(Enum):
    """태그 항목 파싱 결과"""

    OK = "ok"
    MALFORMED = "malformed"  # '='로 정확히 두 부분으로 나뉘지 않음


@dataclass(frozen=True)
class TagEntry:
    """태그 문자열의 한 세그먼트 파싱 결과

    Attributes:
        status: OK 또는 MALFORMED
        raw: 원본 세그먼트
        key: 태그 키 (MALFORMED이면 빈 문자열)
        value: 태그 값 (MALFORMED이면 빈 문자열)
    """

    status: TagEntryStatus
    raw: str
    key: str = ""
    value: str = ""

    @classmethod
    def ok(cls, key: str, value: str, raw: str | None = None) -> TagEntry:
        return cls(TagEntryStatus.OK, raw if raw is not None else f"{key}={value}", key, value)

    @classmethod
    def malformed(cls, raw: str) -> TagEntry:
        return cls(TagEntryStatus.MALFORMED, raw)

    @property
    def is_ok(self) -> bool:
        return self.status == TagEntryStatus.OK

    @property
    def pair(self) -> TagPair:
        return (self.key, self.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "raw": self.raw,
            "key": self.key,
            "value": self.value,
        }


def parse_tag_spec(raw: str, separator: str = DEFAULT_SEPARATOR) -> list[TagEntry]:
    """구분자로 연결된 태그 문자열 파싱

    각 세그먼트를 첫 번째 '='에서 한 번만 나눕니다. 정확히 두 부분이면 OK,
    그 외('=' 없음)는 MALFORMED로 보고하며 나머지 세그먼트 파싱은 계속합니다.

    Args:
        raw: 어노테이션 값 (예: "team=payments,env=prod")
        separator: 세그먼트 구분자 (빈 문자열이면 기본값 ',')

    Returns:
        입력 순서를 유지한 TagEntry 목록 (raw가 비어 있으면 빈 목록)
    """
    if not raw:
        return []

    entries: list[TagEntry] = []
    for segment in raw.split(separator or DEFAULT_SEPARATOR):
        parts = segment.split("=", 1)
        if len(parts) == 2:
            entries.append(TagEntry.ok(parts[0], parts[1], raw=segment))
        else:
            entries.append(TagEntry.malformed(segment))
    return entries


def format_tag_spec(pairs: list[TagPair], separator: str = DEFAULT_SEPARATOR) -> str:
    """(key, value) 목록을 어노테이션 문자열로 직렬화"""
    return separator.join(f"{k}={v}" for k, v in pairs)


# =============================================================================
# AWS API 형식 변환
# =============================================================================


def tags_from_aws(tags: list[dict[str, str]] | None) -> set[TagPair]:
    """AWS API 형식 [{"Key": ..., "Value": ...}] -> {(key, value)} 변환"""
    if not tags:
        return set()
    return {(t.get("Key", ""), t.get("Value", "")) for t in tags if "Key" in t}


def to_aws_tags(pairs: list[TagPair]) -> list[dict[str, str]]:
    """(key, value) 목록 -> AWS API 형식 변환"""
    return [{"Key": k, "Value": v} for k, v in pairs]
