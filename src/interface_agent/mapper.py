"""InterfaceDef ↔ Table 매핑 및 필드 단위 차이 계산.

매칭 규칙은 단순하다: 인터페이스 이름과 테이블 이름을 대소문자 무시로 비교해
스냅샷 테이블 순서상 첫 번째 테이블을 고른다 (스키마는 보지 않음).
매핑 실패/불일치는 절대 예외가 아니라 경고로만 남는다.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence

from schema_agent.model import (
    MAPPING_WARNING_KINDS,
    WARN_INTERFACE_AMBIGUOUS,
    WARN_INTERFACE_FIELD_MISMATCH,
    WARN_INTERFACE_UNMAPPED,
    Column,
    FieldDiff,
    InterfaceDef,
    MappedTo,
    Snapshot,
    SnapshotWarning,
    Table,
)

# 이름 일치 여부만 표현하는 고정값 (유사도 점수가 아님)
MATCH_CONFIDENCE = 0.9


@dataclass(frozen=True)
class MappingResult:
    interfaces: tuple[InterfaceDef, ...]
    warnings: tuple[SnapshotWarning, ...]


def _take_column(remaining: list[Column], name: str) -> Optional[Column]:
    """대소문자 무시로 첫 번째 일치 컬럼을 꺼낸다 (꺼낸 컬럼은 목록에서 제거)."""
    lowered = name.lower()
    for i, c in enumerate(remaining):
        if c.name.lower() == lowered:
            return remaining.pop(i)
    return None


def diff_fields(iface: InterfaceDef, table: Table) -> FieldDiff:
    # 대소문자만 다른 컬럼("Email", "email")이 둘 다 남아야 하므로 목록으로 유지
    remaining: list[Column] = list(table.columns)

    missing: list[str] = []
    nullable_mismatches: list[str] = []
    type_mismatches: list[str] = []

    for f in iface.fields:
        col = _take_column(remaining, f.name)
        if col is None:
            missing.append(f.name)
            continue
        if col.nullable != f.nullable:
            nullable_mismatches.append(f.name)
        # 타입은 텍스트 비교만 한다 (string vs text 는 다른 타입)
        if col.type.lower() != f.type.lower():
            type_mismatches.append(f.name)

    return FieldDiff(
        missing_in_table=tuple(missing),
        extra_in_table=tuple(c.name for c in remaining),
        nullable_mismatches=tuple(nullable_mismatches),
        type_mismatches=tuple(type_mismatches),
    )


def map_interface(iface: InterfaceDef, tables: Sequence[Table]) -> tuple[InterfaceDef, list[SnapshotWarning]]:
    candidates = [t for t in tables if t.name.lower() == iface.name.lower()]
    if not candidates:
        return replace(iface, mapped_to=None), [SnapshotWarning(
            kind=WARN_INTERFACE_UNMAPPED,
            message=f"Interface {iface.name} has no matching table",
            source=iface.source,
        )]

    match = candidates[0]
    warnings: list[SnapshotWarning] = []
    if len(candidates) > 1:
        # 스키마가 다른 동명 테이블: 첫 번째를 쓰되 모호하다는 사실은 알린다
        keys = ", ".join(t.key for t in candidates)
        warnings.append(SnapshotWarning(
            kind=WARN_INTERFACE_AMBIGUOUS,
            message=f"Interface {iface.name} matches tables in several schemas: {keys}; using {match.key}",
            source=iface.source,
        ))

    field_diff = diff_fields(iface, match)
    if field_diff.has_differences:
        warnings.append(SnapshotWarning(
            kind=WARN_INTERFACE_FIELD_MISMATCH,
            message=f"Interface {iface.name} differs from table {match.schema}.{match.name}",
            source=iface.source,
        ))

    mapped = MappedTo(
        schema=match.schema,
        table=match.name,
        confidence=MATCH_CONFIDENCE,
        field_diff=field_diff,
    )
    return replace(iface, mapped_to=mapped), warnings


def map_interfaces(interfaces: Iterable[InterfaceDef], tables: Sequence[Table]) -> MappingResult:
    mapped: list[InterfaceDef] = []
    warnings: list[SnapshotWarning] = []
    for iface in interfaces:
        m, w = map_interface(iface, tables)
        mapped.append(m)
        warnings.extend(w)
    return MappingResult(interfaces=tuple(mapped), warnings=tuple(warnings))


def apply_interfaces(snapshot: Snapshot, interfaces: Iterable[InterfaceDef]) -> Snapshot:
    """매핑 결과로 interfaces/warnings만 교체한 새 Snapshot을 돌려준다.

    이전 매핑 경고는 모두 버리고 새로 만든 경고로 대체하므로 여러 번 실행해도 쌓이지 않는다.
    """
    result = map_interfaces(interfaces, snapshot.tables)
    kept = [w for w in snapshot.warnings if w.kind not in MAPPING_WARNING_KINDS]
    return snapshot.with_interfaces(result.interfaces, [*kept, *result.warnings])
