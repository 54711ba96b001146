"""두 스냅샷 비교: 추가/삭제/컬럼 변경 + 하위 호환을 깨는 변경 목록.

순수 함수. 같은 입력이면 항상 같은 결과(순서 포함)를 낸다.
"""
from __future__ import annotations
from typing import Callable, Iterable, TypeVar

from schema_agent.model import Column, Snapshot, Table
from diff_agent.models import ColumnChange, DiffReport, KeyDiff, TableDiff

T = TypeVar("T")


def _by_key(items: Iterable[T], key: Callable[[T], str]) -> dict[str, T]:
    return {key(i): i for i in items}


def _key_diff(a: dict[str, T], b: dict[str, T]) -> KeyDiff:
    return KeyDiff(
        added=[k for k in b if k not in a],
        removed=[k for k in a if k not in b],
    )


def _column_changed(ca: Column, cb: Column) -> bool:
    return (
        ca.type != cb.type
        or ca.nullable != cb.nullable
        or (ca.default or "") != (cb.default or "")
    )


def _diff_columns(key: str, ta: Table, tb: Table, breaking: list[str]) -> ColumnChange:
    cols_a = _by_key(ta.columns, lambda c: c.name)
    cols_b = _by_key(tb.columns, lambda c: c.name)
    added: list[str] = []
    removed: list[str] = []
    changed: list[str] = []

    for name, cb in cols_b.items():
        ca = cols_a.get(name)
        if ca is None:
            added.append(name)
            continue
        if not _column_changed(ca, cb):
            continue
        changed.append(name)
        if ca.nullable and not cb.nullable:
            breaking.append(f"Column {key}.{name} changed to NOT NULL")
        if ca.type != cb.type:
            breaking.append(f"Column {key}.{name} type changed from {ca.type} to {cb.type}")

    for name in cols_a:
        if name not in cols_b:
            removed.append(name)
            breaking.append(f"Column {key}.{name} was removed")

    return ColumnChange(table=key, added=added, removed=removed, changed=changed)


def diff_tables(a: Snapshot, b: Snapshot, breaking: list[str]) -> TableDiff:
    tables_a = _by_key(a.tables, lambda t: t.key)
    tables_b = _by_key(b.tables, lambda t: t.key)
    base = _key_diff(tables_a, tables_b)
    changed_tables: list[str] = []
    column_changes: list[ColumnChange] = []

    for key, tb in tables_b.items():
        ta = tables_a.get(key)
        if ta is None:
            continue
        cc = _diff_columns(key, ta, tb, breaking)
        if cc.added or cc.removed or cc.changed:
            column_changes.append(cc)
            affected = list(dict.fromkeys([*cc.added, *cc.removed, *cc.changed]))
            changed_tables.append(f"{key} ({','.join(affected)})")

    return TableDiff(
        added=base.added,
        removed=base.removed,
        changed=changed_tables,
        column_changes=column_changes,
    )


def diff_snapshots(a: Snapshot, b: Snapshot) -> DiffReport:
    """a(기준) → b(후보) 변경 사항."""
    breaking: list[str] = []
    tables = diff_tables(a, b, breaking)
    return DiffReport(
        tables=tables,
        enums=_key_diff(_by_key(a.enums, lambda e: e.key), _by_key(b.enums, lambda e: e.key)),
        indexes=_key_diff(_by_key(a.indexes, lambda i: i.key), _by_key(b.indexes, lambda i: i.key)),
        relationships=_key_diff(
            _by_key(a.relationships, lambda r: r.key),
            _by_key(b.relationships, lambda r: r.key),
        ),
        interfaces=_key_diff(_by_key(a.interfaces, lambda i: i.key), _by_key(b.interfaces, lambda i: i.key)),
        views=_key_diff(_by_key(a.views, lambda v: v.key), _by_key(b.views, lambda v: v.key)),
        breaking=breaking,
    )
