"""카탈로그 행 → 정규화된 스냅샷 모델.

평평한 행(컬럼당 한 행, 제약-컬럼 쌍당 한 행 ...)을 Table/Column/Index/Enum/View
그래프로 조립하고, FK로부터 Relationship을 추론한다. 순수 함수이며 I/O 없음.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence, TypeVar

from schema_agent.catalog import CatalogRows, ConstraintKind, ConstraintRow, TableRow
from schema_agent.model import (
    CaptureFilters,
    CheckConstraint,
    Column,
    DbInfo,
    EnumType,
    ForeignKey,
    Index,
    InterfaceDef,
    KeyConstraint,
    Relationship,
    Snapshot,
    Table,
    View,
    ViewColumn,
)
from schema_agent.relationships import derive_relationships

logger = logging.getLogger(__name__)

USER_DEFINED = "USER-DEFINED"

R = TypeVar("R")


class CatalogIntegrityError(ValueError):
    """행 집합 자체가 모순될 때 (중복 테이블 키 등). 어댑터/호출자 버그로 취급한다."""


def normalize_type(data_type: str, udt_name: Optional[str]) -> str:
    if data_type == USER_DEFINED and udt_name:
        return udt_name
    return data_type


@dataclass
class _TableDraft:
    row: TableRow
    columns: list[Column] = field(default_factory=list)
    primary_key: Optional[KeyConstraint] = None
    uniques: list[KeyConstraint] = field(default_factory=list)
    checks: list[CheckConstraint] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.row.schema_name}.{self.row.name}"

    def add_column(self, col: Column) -> None:
        if any(c.name == col.name for c in self.columns):
            raise CatalogIntegrityError(f"Duplicate column {self.key}.{col.name}")
        self.columns.append(col)

    def freeze(self) -> Table:
        # 컬럼 플래그는 모든 제약을 붙인 뒤 한 번에 다시 계산한다
        pk_cols = set(self.primary_key.columns) if self.primary_key else set()
        unique_cols = {c for u in self.uniques for c in u.columns}
        columns = tuple(
            replace(c, is_primary_key=c.name in pk_cols, is_unique=c.name in unique_cols)
            for c in self.columns
        )
        return Table(
            schema=self.row.schema_name,
            name=self.row.name,
            comment=self.row.comment,
            row_estimate=self.row.row_estimate,
            columns=columns,
            primary_key=self.primary_key,
            uniques=tuple(self.uniques),
            checks=tuple(self.checks),
            foreign_keys=tuple(self.foreign_keys),
        )


@dataclass(frozen=True)
class NormalizedCatalog:
    tables: tuple[Table, ...] = ()
    relationships: tuple[Relationship, ...] = ()
    indexes: tuple[Index, ...] = ()
    enums: tuple[EnumType, ...] = ()
    views: tuple[View, ...] = ()


def _group(rows: Iterable[R], key) -> dict[tuple, list[R]]:
    groups: dict[tuple, list[R]] = defaultdict(list)
    for r in rows:
        groups[key(r)].append(r)
    return groups


def _ordered(rows: Sequence[R], what: str) -> list[R]:
    """position이 모두 있으면 position 순, 하나라도 없으면 들어온 순서."""
    positions = [getattr(r, "position", None) for r in rows]
    if any(p is None for p in positions):
        return list(rows)
    if len(set(positions)) != len(positions):
        raise CatalogIntegrityError(f"Duplicate positions in {what}")
    return sorted(rows, key=lambda r: r.position)


def _attach_constraint(draft: _TableDraft, name: str, rows: list[ConstraintRow]) -> None:
    rows = _ordered(rows, f"constraint {draft.key}.{name}")
    first = rows[0]
    cols = tuple(r.column for r in rows if r.column is not None)

    if first.kind == ConstraintKind.PRIMARY_KEY:
        if draft.primary_key is not None and draft.primary_key.name != name:
            raise CatalogIntegrityError(
                f"Table {draft.key} has two primary keys: {draft.primary_key.name}, {name}"
            )
        draft.primary_key = KeyConstraint(name=name, columns=cols)
    elif first.kind == ConstraintKind.UNIQUE:
        draft.uniques.append(KeyConstraint(name=name, columns=cols))
    elif first.kind == ConstraintKind.CHECK:
        draft.checks.append(CheckConstraint(name=name, expression=first.expression or ""))
    elif first.kind == ConstraintKind.FOREIGN_KEY:
        draft.foreign_keys.append(ForeignKey(
            name=name,
            columns=cols,
            ref_schema=first.ref_schema,
            ref_table=first.ref_table,
            ref_columns=tuple(r.ref_column for r in rows if r.ref_column is not None),
            on_update=first.on_update,
            on_delete=first.on_delete,
        ))


def _build_tables(rows: CatalogRows, exclude_tables: Sequence[str]) -> dict[str, _TableDraft]:
    excluded = set(exclude_tables)
    drafts: dict[str, _TableDraft] = {}

    # 1) 제외 테이블은 컬럼/제약을 붙이기 전에 먼저 떨군다
    for r in rows.tables:
        if r.name in excluded:
            continue
        draft = _TableDraft(row=r)
        if draft.key in drafts:
            raise CatalogIntegrityError(f"Duplicate table {draft.key}")
        drafts[draft.key] = draft

    dangling = 0
    for r in rows.columns:
        draft = drafts.get(f"{r.schema_name}.{r.table}")
        if draft is None:
            dangling += 1
            continue
        draft.add_column(Column(
            name=r.name,
            type=normalize_type(r.data_type, r.udt_name),
            nullable=r.nullable,
            default=r.default,
            is_generated=r.is_generated,
            comment=r.comment,
        ))

    # 2) 제약 조건 (제약 이름 단위로 묶어서 붙임)
    groups = _group(rows.constraints, lambda r: (r.schema_name, r.table, r.name))
    for (schema, table, name), group in groups.items():
        draft = drafts.get(f"{schema}.{table}")
        if draft is None:
            dangling += len(group)
            continue
        _attach_constraint(draft, name, group)

    if dangling:
        logger.debug("ignored %d column/constraint rows for unknown tables", dangling)
    return drafts


def _build_indexes(rows: CatalogRows, table_keys: set[str]) -> list[Index]:
    indexes: list[Index] = []
    groups = _group(rows.indexes, lambda r: (r.schema_name, r.table, r.name))
    for (schema, table, name), group in groups.items():
        if f"{schema}.{table}" not in table_keys:
            continue
        group = _ordered(group, f"index {schema}.{table}.{name}")
        first = group[0]
        indexes.append(Index(
            schema=schema,
            table=table,
            name=name,
            columns=tuple(r.column for r in group if r.column is not None),
            is_unique=first.is_unique,
            is_primary=first.is_primary,
            method=first.method,
            definition=first.definition,
        ))
    return indexes


def _build_enums(rows: CatalogRows) -> list[EnumType]:
    enums: list[EnumType] = []
    groups = _group(rows.enums, lambda r: (r.schema_name, r.name))
    for (schema, name), group in groups.items():
        if all(r.sort_order is not None for r in group):
            group = sorted(group, key=lambda r: r.sort_order)
        values: list[str] = []
        for r in group:
            if r.label not in values:
                values.append(r.label)
        enums.append(EnumType(
            schema=schema,
            name=name,
            values=tuple(values),
            comment=next((r.comment for r in group if r.comment), None),
        ))
    return enums


def _build_views(rows: CatalogRows) -> list[View]:
    columns: dict[str, list[ViewColumn]] = {}
    for r in rows.views:
        key = f"{r.schema_name}.{r.name}"
        if key in columns:
            raise CatalogIntegrityError(f"Duplicate view {key}")
        columns[key] = []

    # view_columns 에는 보통 일반 테이블 컬럼도 섞여 있으므로 모르는 키는 무시
    for r in rows.view_columns:
        cols = columns.get(f"{r.schema_name}.{r.view}")
        if cols is not None:
            cols.append(ViewColumn(name=r.name, type=normalize_type(r.data_type, r.udt_name)))

    return [
        View(
            schema=r.schema_name,
            name=r.name,
            definition=r.definition,
            columns=tuple(columns[f"{r.schema_name}.{r.name}"]),
        )
        for r in rows.views
    ]


def _in_schemas(rows: CatalogRows, include_schemas: Sequence[str]) -> CatalogRows:
    """include_schemas가 비어 있지 않으면 그 밖의 스키마에 속한 행을 모두 떨군다.

    FK의 참조 대상(ref_schema)은 보지 않는다. 다른 스키마를 가리키는 FK는 그대로 남는다.
    """
    if not include_schemas:
        return rows
    keep = set(include_schemas)
    return rows.model_copy(update={
        name: [r for r in getattr(rows, name) if r.schema_name in keep]
        for name in ("tables", "columns", "constraints", "indexes", "enums", "views", "view_columns")
    })


def normalize_catalog(
    rows: CatalogRows,
    exclude_tables: Sequence[str] = (),
    include_schemas: Sequence[str] = (),
) -> NormalizedCatalog:
    rows = _in_schemas(rows, include_schemas)
    drafts = _build_tables(rows, exclude_tables)
    tables = [d.freeze() for d in drafts.values()]
    return NormalizedCatalog(
        tables=tuple(tables),
        relationships=tuple(derive_relationships(tables)),
        indexes=tuple(_build_indexes(rows, set(drafts))),
        enums=tuple(_build_enums(rows)),
        views=tuple(_build_views(rows)),
    )


def build_snapshot(
    rows: CatalogRows,
    db: DbInfo,
    filters: CaptureFilters | None = None,
    interfaces: Sequence[InterfaceDef] = (),
    generated_at: datetime | None = None,
) -> Snapshot:
    """한 번의 일관된 카탈로그 읽기 결과로 Snapshot을 새로 만든다."""
    filters = filters or CaptureFilters()
    catalog = normalize_catalog(rows, filters.exclude_tables, filters.include_schemas)
    snapshot = Snapshot(
        generated_at=generated_at or datetime.now(timezone.utc),
        db=db,
        filters=filters,
        enums=catalog.enums,
        tables=catalog.tables,
        views=catalog.views,
        relationships=catalog.relationships,
        indexes=catalog.indexes,
    )
    logger.info(
        "normalized %d tables, %d relationships, %d indexes, %d enums, %d views",
        len(snapshot.tables), len(snapshot.relationships), len(snapshot.indexes),
        len(snapshot.enums), len(snapshot.views),
    )
    if interfaces:
        from interface_agent.mapper import apply_interfaces
        snapshot = apply_interfaces(snapshot, interfaces)
    return snapshot
