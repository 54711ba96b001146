"""카탈로그 행(row) 모델과 엔진별 어댑터.

Normalizer는 엔진에 상관없이 아래 행 모양만 받는다.
어댑터(from_postgres / from_mysql)는 이미 조회된 네이티브 카탈로그 결과를
이 모양으로 바꿔줄 뿐, DB 접속은 하지 않는다.
"""
from __future__ import annotations
import re
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from schema_agent.model import ReferentialAction


class ConstraintKind(str, Enum):
    PRIMARY_KEY = "primary_key"
    UNIQUE = "unique"
    CHECK = "check"
    FOREIGN_KEY = "foreign_key"


class _Row(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TableRow(_Row):
    schema_name: str = Field(alias="schema")
    name: str
    comment: Optional[str] = None
    row_estimate: Optional[int] = None


class ColumnRow(_Row):
    schema_name: str = Field(alias="schema")
    table: str
    name: str
    data_type: str
    udt_name: Optional[str] = None
    nullable: bool = True
    default: Optional[str] = None
    is_generated: bool = False
    comment: Optional[str] = None


class ConstraintRow(_Row):
    """제약조건-컬럼 한 쌍당 한 행."""
    schema_name: str = Field(alias="schema")
    table: str
    name: str
    kind: ConstraintKind
    column: Optional[str] = None
    position: Optional[int] = None
    ref_schema: Optional[str] = None
    ref_table: Optional[str] = None
    ref_column: Optional[str] = None
    on_update: Optional[ReferentialAction] = None
    on_delete: Optional[ReferentialAction] = None
    expression: Optional[str] = None


class IndexRow(_Row):
    """인덱스 컬럼 하나당 한 행."""
    schema_name: str = Field(alias="schema")
    table: str
    name: str
    column: Optional[str] = None
    position: Optional[int] = None
    is_unique: bool = False
    is_primary: bool = False
    method: Optional[str] = None
    definition: Optional[str] = None


class EnumLabelRow(_Row):
    schema_name: str = Field(alias="schema")
    name: str
    label: str
    sort_order: Optional[float] = None
    comment: Optional[str] = None


class ViewRow(_Row):
    schema_name: str = Field(alias="schema")
    name: str
    definition: Optional[str] = None


class ViewColumnRow(_Row):
    schema_name: str = Field(alias="schema")
    view: str
    name: str
    data_type: str
    udt_name: Optional[str] = None


class CatalogRows(_Row):
    tables: list[TableRow] = Field(default_factory=list)
    columns: list[ColumnRow] = Field(default_factory=list)
    constraints: list[ConstraintRow] = Field(default_factory=list)
    indexes: list[IndexRow] = Field(default_factory=list)
    enums: list[EnumLabelRow] = Field(default_factory=list)
    views: list[ViewRow] = Field(default_factory=list)
    view_columns: list[ViewColumnRow] = Field(default_factory=list)


# ---------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------
PG_CONSTRAINT_KINDS = {
    "p": ConstraintKind.PRIMARY_KEY,
    "u": ConstraintKind.UNIQUE,
    "c": ConstraintKind.CHECK,
    "f": ConstraintKind.FOREIGN_KEY,
}

# pg_constraint.confupdtype / confdeltype
PG_ACTIONS = {
    "a": ReferentialAction.NO_ACTION,
    "r": ReferentialAction.RESTRICT,
    "c": ReferentialAction.CASCADE,
    "n": ReferentialAction.SET_NULL,
    "d": ReferentialAction.SET_DEFAULT,
}


def _names(value: Any) -> list[str]:
    # array_agg 결과: 문자열만 남기고, unnest 교차조인으로 생긴 중복은 제거
    if not isinstance(value, (list, tuple)):
        return []
    out: list[str] = []
    for v in value:
        if isinstance(v, str) and v not in out:
            out.append(v)
    return out


def _constraint_rows(
    schema: str,
    table: str,
    name: str,
    kind: ConstraintKind,
    columns: list[str],
    ref_columns: list[str] | None = None,
    **extra: Any,
) -> list[ConstraintRow]:
    ref_columns = ref_columns or []
    if not columns:
        return [ConstraintRow(schema=schema, table=table, name=name, kind=kind, **extra)]
    return [
        ConstraintRow(
            schema=schema,
            table=table,
            name=name,
            kind=kind,
            column=col,
            position=i + 1,
            ref_column=ref_columns[i] if i < len(ref_columns) else None,
            **extra,
        )
        for i, col in enumerate(columns)
    ]


def from_postgres(raw: dict[str, list[dict]]) -> CatalogRows:
    """information_schema / pg_catalog 조회 결과를 CatalogRows로 변환한다.

    raw 키: tables, table_meta, columns, constraints, indexes, enums,
    views, view_columns (없으면 빈 목록으로 취급)
    """
    meta: dict[tuple[str, str], dict] = {}
    for r in raw.get("table_meta", []):
        meta[(r["table_schema"], r["table_name"])] = r

    tables = []
    for r in raw.get("tables", []):
        m = meta.get((r["table_schema"], r["table_name"]), {})
        estimate = m.get("row_estimate")
        # reltuples = -1 은 아직 ANALYZE 되지 않은 테이블
        if not isinstance(estimate, int) or isinstance(estimate, bool) or estimate < 0:
            estimate = None
        tables.append(TableRow(
            schema=r["table_schema"],
            name=r["table_name"],
            comment=m.get("comment"),
            row_estimate=estimate,
        ))

    columns = [
        ColumnRow(
            schema=r["table_schema"],
            table=r["table_name"],
            name=r["column_name"],
            data_type=r["data_type"],
            udt_name=r.get("udt_name"),
            nullable=r.get("is_nullable") == "YES",
            default=r.get("column_default"),
            is_generated=r.get("is_generated") == "ALWAYS",
            comment=r.get("description"),
        )
        for r in raw.get("columns", [])
    ]

    constraints: list[ConstraintRow] = []
    for r in raw.get("constraints", []):
        kind = PG_CONSTRAINT_KINDS.get(r.get("contype"))
        if kind is None:
            # exclusion / trigger 제약 등은 모델에 없음
            continue
        extra: dict[str, Any] = {}
        if kind == ConstraintKind.CHECK:
            extra["expression"] = r.get("condef") or ""
        if kind == ConstraintKind.FOREIGN_KEY:
            extra.update(
                ref_schema=r.get("ref_schema"),
                ref_table=r.get("ref_table"),
                on_update=PG_ACTIONS.get(r.get("confupdtype")),
                on_delete=PG_ACTIONS.get(r.get("confdeltype")),
            )
        constraints.extend(_constraint_rows(
            r["schema"], r["table"], r["conname"], kind,
            _names(r.get("columns")), _names(r.get("ref_columns")),
            **extra,
        ))

    indexes: list[IndexRow] = []
    for r in raw.get("indexes", []):
        cols = r.get("columns") or []
        common = dict(
            schema=r["schema"],
            table=r["table"],
            name=r["name"],
            is_unique=bool(r.get("indisunique")),
            is_primary=bool(r.get("indisprimary")),
            method=r.get("method"),
            definition=r.get("definition"),
        )
        if not cols:
            indexes.append(IndexRow(**common))
        for i, col in enumerate(cols):
            # 표현식 인덱스는 attname이 NULL
            indexes.append(IndexRow(column=col if isinstance(col, str) else None, position=i + 1, **common))

    enums = [
        EnumLabelRow(schema=r["schema"], name=r["name"], label=label, sort_order=i, comment=r.get("comment"))
        for r in raw.get("enums", [])
        for i, label in enumerate(r.get("values") or [])
    ]

    views = [
        ViewRow(schema=r["table_schema"], name=r["table_name"], definition=r.get("view_definition"))
        for r in raw.get("views", [])
    ]
    view_columns = [
        ViewColumnRow(
            schema=r["table_schema"],
            view=r["table_name"],
            name=r["column_name"],
            data_type=r["data_type"],
            udt_name=r.get("udt_name"),
        )
        for r in raw.get("view_columns", [])
    ]

    return CatalogRows(
        tables=tables,
        columns=columns,
        constraints=constraints,
        indexes=indexes,
        enums=enums,
        views=views,
        view_columns=view_columns,
    )


# ---------------------------------------------------------------
# MySQL
# ---------------------------------------------------------------
MYSQL_CONSTRAINT_KINDS = {
    "PRIMARY KEY": ConstraintKind.PRIMARY_KEY,
    "UNIQUE": ConstraintKind.UNIQUE,
}

ENUM_LABEL_RE = re.compile(r"'((?:[^']|'')*)'")


def _upper(rows: Iterable[dict]) -> list[dict]:
    # 드라이버에 따라 컬럼 키 대소문자가 다를 수 있음
    return [{str(k).upper(): v for k, v in r.items()} for r in rows]


def _split_concat(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [v for v in str(value).split(",") if v]


def _action(rule: Optional[str]) -> Optional[ReferentialAction]:
    if not rule:
        return None
    try:
        return ReferentialAction(rule.upper())
    except ValueError:
        return None


def parse_mysql_enum(column_type: str) -> list[str]:
    """enum('a','b','it''s') → ['a', 'b', "it's"]"""
    return [m.replace("''", "'") for m in ENUM_LABEL_RE.findall(column_type or "")]


def from_mysql(raw: dict[str, list[dict]]) -> CatalogRows:
    """INFORMATION_SCHEMA 조회 결과를 CatalogRows로 변환한다.

    raw 키: tables, columns, constraints(PK/UNIQUE, GROUP_CONCAT cols),
    foreign_keys(컬럼당 한 행), referential(UPDATE_RULE/DELETE_RULE),
    checks, indexes(GROUP_CONCAT cols)
    """
    tables = [
        TableRow(schema=r["TABLE_SCHEMA"], name=r["TABLE_NAME"], comment=r.get("TABLE_COMMENT") or None)
        for r in _upper(raw.get("tables", []))
    ]

    columns: list[ColumnRow] = []
    enums: list[EnumLabelRow] = []
    for r in _upper(raw.get("columns", [])):
        extra = (r.get("EXTRA") or "").lower()
        columns.append(ColumnRow(
            schema=r["TABLE_SCHEMA"],
            table=r["TABLE_NAME"],
            name=r["COLUMN_NAME"],
            data_type=r["COLUMN_TYPE"],
            nullable=r.get("IS_NULLABLE") == "YES",
            default=r.get("COLUMN_DEFAULT"),
            is_generated="auto_increment" in extra or "generated" in extra,
            comment=r.get("COLUMN_COMMENT") or None,
        ))
        if (r.get("DATA_TYPE") or "").lower() == "enum":
            # MySQL enum은 컬럼에 붙어 있으므로 table_column 이름으로 등록
            enum_name = f"{r['TABLE_NAME']}_{r['COLUMN_NAME']}"
            for i, label in enumerate(parse_mysql_enum(r["COLUMN_TYPE"])):
                enums.append(EnumLabelRow(schema=r["TABLE_SCHEMA"], name=enum_name, label=label, sort_order=i))

    constraints: list[ConstraintRow] = []
    for r in _upper(raw.get("constraints", [])):
        kind = MYSQL_CONSTRAINT_KINDS.get(r.get("CONSTRAINT_TYPE"))
        if kind is None:
            continue
        constraints.extend(_constraint_rows(
            r["TABLE_SCHEMA"], r["TABLE_NAME"], r["CONSTRAINT_NAME"], kind, _split_concat(r.get("COLS")),
        ))

    for r in _upper(raw.get("checks", [])):
        constraints.append(ConstraintRow(
            schema=r["TABLE_SCHEMA"],
            table=r["TABLE_NAME"],
            name=r["CONSTRAINT_NAME"],
            kind=ConstraintKind.CHECK,
            expression=r.get("CHECK_CLAUSE") or "",
        ))

    rules = {
        (r.get("CONSTRAINT_SCHEMA"), r.get("CONSTRAINT_NAME")): r
        for r in _upper(raw.get("referential", []))
    }
    for r in _upper(raw.get("foreign_keys", [])):
        rule = rules.get((r["TABLE_SCHEMA"], r["CONSTRAINT_NAME"]), {})
        constraints.append(ConstraintRow(
            schema=r["TABLE_SCHEMA"],
            table=r["TABLE_NAME"],
            name=r["CONSTRAINT_NAME"],
            kind=ConstraintKind.FOREIGN_KEY,
            column=r["COLUMN_NAME"],
            position=r.get("ORDINAL_POSITION"),
            ref_schema=r.get("REFERENCED_TABLE_SCHEMA"),
            ref_table=r.get("REFERENCED_TABLE_NAME"),
            ref_column=r.get("REFERENCED_COLUMN_NAME"),
            on_update=_action(rule.get("UPDATE_RULE")),
            on_delete=_action(rule.get("DELETE_RULE")),
        ))

    indexes: list[IndexRow] = []
    for r in _upper(raw.get("indexes", [])):
        common = dict(
            schema=r["TABLE_SCHEMA"],
            table=r["TABLE_NAME"],
            name=r["INDEX_NAME"],
            is_unique=r.get("NON_UNIQUE") in (0, "0"),
            is_primary=r["INDEX_NAME"] == "PRIMARY",
            method=r.get("INDEX_TYPE"),
        )
        cols = _split_concat(r.get("COLS"))
        if not cols:
            indexes.append(IndexRow(**common))
        for i, col in enumerate(cols):
            indexes.append(IndexRow(column=col, position=i + 1, **common))

    return CatalogRows(
        tables=tables,
        columns=columns,
        constraints=constraints,
        indexes=indexes,
        enums=enums,
    )


ADAPTERS = {
    "postgres": from_postgres,
    "mysql": from_mysql,
}


def load_rows(data: dict[str, Any], engine: str = "normalized") -> CatalogRows:
    """JSON 문서를 CatalogRows로 읽는다. engine이 postgres/mysql이면 어댑터를 거친다."""
    if engine == "normalized":
        return CatalogRows.model_validate(data)
    adapter = ADAPTERS.get(engine)
    if adapter is None:
        raise ValueError(f"지원하지 않는 엔진입니다: {engine} (normalized / postgres / mysql)")
    return adapter(data)
