from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import urlparse


class ReferentialAction(str, Enum):
    NO_ACTION = "NO ACTION"
    RESTRICT = "RESTRICT"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"


class RelationshipType(str, Enum):
    # one_to_many / many_to_many 은 선언만 되어 있고 현재 추론 규칙으로는 생성되지 않음
    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True)
class DbInfo:
    engine: str
    version: Optional[str] = None
    host: str = ""
    database: str = ""

    @classmethod
    def from_url(cls, url: str, version: str | None = None) -> "DbInfo":
        """접속 문자열에서 엔진/호스트/DB 이름만 뽑는다. (접속하지 않음)"""
        parsed = urlparse(url)
        engine = "mysql" if parsed.scheme.startswith("mysql") else "postgres"
        return cls(
            engine=engine,
            version=version,
            host=parsed.hostname or "",
            database=parsed.path.lstrip("/"),
        )


@dataclass(frozen=True)
class CaptureFilters:
    include_schemas: Tuple[str, ...] = ()
    exclude_tables: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Column:
    name: str
    type: str
    nullable: bool = True
    default: Optional[str] = None
    is_primary_key: bool = False
    is_unique: bool = False
    is_generated: bool = False
    comment: Optional[str] = None


@dataclass(frozen=True)
class KeyConstraint:
    name: str
    columns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CheckConstraint:
    name: str
    expression: str = ""


@dataclass(frozen=True)
class ForeignKey:
    name: str
    columns: Tuple[str, ...]
    ref_schema: Optional[str]
    ref_table: Optional[str]
    ref_columns: Tuple[str, ...] = ()
    on_update: Optional[ReferentialAction] = None
    on_delete: Optional[ReferentialAction] = None


@dataclass(frozen=True)
class Table:
    schema: str
    name: str
    comment: Optional[str] = None
    row_estimate: Optional[int] = None
    columns: Tuple[Column, ...] = ()
    primary_key: Optional[KeyConstraint] = None
    uniques: Tuple[KeyConstraint, ...] = ()
    checks: Tuple[CheckConstraint, ...] = ()
    foreign_keys: Tuple[ForeignKey, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.schema}.{self.name}"

    def column(self, name: str) -> Optional[Column]:
        for c in self.columns:
            if c.name == name:
                return c
        return None


@dataclass(frozen=True)
class Endpoint:
    schema: Optional[str]
    table: Optional[str]
    columns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Relationship:
    name: str
    type: RelationshipType
    source: Endpoint   # from (참조하는 쪽)
    target: Endpoint   # to (참조되는 쪽)
    fk_name: str

    @property
    def key(self) -> str:
        return (
            f"{self.source.schema}.{self.source.table}"
            f"->{self.target.schema}.{self.target.table}.{self.fk_name}"
        )


@dataclass(frozen=True)
class Index:
    schema: str
    table: str
    name: str
    columns: Tuple[str, ...] = ()
    is_unique: bool = False
    is_primary: bool = False
    method: Optional[str] = None
    definition: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.schema}.{self.table}.{self.name}"


@dataclass(frozen=True)
class EnumType:
    schema: str
    name: str
    values: Tuple[str, ...] = ()
    comment: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True)
class ViewColumn:
    name: str
    type: str


@dataclass(frozen=True)
class View:
    schema: str
    name: str
    definition: Optional[str] = None
    columns: Tuple[ViewColumn, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True)
class InterfaceField:
    name: str
    type: str
    nullable: bool = False


@dataclass(frozen=True)
class FieldDiff:
    missing_in_table: Tuple[str, ...] = ()
    extra_in_table: Tuple[str, ...] = ()
    nullable_mismatches: Tuple[str, ...] = ()
    type_mismatches: Tuple[str, ...] = ()

    @property
    def has_differences(self) -> bool:
        return bool(
            self.missing_in_table
            or self.extra_in_table
            or self.nullable_mismatches
            or self.type_mismatches
        )


@dataclass(frozen=True)
class MappedTo:
    schema: str
    table: str
    confidence: float
    field_diff: FieldDiff = field(default_factory=FieldDiff)


@dataclass(frozen=True)
class InterfaceDef:
    name: str
    source: str
    fields: Tuple[InterfaceField, ...] = ()
    mapped_to: Optional[MappedTo] = None

    @property
    def key(self) -> str:
        return self.name.lower()


# 경고 종류
WARN_INTERFACE_UNMAPPED = "interface_unmapped"
WARN_INTERFACE_FIELD_MISMATCH = "interface_field_mismatch"
WARN_INTERFACE_AMBIGUOUS = "interface_ambiguous"

MAPPING_WARNING_KINDS = frozenset({
    WARN_INTERFACE_UNMAPPED,
    WARN_INTERFACE_FIELD_MISMATCH,
    WARN_INTERFACE_AMBIGUOUS,
})


@dataclass(frozen=True)
class SnapshotWarning:
    kind: str
    message: str
    source: Optional[str] = None


@dataclass(frozen=True)
class Snapshot:
    generated_at: datetime
    db: DbInfo
    filters: CaptureFilters = field(default_factory=CaptureFilters)
    enums: Tuple[EnumType, ...] = ()
    tables: Tuple[Table, ...] = ()
    views: Tuple[View, ...] = ()
    relationships: Tuple[Relationship, ...] = ()
    indexes: Tuple[Index, ...] = ()
    interfaces: Tuple[InterfaceDef, ...] = ()
    warnings: Tuple[SnapshotWarning, ...] = ()

    def with_interfaces(self, interfaces, warnings) -> "Snapshot":
        # 매핑 단계만 예외적으로 interfaces/warnings 두 필드를 교체한 새 값을 만든다
        return replace(self, interfaces=tuple(interfaces), warnings=tuple(warnings))
