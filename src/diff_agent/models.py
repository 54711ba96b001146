"""스냅샷 diff 결과 Pydantic 모델."""
from __future__ import annotations
from pydantic import BaseModel, Field


class KeyDiff(BaseModel):
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed)


class ColumnChange(BaseModel):
    table: str                  # schema.table
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    changed: list[str] = Field(default_factory=list)


class TableDiff(KeyDiff):
    changed: list[str] = Field(default_factory=list)   # "schema.table (col1,col2)"
    column_changes: list[ColumnChange] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return super().is_empty and not (self.changed or self.column_changes)


class DiffReport(BaseModel):
    tables: TableDiff = Field(default_factory=TableDiff)
    enums: KeyDiff = Field(default_factory=KeyDiff)
    indexes: KeyDiff = Field(default_factory=KeyDiff)
    relationships: KeyDiff = Field(default_factory=KeyDiff)
    interfaces: KeyDiff = Field(default_factory=KeyDiff)
    views: KeyDiff = Field(default_factory=KeyDiff)
    breaking: list[str] = Field(default_factory=list)   # 사람이 읽는 문장 (문구 고정)

    @property
    def has_breaking_changes(self) -> bool:
        return bool(self.breaking)

    @property
    def is_empty(self) -> bool:
        kinds = (self.tables, self.enums, self.indexes, self.relationships, self.interfaces, self.views)
        return all(k.is_empty for k in kinds) and not self.breaking
