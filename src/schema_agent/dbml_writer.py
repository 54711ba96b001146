from __future__ import annotations
from pathlib import Path
from typing import Sequence
from schema_agent.model import Column, Index, RelationshipType, Snapshot

REL_SYMBOL = {
    RelationshipType.ONE_TO_ONE: "-",
    RelationshipType.MANY_TO_ONE: ">",
    RelationshipType.ONE_TO_MANY: "<",
    RelationshipType.MANY_TO_MANY: "<>",
}

def _ident(name: str) -> str:
    # 공백/특수문자가 있으면 따옴표
    return name if name.replace("_", "").isalnum() else f"\"{name}\""

def _quote(s: str) -> str:
    return s.replace("'", "\\'")

def col_settings(c: Column) -> str:
    settings = []
    if c.is_primary_key:
        settings.append("pk")
    if c.is_generated:
        settings.append("increment")
    if c.is_unique:
        settings.append("unique")
    if not c.nullable:
        settings.append("not null")
    if c.default is not None:
        settings.append(f"default: `{c.default}`")
    if c.comment:
        settings.append(f"note: '{_quote(c.comment)}'")
    return f" [{', '.join(settings)}]" if settings else ""

def _col_ref(schema: str | None, table: str | None, columns: Sequence[str]) -> str:
    t = f"{_ident(schema or '')}.{_ident(table or '')}"
    if len(columns) == 1:
        return f"{t}.{_ident(columns[0])}"
    return f"{t}.({', '.join(_ident(c) for c in columns)})"

def _index_line(i: Index) -> str:
    cols = ", ".join(_ident(c) for c in i.columns)
    cols = cols if len(i.columns) == 1 else f"({cols})"
    opts = []
    if i.is_primary:
        opts.append("pk")
    elif i.is_unique:
        opts.append("unique")
    opts.append(f"name: '{_quote(i.name)}'")
    if i.method:
        opts.append(f"type: {i.method}")
    return f"    {cols} [{', '.join(opts)}]"

def to_dbml(snapshot: Snapshot) -> str:
    lines: list[str] = []

    # Enums 먼저 출력
    for enum in snapshot.enums:
        lines.append(f"Enum {_ident(enum.schema)}.{_ident(enum.name)} {{")
        for v in enum.values:
            lines.append(f"  \"{v}\"")
        if enum.comment:
            lines.append(f"  Note: '{_quote(enum.comment)}'")
        lines.append("}\n")

    indexes_by_table: dict[str, list[Index]] = {}
    for i in snapshot.indexes:
        if i.columns:
            indexes_by_table.setdefault(f"{i.schema}.{i.table}", []).append(i)

    # Tables
    for table in snapshot.tables:
        lines.append(f"Table {_ident(table.schema)}.{_ident(table.name)} {{")
        for col in table.columns:
            lines.append(f"  {_ident(col.name)} \"{col.type}\"{col_settings(col)}")
        idx = indexes_by_table.get(table.key, [])
        if idx:
            lines.append("")
            lines.append("  indexes {")
            lines.extend(_index_line(i) for i in idx)
            lines.append("  }")
        if table.comment:
            lines.append(f"  Note: '{_quote(table.comment)}'")
        lines.append("}\n")

    # Refs
    for r in snapshot.relationships:
        lines.append(
            f"Ref {_ident(r.fk_name)}: {_col_ref(r.source.schema, r.source.table, r.source.columns)} "
            f"{REL_SYMBOL[r.type]} {_col_ref(r.target.schema, r.target.table, r.target.columns)}"
        )

    lines.append("")
    return "\n".join(lines)

def write_dbml(snapshot: Snapshot, out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(to_dbml(snapshot), encoding="utf-8")
    return out_path
