from __future__ import annotations
from pathlib import Path
from schema_agent.model import Snapshot

def to_summary_md(snapshot: Snapshot) -> str:
    lines = []
    db = snapshot.db
    lines.append("# Schema Snapshot Summary\n")
    lines.append(f"- Engine: {db.engine} {db.version or ''}".rstrip())
    lines.append(f"- Database: {db.database or '-'} @ {db.host or '-'}")
    lines.append(f"- Generated at: {snapshot.generated_at.isoformat()}")
    if snapshot.filters.include_schemas:
        lines.append(f"- Schemas: {', '.join(snapshot.filters.include_schemas)}")
    if snapshot.filters.exclude_tables:
        lines.append(f"- Excluded tables: {', '.join(snapshot.filters.exclude_tables)}")
    lines.append(f"- Tables: {len(snapshot.tables)}")
    lines.append(f"- Views: {len(snapshot.views)}")
    lines.append(f"- Enums: {len(snapshot.enums)}")
    lines.append(f"- Indexes: {len(snapshot.indexes)}")
    lines.append(f"- Relationships: {len(snapshot.relationships)}\n")

    lines.append("## Tables\n")
    for table in snapshot.tables:
        est = f" (~{table.row_estimate} rows)" if table.row_estimate is not None else ""
        lines.append(f"### {table.key}{est}")
        if table.comment:
            lines.append(f"> {table.comment}\n")
        for col in table.columns:
            flags = []
            if col.is_primary_key: flags.append("PK")
            if col.is_generated: flags.append("GENERATED")
            if col.is_unique: flags.append("UNIQUE")
            if not col.nullable: flags.append("NOT NULL")
            flag_s = f" ({', '.join(flags)})" if flags else ""
            lines.append(f"- `{col.name}`: {col.type}{flag_s}")
        for chk in table.checks:
            lines.append(f"- check `{chk.name}`: `{chk.expression}`")
        lines.append("")

    if snapshot.enums:
        lines.append("## Enums\n")
        for e in snapshot.enums:
            lines.append(f"- `{e.key}`: {', '.join(e.values)}")
        lines.append("")

    if snapshot.views:
        lines.append("## Views\n")
        for v in snapshot.views:
            cols = ", ".join(f"{c.name} {c.type}" for c in v.columns)
            lines.append(f"- `{v.key}`: {cols or '-'}")
        lines.append("")

    lines.append("## Relationships\n")
    for r in snapshot.relationships:
        lines.append(
            f"- {r.source.schema}.{r.source.table}({', '.join(r.source.columns)}) "
            f"→ {r.target.schema}.{r.target.table}({', '.join(r.target.columns)}) "
            f"[{r.type.value}] `{r.fk_name}`"
        )
    lines.append("")

    if snapshot.interfaces:
        lines.append("## Interfaces\n")
        for i in snapshot.interfaces:
            target = f"{i.mapped_to.schema}.{i.mapped_to.table}" if i.mapped_to else "(unmapped)"
            lines.append(f"- `{i.name}` ({i.source}) → {target}")
        lines.append("")

    if snapshot.warnings:
        lines.append("## Warnings\n")
        for w in snapshot.warnings:
            lines.append(f"- **{w.kind}**: {w.message}")
        lines.append("")

    return "\n".join(lines)

def write_summary_md(snapshot: Snapshot, out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(to_summary_md(snapshot), encoding="utf-8")
    return out_path
