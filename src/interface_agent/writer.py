"""인터페이스 매핑 결과 → Markdown 리포트."""
from __future__ import annotations
from pathlib import Path
from typing import Sequence

from schema_agent.model import InterfaceDef, SnapshotWarning


def _names(values: Sequence[str]) -> str:
    return ", ".join(f"`{v}`" for v in values) if values else "-"


def to_markdown(interfaces: Sequence[InterfaceDef], warnings: Sequence[SnapshotWarning]) -> str:
    lines: list[str] = []
    lines.append("# Interface Mapping\n")

    mapped = [i for i in interfaces if i.mapped_to is not None]
    lines.append(f"- Interfaces: {len(interfaces)}")
    lines.append(f"- Mapped: {len(mapped)}")
    lines.append(f"- Warnings: {len(warnings)}\n")

    if interfaces:
        lines.append("| Interface | Source | Table | Missing in table | Extra in table | Nullable | Type |")
        lines.append("|-----------|--------|-------|------------------|----------------|----------|------|")
        for i in interfaces:
            m = i.mapped_to
            if m is None:
                lines.append(f"| `{i.name}` | {i.source} | (unmapped) | - | - | - | - |")
                continue
            d = m.field_diff
            lines.append(
                f"| `{i.name}` | {i.source} | `{m.schema}.{m.table}` | {_names(d.missing_in_table)} | "
                f"{_names(d.extra_in_table)} | {_names(d.nullable_mismatches)} | {_names(d.type_mismatches)} |"
            )
        lines.append("")

    if warnings:
        lines.append("## Warnings\n")
        for w in warnings:
            src = f" ({w.source})" if w.source else ""
            lines.append(f"- **{w.kind}**: {w.message}{src}")
        lines.append("")

    return "\n".join(lines)


def write_mapping_md(interfaces: Sequence[InterfaceDef], warnings: Sequence[SnapshotWarning], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(to_markdown(interfaces, warnings), encoding="utf-8")
    return out_path
