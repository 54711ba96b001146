"""Diff 결과 → Markdown 리포트."""
from __future__ import annotations
from pathlib import Path

from diff_agent.models import DiffReport, KeyDiff


def _key_section(lines: list[str], title: str, diff: KeyDiff) -> None:
    if diff.is_empty:
        return
    lines.append(f"## {title}\n")
    for k in diff.added:
        lines.append(f"- added: `{k}`")
    for k in diff.removed:
        lines.append(f"- removed: `{k}`")
    lines.append("")


def to_markdown(report: DiffReport, base_id: str = "A", other_id: str = "B") -> str:
    lines: list[str] = []
    lines.append(f"# Snapshot Diff: {base_id} → {other_id}\n")

    if report.is_empty:
        lines.append("No changes.\n")
        return "\n".join(lines)

    if report.breaking:
        lines.append(f"## Breaking changes ({len(report.breaking)})\n")
        for b in report.breaking:
            lines.append(f"- ⚠️ {b}")
        lines.append("")

    _key_section(lines, "Tables", report.tables)
    if report.tables.column_changes:
        lines.append("## Column changes\n")
        lines.append("| Table | Added | Removed | Changed |")
        lines.append("|-------|-------|---------|---------|")
        for cc in report.tables.column_changes:
            lines.append(
                f"| `{cc.table}` | {', '.join(cc.added) or '-'} | "
                f"{', '.join(cc.removed) or '-'} | {', '.join(cc.changed) or '-'} |"
            )
        lines.append("")

    _key_section(lines, "Enums", report.enums)
    _key_section(lines, "Indexes", report.indexes)
    _key_section(lines, "Relationships", report.relationships)
    _key_section(lines, "Views", report.views)
    _key_section(lines, "Interfaces", report.interfaces)
    return "\n".join(lines)


def write_diff_md(report: DiffReport, out_path: Path, base_id: str = "A", other_id: str = "B") -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(to_markdown(report, base_id, other_id), encoding="utf-8")
    return out_path
