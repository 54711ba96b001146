"""스냅샷 diff: 저장소의 두 스냅샷 비교 → Markdown(+JSON) 출력."""
from __future__ import annotations
from pathlib import Path

from rich.console import Console

from schema_agent.config import settings
from schema_agent.store import SnapshotStore
from diff_agent.differ import diff_snapshots
from diff_agent.models import DiffReport
from diff_agent.writer import write_diff_md

console = Console()


def run_diff(
    base_id: str,
    other_id: str,
    store: SnapshotStore,
    out_dir: Path | None = None,
    out_file: str = "diff.md",
    write_json: bool = False,
) -> DiffReport:
    report = diff_snapshots(store.get(base_id), store.get(other_id))

    base = out_dir or settings.output_dir / "diff"
    md_path = write_diff_md(report, base / out_file, base_id, other_id)

    if report.has_breaking_changes:
        console.print(f"[bold red]{len(report.breaking)} breaking change(s)[/bold red]")
        for b in report.breaking:
            console.print(f"  - {b}")
    elif report.is_empty:
        console.print("[green]No changes[/green]")
    else:
        console.print("[yellow]Non-breaking changes only[/yellow]")

    console.print(f"[bold green]Diff:[/bold green] {md_path}")
    if write_json:
        json_path = md_path.with_suffix(".json")
        json_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[bold green]JSON:[/bold green] {json_path}")
    return report
