"""인터페이스 스캔/매핑: 소스 아카이브 → InterfaceDef → 스냅샷 매핑."""
from __future__ import annotations
from pathlib import Path

from rich.console import Console

from schema_agent.config import settings
from schema_agent.model import InterfaceDef, Snapshot
from schema_agent.serialize import interfaces_from_json, interfaces_to_json
from schema_agent.store import SnapshotStore
from interface_agent.mapper import apply_interfaces
from interface_agent.repo import fetch_archive
from interface_agent.scanner import scan_archive, scan_directory
from interface_agent.writer import write_mapping_md

console = Console()


def run_scan(
    source: str,
    out_dir: Path | None = None,
    out_file: str = "interfaces.json",
) -> tuple[list[InterfaceDef], Path]:
    """디렉터리 / zip 파일 / GitHub URL 을 스캔해 interfaces.json 을 쓴다."""
    p = Path(source).expanduser()
    if p.is_dir():
        interfaces = scan_directory(p)
    else:
        interfaces = scan_archive(fetch_archive(source))
    console.print(f"Found [green]{len(interfaces)}[/green] interface declarations")

    base = out_dir or settings.output_dir / "interfaces"
    base.mkdir(parents=True, exist_ok=True)
    out_path = base / out_file
    out_path.write_text(interfaces_to_json(interfaces), encoding="utf-8")
    console.print(f"[bold green]Interfaces:[/bold green] {out_path}")
    return interfaces, out_path


def run_map(
    snapshot_id: str,
    interfaces_path: Path,
    store: SnapshotStore,
    out_dir: Path | None = None,
    out_file: str = "interface_mapping.md",
) -> Snapshot:
    interfaces = interfaces_from_json(interfaces_path.read_bytes())
    updated = store.replace(snapshot_id, lambda s: apply_interfaces(s, interfaces))

    mapped = sum(1 for i in updated.interfaces if i.mapped_to is not None)
    console.print(f"Mapped [green]{mapped}[/green] / {len(updated.interfaces)} interfaces")

    base = out_dir or settings.output_dir / snapshot_id
    out_path = write_mapping_md(updated.interfaces, updated.warnings, base / out_file)
    console.print(f"[bold green]Mapping:[/bold green] {out_path}")
    return updated
