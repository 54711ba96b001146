"""스냅샷 생성/내보내기: 카탈로그 행 JSON → Snapshot → 저장소 + DBML/요약 MD."""
from __future__ import annotations
import json
from pathlib import Path
from typing import Sequence

from rich.console import Console

from schema_agent.catalog import load_rows
from schema_agent.config import settings
from schema_agent.dbml_writer import write_dbml
from schema_agent.docs_writer import write_summary_md
from schema_agent.model import CaptureFilters, DbInfo, Snapshot
from schema_agent.normalize import build_snapshot
from schema_agent.serialize import interfaces_from_json
from schema_agent.store import SnapshotStore

console = Console()


def run_snapshot(
    rows_path: Path,
    store: SnapshotStore,
    engine: str = "normalized",
    url: str | None = None,
    version: str | None = None,
    include_schemas: Sequence[str] = (),
    exclude_tables: Sequence[str] = (),
    interfaces_path: Path | None = None,
) -> tuple[str, Snapshot]:
    """
    카탈로그 행 JSON을 정규화해 새 스냅샷으로 저장한다.
    반환: (snapshot_id, snapshot)
    """
    data = json.loads(rows_path.read_text(encoding="utf-8"))
    rows = load_rows(data, engine=engine)

    # 어댑터 입력에 버전이 같이 들어있으면 그걸 사용
    version = version or data.get("version")
    if url:
        db = DbInfo.from_url(url, version=version)
    else:
        db = DbInfo(engine="mysql" if engine == "mysql" else "postgres", version=version)

    interfaces = interfaces_from_json(interfaces_path.read_bytes()) if interfaces_path else []
    snapshot = build_snapshot(
        rows,
        db=db,
        filters=CaptureFilters(include_schemas=tuple(include_schemas), exclude_tables=tuple(exclude_tables)),
        interfaces=interfaces,
    )
    snapshot_id = store.put(snapshot)

    console.print(
        f"Normalized [green]{len(snapshot.tables)}[/green] tables, "
        f"[green]{len(snapshot.relationships)}[/green] relationships"
    )
    if snapshot.warnings:
        console.print(f"[yellow]{len(snapshot.warnings)} warning(s)[/yellow]")
    console.print(f"[bold green]Snapshot:[/bold green] {snapshot_id}")
    return snapshot_id, snapshot


def run_export(
    snapshot_id: str,
    store: SnapshotStore,
    out_dir: Path | None = None,
    out_dbml: str = "schema.dbml",
    out_md: str = "schema_summary.md",
) -> tuple[Path, Path]:
    """저장된 스냅샷을 DBML + 요약 MD로 내보낸다. 반환: (dbml_path, md_path)"""
    snapshot = store.get(snapshot_id)
    base = out_dir or settings.output_dir / snapshot_id
    dbml_path = write_dbml(snapshot, base / out_dbml)
    md_path = write_summary_md(snapshot, base / out_md)
    console.print(f"[bold green]DBML:[/bold green] {dbml_path}")
    console.print(f"[bold green]MD:[/bold green]   {md_path}")
    return dbml_path, md_path
