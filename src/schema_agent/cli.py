"""
스키마 스냅샷 CLI.
- schema-agent: 통합 (snapshot / list / show / delete / export / scan / map / diff)
- interface-agent, diff-agent: 개별 실행
"""
from __future__ import annotations
import logging
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table as RichTable

from schema_agent.config import settings
from schema_agent.commands import snapshot as cmd_snapshot
from schema_agent.normalize import CatalogIntegrityError
from schema_agent.serialize import snapshot_to_json
from schema_agent.store import SnapshotNotFound, SnapshotStore
from interface_agent.repo import ArchiveDownloadError
from interface_agent import run_map, run_scan
from diff_agent import run_diff

console = Console()


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def get_store() -> SnapshotStore:
    return SnapshotStore(settings.store_path)


@contextmanager
def handle_errors():
    # 예상 가능한 실패는 스택트레이스 대신 한 줄 메시지 + exit 1
    try:
        yield
    except SnapshotNotFound as e:
        console.print(f"[bold red]Snapshot not found:[/bold red] {e.args[0]}")
        raise typer.Exit(code=1)
    except CatalogIntegrityError as e:
        console.print(f"[bold red]Inconsistent catalog rows:[/bold red] {e}")
        raise typer.Exit(code=1)
    except ValidationError as e:
        console.print(f"[bold red]Invalid input:[/bold red] {e}")
        raise typer.Exit(code=1)
    except ArchiveDownloadError as e:
        console.print(f"[bold red]Download failed:[/bold red] {e}")
        raise typer.Exit(code=1)
    except zipfile.BadZipFile as e:
        console.print(f"[bold red]Invalid archive:[/bold red] {e}")
        raise typer.Exit(code=1)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


app = typer.Typer(
    name="schema-agent",
    add_completion=False,
    help="DB 카탈로그 스냅샷 정규화, 인터페이스 매핑, 스냅샷 diff",
)


@app.callback()
def main():
    configure_logging()


@app.command("snapshot")
def snapshot(
    rows: Path = typer.Argument(..., exists=True, dir_okay=False, help="카탈로그 행 JSON 파일"),
    engine: str = typer.Option("normalized", help="행 모양: normalized / postgres / mysql"),
    url: Optional[str] = typer.Option(None, help="접속 URL (호스트/DB 이름 기록용, 접속하지 않음)"),
    version: Optional[str] = typer.Option(None, help="서버 버전"),
    include_schema: List[str] = typer.Option([], "--include-schema", help="이 스키마의 행만 스냅샷에 포함 (반복 지정 가능)"),
    exclude_table: List[str] = typer.Option([], "--exclude-table", help="제외할 테이블 이름"),
    interfaces: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="함께 매핑할 interfaces.json"),
):
    """카탈로그 행을 정규화해 새 스냅샷을 저장한다."""
    with handle_errors():
        cmd_snapshot.run_snapshot(
            rows,
            store=get_store(),
            engine=engine,
            url=url,
            version=version,
            include_schemas=include_schema,
            exclude_tables=exclude_table,
            interfaces_path=interfaces,
        )


@app.command("list")
def list_snapshots():
    """저장된 스냅샷 목록."""
    items = get_store().list()
    if not items:
        console.print("No snapshots.")
        return
    table = RichTable("id", "generated", "engine", "database", "tables", "relationships", "interfaces")
    for s in items:
        snap = s.snapshot
        c = s.counts
        table.add_row(
            s.id,
            snap.generated_at.isoformat(timespec="seconds"),
            snap.db.engine,
            snap.db.database or "-",
            str(c["tables"]),
            str(c["relationships"]),
            str(c["interfaces"]),
        )
    console.print(table)


@app.command("show")
def show(snapshot_id: str = typer.Argument(...)):
    """스냅샷 JSON 출력."""
    with handle_errors():
        typer.echo(snapshot_to_json(get_store().get(snapshot_id)))


@app.command("delete")
def delete(snapshot_id: str = typer.Argument(...)):
    """스냅샷 삭제."""
    deleted = get_store().delete(snapshot_id)
    console.print(f"deleted: {deleted}")
    if not deleted:
        raise typer.Exit(code=1)


@app.command("export")
def export(
    snapshot_id: str = typer.Argument(...),
    out_dbml: str = typer.Option("schema.dbml", help="출력 DBML 파일명"),
    out_md: str = typer.Option("schema_summary.md", help="출력 요약 MD 파일명"),
):
    """스냅샷을 DBML + 요약 MD로 내보낸다."""
    with handle_errors():
        cmd_snapshot.run_export(snapshot_id, store=get_store(), out_dbml=out_dbml, out_md=out_md)


@app.command("scan")
def scan(
    source: str = typer.Argument(..., help="디렉터리, zip 파일 또는 GitHub URL"),
    out_file: str = typer.Option("interfaces.json", help="출력 파일명"),
):
    """소스에서 interface / type 선언을 추출한다."""
    with handle_errors():
        run_scan(source, out_file=out_file)


@app.command("map")
def map_interfaces(
    snapshot_id: str = typer.Argument(...),
    interfaces: Path = typer.Argument(..., exists=True, dir_okay=False, help="interfaces.json"),
):
    """인터페이스 목록을 스냅샷 테이블에 매핑하고 스냅샷을 교체한다."""
    with handle_errors():
        run_map(snapshot_id, interfaces, store=get_store())


@app.command("diff")
def diff(
    base_id: str = typer.Argument(..., help="기준 스냅샷"),
    other_id: str = typer.Argument(..., help="비교 스냅샷"),
    out_file: str = typer.Option("diff.md", help="출력 MD 파일명"),
    json_out: bool = typer.Option(False, "--json", help="JSON 리포트도 함께 출력"),
    fail_on_breaking: bool = typer.Option(False, help="breaking change가 있으면 exit 2"),
):
    """두 스냅샷을 비교한다."""
    with handle_errors():
        report = run_diff(base_id, other_id, store=get_store(), out_file=out_file, write_json=json_out)
    if fail_on_breaking and report.has_breaking_changes:
        raise typer.Exit(code=2)


# ----- 개별 진입점: interface-agent, diff-agent -----

interface_app = typer.Typer(add_completion=False)


@interface_app.callback(invoke_without_command=True)
def interface_main(
    source: str = typer.Argument(..., help="디렉터리, zip 파일 또는 GitHub URL"),
    out_file: str = typer.Option("interfaces.json", help="출력 파일명"),
):
    """인터페이스 스캔만 실행 (interface-agent ./frontend)."""
    configure_logging()
    with handle_errors():
        run_scan(source, out_file=out_file)


diff_app = typer.Typer(add_completion=False)


@diff_app.callback(invoke_without_command=True)
def diff_main(
    base_id: str = typer.Argument(..., help="기준 스냅샷"),
    other_id: str = typer.Argument(..., help="비교 스냅샷"),
    out_file: str = typer.Option("diff.md", help="출력 MD 파일명"),
):
    """스냅샷 diff만 실행 (diff-agent <id> <other-id>)."""
    configure_logging()
    with handle_errors():
        run_diff(base_id, other_id, store=get_store(), out_file=out_file)


if __name__ == "__main__":
    app()
