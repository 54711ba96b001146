"""스냅샷 저장소: id → Snapshot.

Snapshot 자체는 불변이므로 갱신은 항상 '새 값으로 교체'(copy-on-write)이고,
교체는 락 안에서 원자적으로 이뤄진다. path가 있으면 변경마다 JSON 파일에 다시 쓴다.
"""
from __future__ import annotations
import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from schema_agent.model import Snapshot
from schema_agent.serialize import SNAPSHOTS_ADAPTER

logger = logging.getLogger(__name__)


class SnapshotNotFound(KeyError):
    pass


@dataclass(frozen=True)
class SnapshotSummary:
    id: str
    snapshot: Snapshot

    @property
    def counts(self) -> dict[str, int]:
        s = self.snapshot
        return {
            "tables": len(s.tables),
            "enums": len(s.enums),
            "indexes": len(s.indexes),
            "relationships": len(s.relationships),
            "interfaces": len(s.interfaces),
        }


class SnapshotStore:
    def __init__(self, path: Path | None = None):
        self.path = path
        self._lock = threading.Lock()
        self._snapshots: dict[str, Snapshot] = {}
        if path is not None:
            self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            self._snapshots = dict(SNAPSHOTS_ADAPTER.validate_json(self.path.read_bytes()))
        except (OSError, ValidationError):
            logger.exception("failed to load snapshots from %s", self.path)
            return
        logger.info("loaded %d snapshots from %s", len(self._snapshots), self.path)

    def _persist(self) -> None:
        # 락을 잡은 상태에서 호출된다. 실패해도 메모리 상태는 유지(last write wins)
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_bytes(SNAPSHOTS_ADAPTER.dump_json(self._snapshots, indent=2))
            tmp.replace(self.path)
        except OSError:
            logger.exception("failed to persist snapshots to %s", self.path)

    def put(self, snapshot: Snapshot) -> str:
        snapshot_id = uuid.uuid4().hex
        with self._lock:
            self._snapshots[snapshot_id] = snapshot
            self._persist()
        logger.info("stored snapshot %s", snapshot_id)
        return snapshot_id

    def get(self, snapshot_id: str) -> Snapshot:
        with self._lock:
            snapshot = self._snapshots.get(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFound(snapshot_id)
        return snapshot

    def replace(self, snapshot_id: str, fn: Callable[[Snapshot], Snapshot]) -> Snapshot:
        """fn(old) -> new 를 락 안에서 실행하고 결과로 교체한다."""
        with self._lock:
            old = self._snapshots.get(snapshot_id)
            if old is None:
                raise SnapshotNotFound(snapshot_id)
            new = fn(old)
            self._snapshots[snapshot_id] = new
            self._persist()
        return new

    def delete(self, snapshot_id: str) -> bool:
        with self._lock:
            removed: Optional[Snapshot] = self._snapshots.pop(snapshot_id, None)
            if removed is not None:
                self._persist()
        return removed is not None

    def list(self) -> list[SnapshotSummary]:
        with self._lock:
            items = list(self._snapshots.items())
        return [SnapshotSummary(id=k, snapshot=v) for k, v in items]
