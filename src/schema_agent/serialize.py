"""Snapshot / InterfaceDef JSON 직렬화."""
from __future__ import annotations
import json
from typing import Sequence

from pydantic import TypeAdapter

from schema_agent.model import InterfaceDef, Snapshot

SNAPSHOT_ADAPTER = TypeAdapter(Snapshot)
SNAPSHOTS_ADAPTER = TypeAdapter(dict[str, Snapshot])
INTERFACES_ADAPTER = TypeAdapter(list[InterfaceDef])


def snapshot_to_json(snapshot: Snapshot) -> str:
    return SNAPSHOT_ADAPTER.dump_json(snapshot, indent=2).decode("utf-8")


def snapshot_from_json(data: str | bytes) -> Snapshot:
    return SNAPSHOT_ADAPTER.validate_json(data)


def interfaces_to_json(interfaces: Sequence[InterfaceDef]) -> str:
    payload = {"interfaces": INTERFACES_ADAPTER.dump_python(list(interfaces), mode="json")}
    return json.dumps(payload, ensure_ascii=False, indent=2)


def interfaces_from_json(data: str | bytes) -> list[InterfaceDef]:
    """{"interfaces": [...]} 또는 목록 그대로 받는다."""
    obj = json.loads(data)
    if isinstance(obj, dict):
        obj = obj.get("interfaces", [])
    return INTERFACES_ADAPTER.validate_python(obj)
