from __future__ import annotations
from typing import Iterable, Sequence

from schema_agent.model import Endpoint, Relationship, RelationshipType, Table


def _columns_key(columns: Sequence[str]) -> str:
    return "|".join(columns)


def classify_relationship(
    from_columns: Sequence[str],
    uniques: Iterable[Sequence[str]],
    pk_columns: Sequence[str],
) -> RelationshipType:
    """FK 컬럼 묶음이 PK 또는 UNIQUE 제약과 (순서까지) 같으면 1:1, 아니면 N:1."""
    cols_key = _columns_key(from_columns)
    if pk_columns and cols_key == _columns_key(pk_columns):
        return RelationshipType.ONE_TO_ONE
    if any(_columns_key(u) == cols_key for u in uniques):
        return RelationshipType.ONE_TO_ONE
    return RelationshipType.MANY_TO_ONE


def derive_relationships(tables: Iterable[Table]) -> list[Relationship]:
    # 자식(참조하는 쪽) → 부모 방향만 추론한다
    rels: list[Relationship] = []
    for t in tables:
        pk_cols = t.primary_key.columns if t.primary_key else ()
        unique_cols = [u.columns for u in t.uniques]
        for fk in t.foreign_keys:
            rels.append(Relationship(
                name=f"{t.name}_{fk.ref_table}",
                type=classify_relationship(fk.columns, unique_cols, pk_cols),
                source=Endpoint(schema=t.schema, table=t.name, columns=fk.columns),
                target=Endpoint(schema=fk.ref_schema, table=fk.ref_table, columns=fk.ref_columns),
                fk_name=fk.name,
            ))
    return rels
