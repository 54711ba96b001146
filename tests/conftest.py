"""공용 픽스처: 작은 쇼핑몰 카탈로그 (users / profiles / orders)."""
from __future__ import annotations
from datetime import datetime, timezone

import pytest

from schema_agent.catalog import CatalogRows
from schema_agent.config import settings
from schema_agent.model import DbInfo
from schema_agent.normalize import build_snapshot

GENERATED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def shop_catalog() -> dict:
    return {
        "tables": [
            {"schema": "public", "name": "users", "comment": "회원", "row_estimate": 120},
            {"schema": "public", "name": "profiles"},
            {"schema": "public", "name": "orders"},
        ],
        "columns": [
            {"schema": "public", "table": "users", "name": "id", "data_type": "integer", "nullable": False,
             "default": "nextval('users_id_seq'::regclass)"},
            {"schema": "public", "table": "users", "name": "email", "data_type": "character varying"},
            {"schema": "public", "table": "users", "name": "name", "data_type": "text"},
            {"schema": "public", "table": "profiles", "name": "id", "data_type": "integer", "nullable": False},
            {"schema": "public", "table": "profiles", "name": "user_id", "data_type": "integer", "nullable": False},
            {"schema": "public", "table": "orders", "name": "id", "data_type": "integer", "nullable": False},
            {"schema": "public", "table": "orders", "name": "user_id", "data_type": "integer", "nullable": False},
            {"schema": "public", "table": "orders", "name": "status", "data_type": "USER-DEFINED",
             "udt_name": "order_status"},
        ],
        "constraints": [
            {"schema": "public", "table": "users", "name": "users_pkey", "kind": "primary_key",
             "column": "id", "position": 1},
            {"schema": "public", "table": "users", "name": "users_email_key", "kind": "unique",
             "column": "email", "position": 1},
            {"schema": "public", "table": "profiles", "name": "profiles_pkey", "kind": "primary_key",
             "column": "id", "position": 1},
            {"schema": "public", "table": "profiles", "name": "profiles_user_id_key", "kind": "unique",
             "column": "user_id", "position": 1},
            {"schema": "public", "table": "profiles", "name": "profiles_user_id_fkey", "kind": "foreign_key",
             "column": "user_id", "position": 1, "ref_schema": "public", "ref_table": "users",
             "ref_column": "id", "on_delete": "CASCADE"},
            {"schema": "public", "table": "orders", "name": "orders_pkey", "kind": "primary_key",
             "column": "id", "position": 1},
            {"schema": "public", "table": "orders", "name": "orders_user_id_fkey", "kind": "foreign_key",
             "column": "user_id", "position": 1, "ref_schema": "public", "ref_table": "users",
             "ref_column": "id"},
            {"schema": "public", "table": "orders", "name": "orders_status_check", "kind": "check",
             "expression": "CHECK (status IS NOT NULL)"},
        ],
        "indexes": [
            {"schema": "public", "table": "orders", "name": "orders_user_id_idx", "column": "user_id",
             "position": 1, "method": "btree"},
            {"schema": "public", "table": "users", "name": "users_pkey", "column": "id", "position": 1,
             "is_unique": True, "is_primary": True, "method": "btree"},
        ],
        "enums": [
            {"schema": "public", "name": "order_status", "label": "shipped", "sort_order": 2},
            {"schema": "public", "name": "order_status", "label": "pending", "sort_order": 1},
        ],
        "views": [
            {"schema": "public", "name": "active_users", "definition": "SELECT id, email FROM users"},
        ],
        "view_columns": [
            {"schema": "public", "view": "active_users", "name": "id", "data_type": "integer"},
            {"schema": "public", "view": "active_users", "name": "email", "data_type": "character varying"},
            {"schema": "public", "view": "users", "name": "id", "data_type": "integer"},
        ],
    }


@pytest.fixture
def catalog_dict() -> dict:
    return shop_catalog()


@pytest.fixture
def catalog_rows(catalog_dict) -> CatalogRows:
    return CatalogRows.model_validate(catalog_dict)


@pytest.fixture
def snapshot(catalog_rows):
    return build_snapshot(catalog_rows, db=DbInfo(engine="postgres", version="16.2"), generated_at=GENERATED_AT)


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """출력/저장 경로를 tmp_path 아래로 돌린다."""
    monkeypatch.setattr(settings, "output_dir", tmp_path / "out")
    monkeypatch.setattr(settings, "store_path", tmp_path / "store" / "snapshots.json")
    monkeypatch.setattr(settings, "log_level", "WARNING")
    return settings
