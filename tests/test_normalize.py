"""카탈로그 행 정규화: 테이블 조립, 플래그, 관계 추론, 무결성 오류."""
from __future__ import annotations

import pytest

from schema_agent.catalog import CatalogRows
from schema_agent.model import CaptureFilters, DbInfo, ReferentialAction, RelationshipType
from schema_agent.normalize import CatalogIntegrityError, build_snapshot, normalize_catalog, normalize_type
from schema_agent.relationships import classify_relationship


class TestTables:
    def test_tables_keep_input_order(self, catalog_rows):
        catalog = normalize_catalog(catalog_rows)
        assert [t.key for t in catalog.tables] == ["public.users", "public.profiles", "public.orders"]

    def test_column_flags_follow_constraints(self, catalog_rows):
        users = normalize_catalog(catalog_rows).tables[0]
        assert users.column("id").is_primary_key
        assert not users.column("id").is_unique
        assert users.column("email").is_unique
        assert not users.column("email").is_primary_key
        assert not users.column("name").is_unique

    def test_table_metadata_is_carried(self, catalog_rows):
        users = normalize_catalog(catalog_rows).tables[0]
        assert users.comment == "회원"
        assert users.row_estimate == 120
        assert users.primary_key.name == "users_pkey"
        assert users.primary_key.columns == ("id",)

    def test_user_defined_type_uses_udt_name(self, catalog_rows):
        orders = normalize_catalog(catalog_rows).tables[2]
        assert orders.column("status").type == "order_status"

    def test_normalize_type(self):
        assert normalize_type("USER-DEFINED", "mood") == "mood"
        assert normalize_type("USER-DEFINED", None) == "USER-DEFINED"
        assert normalize_type("integer", "int4") == "integer"

    def test_checks_and_fk_actions(self, catalog_rows):
        catalog = normalize_catalog(catalog_rows)
        orders = catalog.tables[2]
        assert [c.name for c in orders.checks] == ["orders_status_check"]
        assert orders.checks[0].expression == "CHECK (status IS NOT NULL)"
        profiles = catalog.tables[1]
        assert profiles.foreign_keys[0].on_delete == ReferentialAction.CASCADE
        assert profiles.foreign_keys[0].on_update is None


class TestRelationships:
    def test_unique_fk_is_one_to_one(self, catalog_rows):
        rels = {r.name: r for r in normalize_catalog(catalog_rows).relationships}
        assert rels["profiles_users"].type == RelationshipType.ONE_TO_ONE

    def test_plain_fk_is_many_to_one(self, catalog_rows):
        rels = {r.name: r for r in normalize_catalog(catalog_rows).relationships}
        rel = rels["orders_users"]
        assert rel.type == RelationshipType.MANY_TO_ONE
        assert rel.source.table == "orders"
        assert rel.source.columns == ("user_id",)
        assert rel.target.table == "users"
        assert rel.target.columns == ("id",)
        assert rel.key == "public.orders->public.users.orders_user_id_fkey"

    def test_classify_by_primary_key(self):
        assert classify_relationship(["id"], [], ["id"]) == RelationshipType.ONE_TO_ONE

    def test_classify_requires_same_column_order(self):
        assert classify_relationship(["a", "b"], [["b", "a"]], ["id"]) == RelationshipType.MANY_TO_ONE
        assert classify_relationship(["a", "b"], [["a", "b"]], ["id"]) == RelationshipType.ONE_TO_ONE

    def test_classify_without_primary_key(self):
        assert classify_relationship(["user_id"], [], []) == RelationshipType.MANY_TO_ONE

    def test_composite_fk_columns_sorted_by_position(self):
        rows = CatalogRows.model_validate({
            "tables": [{"schema": "s", "name": "parent"}, {"schema": "s", "name": "child"}],
            "columns": [
                {"schema": "s", "table": "child", "name": "a", "data_type": "int"},
                {"schema": "s", "table": "child", "name": "b", "data_type": "int"},
            ],
            "constraints": [
                {"schema": "s", "table": "child", "name": "child_fk", "kind": "foreign_key", "column": "b",
                 "position": 2, "ref_schema": "s", "ref_table": "parent", "ref_column": "y"},
                {"schema": "s", "table": "child", "name": "child_fk", "kind": "foreign_key", "column": "a",
                 "position": 1, "ref_schema": "s", "ref_table": "parent", "ref_column": "x"},
            ],
        })
        fk = normalize_catalog(rows).tables[1].foreign_keys[0]
        assert fk.columns == ("a", "b")
        assert fk.ref_columns == ("x", "y")


class TestFiltering:
    def test_excluded_table_is_dropped_with_its_rows(self, catalog_rows):
        catalog = normalize_catalog(catalog_rows, exclude_tables=["orders"])
        assert [t.name for t in catalog.tables] == ["users", "profiles"]
        assert [r.name for r in catalog.relationships] == ["profiles_users"]
        assert [i.name for i in catalog.indexes] == ["users_pkey"]

    def test_rows_for_unknown_tables_are_ignored(self, catalog_dict):
        catalog_dict["columns"].append(
            {"schema": "public", "table": "ghost", "name": "id", "data_type": "integer"}
        )
        catalog_dict["constraints"].append(
            {"schema": "public", "table": "ghost", "name": "ghost_pkey", "kind": "primary_key", "column": "id"}
        )
        catalog = normalize_catalog(CatalogRows.model_validate(catalog_dict))
        assert len(catalog.tables) == 3

    def test_include_schemas_keeps_only_listed_schemas(self, catalog_dict):
        catalog_dict["tables"].append({"schema": "audit", "name": "log"})
        catalog_dict["columns"].append(
            {"schema": "audit", "table": "log", "name": "id", "data_type": "integer", "nullable": False}
        )
        catalog_dict["enums"].append({"schema": "audit", "name": "level", "label": "info"})
        rows = CatalogRows.model_validate(catalog_dict)

        assert "audit.log" in [t.key for t in normalize_catalog(rows).tables]
        catalog = normalize_catalog(rows, include_schemas=["public"])
        assert [t.key for t in catalog.tables] == ["public.users", "public.profiles", "public.orders"]
        assert [e.key for e in catalog.enums] == ["public.order_status"]

    def test_build_snapshot_applies_include_schemas(self, catalog_dict):
        catalog_dict["tables"].append({"schema": "audit", "name": "log"})
        snap = build_snapshot(
            CatalogRows.model_validate(catalog_dict),
            db=DbInfo(engine="postgres"),
            filters=CaptureFilters(include_schemas=("public",)),
        )
        assert all(t.schema == "public" for t in snap.tables)
        assert snap.filters.include_schemas == ("public",)


class TestIndexesEnumsViews:
    def test_indexes(self, catalog_rows):
        indexes = {i.key: i for i in normalize_catalog(catalog_rows).indexes}
        pkey = indexes["public.users.users_pkey"]
        assert pkey.is_primary and pkey.is_unique
        assert indexes["public.orders.orders_user_id_idx"].columns == ("user_id",)
        assert indexes["public.orders.orders_user_id_idx"].method == "btree"

    def test_enum_values_follow_sort_order(self, catalog_rows):
        enum = normalize_catalog(catalog_rows).enums[0]
        assert enum.key == "public.order_status"
        assert enum.values == ("pending", "shipped")

    def test_view_columns_skip_plain_tables(self, catalog_rows):
        views = normalize_catalog(catalog_rows).views
        assert [v.key for v in views] == ["public.active_users"]
        assert [c.name for c in views[0].columns] == ["id", "email"]


class TestIntegrityErrors:
    def test_duplicate_table(self, catalog_dict):
        catalog_dict["tables"].append({"schema": "public", "name": "users"})
        with pytest.raises(CatalogIntegrityError, match="public.users"):
            normalize_catalog(CatalogRows.model_validate(catalog_dict))

    def test_duplicate_column(self, catalog_dict):
        catalog_dict["columns"].append(
            {"schema": "public", "table": "users", "name": "email", "data_type": "text"}
        )
        with pytest.raises(CatalogIntegrityError):
            normalize_catalog(CatalogRows.model_validate(catalog_dict))

    def test_two_primary_keys(self, catalog_dict):
        catalog_dict["constraints"].append(
            {"schema": "public", "table": "users", "name": "users_pkey2", "kind": "primary_key", "column": "email"}
        )
        with pytest.raises(CatalogIntegrityError, match="two primary keys"):
            normalize_catalog(CatalogRows.model_validate(catalog_dict))

    def test_duplicate_view(self, catalog_dict):
        catalog_dict["views"].append({"schema": "public", "name": "active_users"})
        with pytest.raises(CatalogIntegrityError):
            normalize_catalog(CatalogRows.model_validate(catalog_dict))

    def test_duplicate_constraint_positions(self, catalog_dict):
        catalog_dict["constraints"].append(
            {"schema": "public", "table": "orders", "name": "orders_user_id_fkey", "kind": "foreign_key",
             "column": "status", "position": 1, "ref_schema": "public", "ref_table": "users",
             "ref_column": "email"}
        )
        with pytest.raises(CatalogIntegrityError, match="Duplicate positions"):
            normalize_catalog(CatalogRows.model_validate(catalog_dict))

    def test_duplicate_index_positions(self, catalog_dict):
        catalog_dict["indexes"].append(
            {"schema": "public", "table": "orders", "name": "orders_user_id_idx", "column": "status",
             "position": 1, "method": "btree"}
        )
        with pytest.raises(CatalogIntegrityError, match="orders_user_id_idx"):
            normalize_catalog(CatalogRows.model_validate(catalog_dict))

    def test_integrity_error_is_value_error(self):
        assert issubclass(CatalogIntegrityError, ValueError)
