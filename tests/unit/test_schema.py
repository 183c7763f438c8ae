"""
Unit tests for the Graph schema.

Tests type definitions, parent/children resolution, DDL generation and
query structure without requiring a live SurrealDB instance.
"""

import pytest

from src.graph.nodes import IdentityAssigner
from src.graph.queries import GRAPH_QUERIES, get_query, list_queries
from src.graph.schema import (
    ParentChildIndex,
    TypeDefinition,
    build_type_definitions,
    get_schema_statements,
)


FIELDS = ["products/categories", "products", "orders"]


def categories(*raw):
    return IdentityAssigner().assign_all(list(raw), "productsCategories", "shop")


class TestTypeDefinitions:
    """Tests for per-kind output types."""

    def test_one_type_per_field_in_order(self):
        names = [d.name for d in build_type_definitions(FIELDS)]
        assert names == ["wcProductsCategories", "wcProducts", "wcOrders"]

    def test_duplicate_fields_collapse(self):
        assert len(build_type_definitions(["products", "products"])) == 1

    def test_derived_fields(self):
        definition = build_type_definitions(["products"])[0]
        assert definition.resource_kind == "products"
        assert definition.derived_fields == ("parent", "children")


class TestParentChildResolution:
    """parent and children are inverse views of remote_parent_id."""

    def test_parent_and_children_symmetric(self):
        nodes = categories({"id": 1, "parent": 0}, {"id": 2, "parent": 1}, {"id": 3, "parent": 1})
        definition = TypeDefinition(name="wcProductsCategories", resource_kind="productsCategories")
        root, first, second = nodes

        assert definition.resolve_parent(first, nodes) is root
        assert definition.resolve_children(root, nodes) == [first, second]
        for child in definition.resolve_children(root, nodes):
            assert definition.resolve_parent(child, nodes) is root

    def test_no_parent(self):
        nodes = IdentityAssigner().assign_all([{"id": 2}], "products", "shop")
        definition = TypeDefinition(name="wcProducts", resource_kind="products")
        assert definition.resolve_parent(nodes[0], nodes) is None
        assert definition.resolve_children(nodes[0], nodes) == []

    def test_parent_never_crosses_types(self):
        category = categories({"id": 1})[0]
        product = IdentityAssigner().assign({"id": 9, "parent": 1}, "products", "shop")
        definition = TypeDefinition(name="wcProducts", resource_kind="products")
        assert definition.resolve_parent(product, [category, product]) is None

    def test_parent_and_children_stay_within_site(self):
        assigner = IdentityAssigner()
        shop_root, shop_child = assigner.assign_all(
            [{"id": 1, "parent": 0}, {"id": 2, "parent": 1}], "productsCategories", "shop"
        )
        outlet_root, outlet_child = assigner.assign_all(
            [{"id": 1, "parent": 0}, {"id": 2, "parent": 1}], "productsCategories", "outlet"
        )
        nodes = [outlet_root, shop_root, outlet_child, shop_child]
        definition = TypeDefinition(name="wcProductsCategories", resource_kind="productsCategories")

        assert definition.resolve_parent(shop_child, nodes) is shop_root
        assert definition.resolve_parent(outlet_child, nodes) is outlet_root
        assert definition.resolve_children(shop_root, nodes) == [shop_child]
        assert definition.resolve_children(outlet_root, nodes) == [outlet_child]

        index = ParentChildIndex.from_nodes(nodes)
        assert index.parent_of(shop_child) is shop_root
        assert index.children_of(outlet_root) == [outlet_child]
        assert index.orphans() == []


class TestParentChildIndex:

    def test_matches_resolvers(self):
        nodes = categories({"id": 1, "parent": 0}, {"id": 2, "parent": 1})
        index = ParentChildIndex.from_nodes(nodes)
        assert index.parent_of(nodes[1]) is nodes[0]
        assert index.children_of(nodes[0]) == [nodes[1]]
        assert index.parent_of(nodes[0]) is None

    def test_orphans_skip_top_level_markers(self):
        nodes = categories(
            {"id": 1, "parent": 0},
            {"id": 2, "parent": 1},
            {"id": 3, "parent": 42},
        )
        orphans = ParentChildIndex.from_nodes(nodes).orphans()
        assert [n.remote_id for n in orphans] == [3]


class TestSchemaStatements:
    """Tests for SurrealQL DDL."""

    def test_statements_are_surrealql(self):
        valid_prefixes = ("DEFINE TABLE", "DEFINE INDEX")
        for stmt in get_schema_statements(FIELDS):
            assert stmt.startswith(valid_prefixes), f"Invalid statement: {stmt[:60]}"

    def test_every_type_and_media_table_defined(self):
        stmts = get_schema_statements(FIELDS)
        tables = [s.split()[2] for s in stmts if s.startswith("DEFINE TABLE")]
        assert tables == ["wcProductsCategories", "wcProducts", "wcOrders", "wcMedia"]

    def test_node_id_index_unique(self):
        stmts = get_schema_statements(["products"])
        assert "DEFINE INDEX wcProducts_node_id ON TABLE wcProducts FIELDS node_id UNIQUE" in stmts


class TestGraphQueries:
    """Tests for named query definitions."""

    def test_list_queries(self):
        names = list_queries()
        assert "parent" in names
        assert "children" in names
        assert len(names) == len(GRAPH_QUERIES)

    def test_each_query_has_description_and_select(self):
        for name, entry in GRAPH_QUERIES.items():
            assert entry["description"], f"{name} has no description"
            assert get_query(name).startswith("SELECT")

    def test_unknown_query_raises(self):
        with pytest.raises(KeyError):
            get_query("no_such_query")
