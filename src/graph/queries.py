"""
SurrealDB Graph Queries.

Parameterised queries over the ingested graph. Tables are per node type,
so every query takes the table name as $table.
"""

from typing import Dict


# Named collection of queries
GRAPH_QUERIES: Dict[str, Dict[str, str]] = {
    # ─────────────────────────────────────────────────────────────────
    # 1. Parent of a node (same type)
    # ─────────────────────────────────────────────────────────────────
    "parent": {
        "description": (
            "Find the node of the same type whose remote_id equals the "
            "given remote_parent_id, within one site."
        ),
        "query": """
            SELECT * FROM type::table($table)
            WHERE site_name = $site_name AND remote_id = $remote_parent_id
            LIMIT 1;
        """,
    },

    # ─────────────────────────────────────────────────────────────────
    # 2. Children of a node (same type)
    # ─────────────────────────────────────────────────────────────────
    "children": {
        "description": (
            "List the nodes of the same type whose remote_parent_id equals "
            "the given remote_id, within one site."
        ),
        "query": """
            SELECT * FROM type::table($table)
            WHERE site_name = $site_name AND remote_parent_id = $remote_id;
        """,
    },

    # ─────────────────────────────────────────────────────────────────
    # 3. Dangling category references on products
    # ─────────────────────────────────────────────────────────────────
    "unresolved_categories": {
        "description": (
            "Products whose category relation still holds references that "
            "could not be resolved to a category node."
        ),
        "query": """
            SELECT node_id, remote_id, relations.categories[WHERE resolved = false] AS dangling
            FROM wcProducts
            WHERE array::len(relations.categories[WHERE resolved = false]) > 0;
        """,
    },

    # ─────────────────────────────────────────────────────────────────
    # 4. Products of a category
    # ─────────────────────────────────────────────────────────────────
    "category_products": {
        "description": (
            "Products referencing a given category node id through their "
            "categories relation."
        ),
        "query": """
            SELECT node_id, remote_id, data.name AS name
            FROM wcProducts
            WHERE $category_id IN relations.categories.node_id;
        """,
    },

    # ─────────────────────────────────────────────────────────────────
    # 5. Node counts per site
    # ─────────────────────────────────────────────────────────────────
    "site_counts": {
        "description": (
            "Number of nodes of one type per site, for checking a run "
            "against the source store."
        ),
        "query": """
            SELECT site_name, count() AS nodes
            FROM type::table($table)
            GROUP BY site_name;
        """,
    },
}


def get_query(name: str) -> str:
    """
    Get a named query string.

    Raises:
        KeyError: If the query name is not found.
    """
    return GRAPH_QUERIES[name]["query"].strip()


def list_queries() -> list[str]:
    """List all available query names."""
    return list(GRAPH_QUERIES.keys())
