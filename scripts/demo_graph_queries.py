
import asyncio
from pprint import pprint

import sys
from pathlib import Path

# Add project root to Python path so we can import 'src'
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.append(str(project_root))

from src.graph.loader import GraphLoader
from src.graph.queries import GRAPH_QUERIES
from src.utils.config import load_config


# Sample variables for the parameterised queries
SAMPLE_VARIABLES = {
    "parent": {"table": "wcProductsCategories", "remote_parent_id": 0},
    "children": {"table": "wcProductsCategories", "remote_id": 0},
    "unresolved_categories": {},
    "category_products": {"category_id": ""},
    "site_counts": {"table": "wcProducts"},
}


async def run_queries():
    config = load_config(project_root / "config" / "pipeline_config.yaml")
    site_name = config.sites[0].site_name if config.sites else ""

    print(f"Querying graph at: {config.surreal.url}")
    loader = GraphLoader(config.surreal, config.fields)
    await loader.connect()

    print("\n=== Running Sample Graph Queries ===\n")

    for name, info in GRAPH_QUERIES.items():
        print(f"\n--- Query: {name} ---")
        print(f"Description: {info['description']}")

        variables = {"site_name": site_name, **SAMPLE_VARIABLES.get(name, {})}
        try:
            rows = await loader.query(name, **variables)
            print(f"Rows returned: {len(rows)}")
            if rows:
                print("Sample Row:")
                pprint(rows[0])
        except Exception as e:
            print(f"Query failed: {e}")

    await loader.close()

if __name__ == "__main__":
    asyncio.run(run_queries())
