"""
SurrealDB Graph Loader.

Storage runtime backed by SurrealDB. Each node type gets its own table;
a node is stored under its deterministic id, so re-emitting an unchanged
node overwrites it in place.

Usage:
    loader = GraphLoader(config, fields)
    await loader.connect()
    await loader.emit(node)
    await loader.close()
"""

from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from surrealdb import AsyncSurreal

from src.utils.config import SurrealConfig
from .nodes import GraphNode
from .queries import get_query
from .schema import get_schema_statements
from .store import GraphStore


class GraphLoader(GraphStore):
    """
    Writes finished nodes into SurrealDB.

    Record ids are `{type}:`{node id}``; the node id is also stored as the
    node_id field so rows can be turned back into GraphNodes.
    """

    def __init__(self, config: SurrealConfig, fields: Iterable[str] = ()):
        """
        Initialize the graph loader.

        Args:
            config: SurrealDB connection config.
            fields: Configured resource kinds, used to define tables.
        """
        self.config = config
        self.fields = list(fields)
        self.db: Optional[AsyncSurreal] = None
        self.emitted = 0
        self.errors = 0
        self.logger = logger.bind(component="GraphLoader")

    async def connect(self) -> None:
        """Establish connection to SurrealDB and apply the schema."""
        self.db = AsyncSurreal(self.config.url)
        await self.db.connect()
        await self.db.signin({"username": self.config.username, "password": self.config.password})
        await self.db.use(self.config.namespace, self.config.database)
        self.logger.info(
            f"Connected to SurrealDB: {self.config.url} "
            f"({self.config.namespace}/{self.config.database})"
        )
        await self.apply_schema()

    async def close(self) -> None:
        """Close SurrealDB connection."""
        if self.db:
            await self.db.close()
            self.logger.debug("SurrealDB connection closed")

    async def apply_schema(self) -> None:
        """Define one table per configured type."""
        statements = get_schema_statements(self.fields)
        self.logger.info(f"Applying schema: {len(statements)} statements")
        for stmt in statements:
            try:
                await self.db.query(stmt)
            except Exception as e:
                self.logger.warning(f"Schema statement failed: {stmt[:60]}... ({e})")

    @staticmethod
    def _sanitize_id(raw_id: str) -> str:
        """
        Sanitize a record ID for use as a SurrealDB record key.

        Removes backticks (which would break backtick-quoted IDs)
        and control characters. Whitespace is trimmed.
        """
        cleaned = raw_id.strip().replace("`", "")
        return "".join(c for c in cleaned if c.isprintable())

    @staticmethod
    def _content(node: GraphNode) -> Dict[str, Any]:
        content = node.model_dump(mode="json")
        content["node_id"] = content.pop("id")
        return content

    @staticmethod
    def _rows(result: Any) -> List[Dict[str, Any]]:
        """Unwrap query() results, which some SDK versions wrap per statement."""
        if isinstance(result, list) and result and isinstance(result[0], dict) \
                and "result" in result[0]:
            result = result[0]["result"]
        return result if isinstance(result, list) else []

    async def emit(self, node: GraphNode) -> None:
        record = f"{node.kind}:`{self._sanitize_id(node.id)}`"
        try:
            await self.db.query(f"UPSERT {record} CONTENT $data", {"data": self._content(node)})
            self.emitted += 1
        except Exception as e:
            self.errors += 1
            self.logger.warning(f"Failed to store {record}: {e}")

    async def touch(self, node_id: str, kind: Optional[str] = None) -> None:
        if kind is None:
            return
        record = f"{kind}:`{self._sanitize_id(node_id)}`"
        try:
            await self.db.query(f"UPDATE {record} SET touched_at = time::now()")
        except Exception as e:
            self.errors += 1
            self.logger.warning(f"Failed to touch {record}: {e}")

    async def has(self, node_id: str, kind: Optional[str] = None) -> bool:
        """Record lookup by id; a lookup that fails counts as absent."""
        if kind is None:
            return False
        record = f"{kind}:`{self._sanitize_id(node_id)}`"
        try:
            rows = self._rows(await self.db.query(f"SELECT node_id FROM {record}"))
        except Exception as e:
            self.logger.warning(f"Failed to look up {record}: {e}")
            return False
        return bool(rows)

    async def get_all_nodes(self, kind: str) -> List[GraphNode]:
        result = await self.db.query("SELECT * FROM type::table($table)", {"table": kind})
        return [self._to_node(row) for row in self._rows(result)]

    async def query(self, name: str, **variables: Any) -> List[Dict[str, Any]]:
        """Run one of the named queries from queries.py."""
        return self._rows(await self.db.query(get_query(name), variables))

    @staticmethod
    def _to_node(row: Dict[str, Any]) -> GraphNode:
        data = {key: value for key, value in row.items() if key not in ("id", "touched_at")}
        data["id"] = data.pop("node_id")
        return GraphNode(**data)
