"""
Eager loading of relations named by dotted paths ("author", "author.profile").

Each path is loaded with one `WHERE remote_key IN (...)` query against the
related table and attached to its parent rows under the last path segment.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from post_service.database_operations import DatabaseOperations
from post_service.errors import InvalidQueryError
from post_service.query_builder import QueryBuilder


class Relation(BaseModel):
    """How rows of one table relate to their parent rows.

    Usage:
        relations = {
            "author": Relation(table="users", local_key="created_by", remote_key="id"),
            "author.profile": Relation(table="profiles", local_key="id", remote_key="user_id"),
        }
    """

    table: str
    local_key: str
    remote_key: str
    # many=True attaches a list, otherwise a single row or None
    many: bool = False


def expand_paths(paths: Iterable[str]) -> list[str]:
    """Add every intermediate path and order parents before children"""
    expanded: set[str] = set()
    for path in paths:
        segments = path.split(".")
        for depth in range(1, len(segments) + 1):
            expanded.add(".".join(segments[:depth]))
    return sorted(expanded, key=lambda p: (p.count("."), p))


class RelationLoader:
    """Composition class that attaches related rows to row dictionaries"""

    def __init__(
        self,
        relations: Mapping[str, Relation],
        db_ops: DatabaseOperations,
        db_schema: str | None = None,
    ):
        self.relations = dict(relations)
        self.db_ops = db_ops
        self.db_schema = db_schema

    def _table(self, relation: Relation) -> str:
        return f"{self.db_schema}.{relation.table}" if self.db_schema else relation.table

    def validate(self, paths: Iterable[str]) -> list[str]:
        ordered = expand_paths(paths)
        for path in ordered:
            if path not in self.relations:
                raise InvalidQueryError(f"Unknown relation '{path}'")
        return ordered

    async def load(self, rows: list[dict[str, Any]], paths: Iterable[str]) -> list[dict[str, Any]]:
        """Attach every requested relation to `rows` in place and return them"""
        ordered = self.validate(paths)
        if not ordered or not rows:
            return rows

        # Rows reachable at each loaded path, starting from the root rows
        reachable: dict[str, list[dict[str, Any]]] = {"": rows}
        for path in ordered:
            parent_path, _, name = path.rpartition(".")
            parents = reachable.get(parent_path, [])
            reachable[path] = await self._load_one(parents, name, self.relations[path])
        return rows

    async def _load_one(
        self, parents: list[dict[str, Any]], name: str, relation: Relation
    ) -> list[dict[str, Any]]:
        # Unique keys in first-seen order
        keys = list(
            dict.fromkeys(
                parent[relation.local_key]
                for parent in parents
                if parent.get(relation.local_key) is not None
            )
        )

        grouped: dict[Any, list[dict[str, Any]]] = defaultdict(list)
        if keys:
            query, params = (
                QueryBuilder(self._table(relation))
                .where_in(relation.remote_key, keys)
                .build()
            )
            for record in await self.db_ops.fetch_all(query, params):
                row = dict(record)
                grouped[row[relation.remote_key]].append(row)

        children: list[dict[str, Any]] = []
        for parent in parents:
            related = grouped.get(parent.get(relation.local_key), [])
            if relation.many:
                parent[name] = related
                children.extend(related)
            else:
                parent[name] = related[0] if related else None
                children.extend(related[:1])
        return children
