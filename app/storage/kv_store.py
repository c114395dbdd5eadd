"""
Key-value storage used by every store in the service.

Keys are tuples of strings, values are JSON-compatible dicts (or scalars for
index entries). Besides plain get/set/delete and prefix scans, three operations
are atomic at the field level so concurrent callers never clobber each other's
unrelated changes:

- patch: merge a set of fields into an existing record
- patch_if: patch, but only while some fields still hold expected values
  (a missing field counts as None)
- increment: bump a numeric field of an existing record

All three are no-ops returning None when the record does not exist, and
patch_if also returns None when an expected value does not match.
"""
import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from app.database import get_db_connection

logger = logging.getLogger(__name__)

Key = Tuple[str, ...]


class KeyValueStore(ABC):
    """Storage interface consumed by the directory, key, ledger and log stores"""

    @abstractmethod
    async def get(self, key: Key) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(self, key: Key, value: Any) -> None:
        pass

    @abstractmethod
    async def delete(self, key: Key) -> bool:
        """Delete a key. Returns True if something was removed."""
        pass

    @abstractmethod
    async def list(
        self,
        prefix: Key,
        reverse: bool = False,
        limit: Optional[int] = None
    ) -> List[Tuple[Key, Any]]:
        """Return (key, value) pairs under prefix, ordered by key."""
        pass

    @abstractmethod
    async def delete_prefix(self, prefix: Key) -> int:
        pass

    @abstractmethod
    async def patch(self, key: Key, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def patch_if(
        self,
        key: Key,
        fields: Dict[str, Any],
        expected: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def increment(self, key: Key, field: str, amount: int = 1) -> Optional[Dict[str, Any]]:
        pass

    async def close(self) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    """In-process store. Values are deep-copied in and out."""

    def __init__(self):
        self._data: Dict[Key, Any] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: Key) -> Optional[Any]:
        value = self._data.get(tuple(key))
        return copy.deepcopy(value)

    async def set(self, key: Key, value: Any) -> None:
        async with self._lock:
            self._data[tuple(key)] = copy.deepcopy(value)

    async def delete(self, key: Key) -> bool:
        async with self._lock:
            return self._data.pop(tuple(key), None) is not None

    async def list(
        self,
        prefix: Key,
        reverse: bool = False,
        limit: Optional[int] = None
    ) -> List[Tuple[Key, Any]]:
        prefix = tuple(prefix)
        size = len(prefix)
        keys = sorted(k for k in self._data if k[:size] == prefix)
        if reverse:
            keys.reverse()
        if limit is not None:
            keys = keys[:limit]
        return [(k, copy.deepcopy(self._data[k])) for k in keys]

    async def delete_prefix(self, prefix: Key) -> int:
        prefix = tuple(prefix)
        size = len(prefix)
        async with self._lock:
            keys = [k for k in self._data if k[:size] == prefix]
            for k in keys:
                del self._data[k]
            return len(keys)

    async def patch(self, key: Key, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._lock:
            current = self._data.get(tuple(key))
            if current is None:
                return None
            current.update(copy.deepcopy(fields))
            return copy.deepcopy(current)

    async def patch_if(
        self,
        key: Key,
        fields: Dict[str, Any],
        expected: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        async with self._lock:
            current = self._data.get(tuple(key))
            if current is None:
                return None
            if any(current.get(name) != value for name, value in expected.items()):
                return None
            current.update(copy.deepcopy(fields))
            return copy.deepcopy(current)

    async def increment(self, key: Key, field: str, amount: int = 1) -> Optional[Dict[str, Any]]:
        async with self._lock:
            current = self._data.get(tuple(key))
            if current is None:
                return None
            current[field] = (current.get(field) or 0) + amount
            return copy.deepcopy(current)


class PostgresKeyValueStore(KeyValueStore):
    """
    asyncpg-backed store on a single table.

    The field-level writes run as one UPDATE each, so the merge (and the
    patch_if check) happens inside PostgreSQL and concurrent writers only race
    on the fields they touch.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT[] PRIMARY KEY,
            value JSONB NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """

    async def ensure_schema(self) -> None:
        async with get_db_connection() as conn:
            await conn.execute(self.SCHEMA)
        logger.info("kv_store table ready")

    async def get(self, key: Key) -> Optional[Any]:
        async with get_db_connection(use_transaction=False) as conn:
            raw = await conn.fetchval(
                "SELECT value::text FROM kv_store WHERE key = $1::text[]",
                list(key)
            )
        return json.loads(raw) if raw is not None else None

    async def set(self, key: Key, value: Any) -> None:
        async with get_db_connection() as conn:
            await conn.execute("""
                INSERT INTO kv_store (key, value, updated_at)
                VALUES ($1::text[], $2::jsonb, NOW())
                ON CONFLICT (key) DO UPDATE
                SET value = EXCLUDED.value, updated_at = NOW()
            """, list(key), json.dumps(value))

    async def delete(self, key: Key) -> bool:
        async with get_db_connection() as conn:
            result = await conn.execute(
                "DELETE FROM kv_store WHERE key = $1::text[]",
                list(key)
            )
        # Parse result like "DELETE 1"
        return result.split()[-1] != '0'

    async def list(
        self,
        prefix: Key,
        reverse: bool = False,
        limit: Optional[int] = None
    ) -> List[Tuple[Key, Any]]:
        order = "DESC" if reverse else "ASC"
        query = f"""
            SELECT key, value::text AS value
            FROM kv_store
            WHERE key[1:$2] = $1::text[]
            ORDER BY key {order}
        """
        args = [list(prefix), len(prefix)]
        if limit is not None:
            query += " LIMIT $3"
            args.append(limit)

        async with get_db_connection(use_transaction=False) as conn:
            rows = await conn.fetch(query, *args)

        return [(tuple(row['key']), json.loads(row['value'])) for row in rows]

    async def delete_prefix(self, prefix: Key) -> int:
        async with get_db_connection() as conn:
            result = await conn.execute(
                "DELETE FROM kv_store WHERE key[1:$2] = $1::text[]",
                list(prefix), len(prefix)
            )
        return int(result.split()[-1]) if result else 0

    async def patch(self, key: Key, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with get_db_connection() as conn:
            raw = await conn.fetchval("""
                UPDATE kv_store
                SET value = value || $2::jsonb, updated_at = NOW()
                WHERE key = $1::text[]
                RETURNING value::text
            """, list(key), json.dumps(fields))
        return json.loads(raw) if raw is not None else None

    async def patch_if(
        self,
        key: Key,
        fields: Dict[str, Any],
        expected: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        args: List[Any] = [list(key), json.dumps(fields)]
        conditions = ["key = $1::text[]"]
        for name, value in expected.items():
            args.extend([name, json.dumps(value)])
            conditions.append(
                f"COALESCE(value->${len(args) - 1}::text, 'null'::jsonb) = ${len(args)}::jsonb"
            )

        where = " AND ".join(conditions)
        async with get_db_connection() as conn:
            raw = await conn.fetchval(f"""
                UPDATE kv_store
                SET value = value || $2::jsonb, updated_at = NOW()
                WHERE {where}
                RETURNING value::text
            """, *args)
        return json.loads(raw) if raw is not None else None

    async def increment(self, key: Key, field: str, amount: int = 1) -> Optional[Dict[str, Any]]:
        async with get_db_connection() as conn:
            raw = await conn.fetchval("""
                UPDATE kv_store
                SET value = jsonb_set(
                        value,
                        ARRAY[$2::text],
                        to_jsonb(COALESCE((value->>$2::text)::bigint, 0) + $3::bigint)
                    ),
                    updated_at = NOW()
                WHERE key = $1::text[]
                RETURNING value::text
            """, list(key), field, amount)
        return json.loads(raw) if raw is not None else None
