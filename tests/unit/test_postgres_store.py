"""
Tests para el almacenamiento clave-valor sobre PostgreSQL (conexión mockeada).
"""
import json
import pytest
from unittest.mock import patch

from app.storage.kv_store import PostgresKeyValueStore
from tests.utils.mocks import MockDBConnection, MockDBContextManager


@pytest.fixture
def mock_conn():
    conn = MockDBConnection()
    with patch('app.storage.kv_store.get_db_connection', return_value=MockDBContextManager(conn)):
        yield conn


class TestPostgresKeyValueStore:

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, mock_conn):
        mock_conn.fetchval_returns["SELECT value"] = '{"name": "A"}'

        value = await PostgresKeyValueStore().get(("teams", "a"))

        assert value == {"name": "A"}
        _, _, args = mock_conn.calls("fetchval")[0]
        assert args == (["teams", "a"],)

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_conn):
        assert await PostgresKeyValueStore().get(("teams", "a")) is None

    @pytest.mark.asyncio
    async def test_set_upserts_json(self, mock_conn):
        await PostgresKeyValueStore().set(("keys", "k"), {"usage_count": 0})

        _, query, args = mock_conn.calls("execute")[0]
        assert "ON CONFLICT (key) DO UPDATE" in query
        assert args == (["keys", "k"], json.dumps({"usage_count": 0}))

    @pytest.mark.asyncio
    async def test_delete_reports_rowcount(self, mock_conn):
        mock_conn.execute_returns["DELETE"] = "DELETE 0"

        assert await PostgresKeyValueStore().delete(("keys", "k")) is False

    @pytest.mark.asyncio
    async def test_list_by_prefix(self, mock_conn):
        mock_conn.fetch_returns["ORDER BY key DESC"] = [
            {"key": ["kick_logs", "b"], "value": '{"n": 2}'},
            {"key": ["kick_logs", "a"], "value": '{"n": 1}'},
        ]

        rows = await PostgresKeyValueStore().list(("kick_logs",), reverse=True, limit=5)

        assert rows == [(("kick_logs", "b"), {"n": 2}), (("kick_logs", "a"), {"n": 1})]
        _, query, args = mock_conn.calls("fetch")[0]
        assert "LIMIT $3" in query
        assert args == (["kick_logs"], 1, 5)

    @pytest.mark.asyncio
    async def test_delete_prefix_count(self, mock_conn):
        mock_conn.execute_returns["DELETE"] = "DELETE 3"

        assert await PostgresKeyValueStore().delete_prefix(("invitation_index", "u@x.com", "team-1")) == 3

    @pytest.mark.asyncio
    async def test_patch_merges_in_database(self, mock_conn):
        mock_conn.fetchval_returns["value || $2::jsonb"] = '{"member_count": 3, "name": "A"}'

        result = await PostgresKeyValueStore().patch(("teams", "a"), {"member_count": 3})

        assert result == {"member_count": 3, "name": "A"}

    @pytest.mark.asyncio
    async def test_increment_missing_key(self, mock_conn):
        assert await PostgresKeyValueStore().increment(("keys", "gone"), "usage_count") is None

        _, query, args = mock_conn.calls("fetchval")[0]
        assert "jsonb_set" in query
        assert args == (["keys", "gone"], "usage_count", 1)

    @pytest.mark.asyncio
    async def test_patch_if_checks_expected_fields_in_update(self, mock_conn):
        mock_conn.fetchval_returns["value || $2::jsonb"] = '{"usage_count": 0, "claim_id": "c1"}'

        result = await PostgresKeyValueStore().patch_if(
            ("keys", "k"), {"claim_id": "c1"}, {"usage_count": 0, "claim_id": None}
        )

        assert result == {"usage_count": 0, "claim_id": "c1"}
        _, query, args = mock_conn.calls("fetchval")[0]
        assert "COALESCE(value->$3::text, 'null'::jsonb) = $4::jsonb" in query
        assert "COALESCE(value->$5::text, 'null'::jsonb) = $6::jsonb" in query
        assert args == (
            ["keys", "k"], json.dumps({"claim_id": "c1"}),
            "usage_count", "0", "claim_id", "null",
        )

    @pytest.mark.asyncio
    async def test_patch_if_lost_race(self, mock_conn):
        result = await PostgresKeyValueStore().patch_if(("keys", "k"), {"claim_id": "c2"}, {"claim_id": None})

        assert result is None
