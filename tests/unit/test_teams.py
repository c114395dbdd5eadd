"""
Tests para el directorio de teams.
"""
import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.models.team import TokenStatus
from app.services.teams_service import parse_session
from tests.utils.factories import TeamFactory, session_json


class TestParseSession:
    """Lectura del JSON de sesión exportado."""

    def test_prefers_account_id(self):
        data = parse_session(session_json(account_id="acct-9", user_id="user-abc"))

        assert data["account_id"] == "acct-9"
        assert data["access_token"] == "tok-123"
        assert data["email"] == "owner@pool.test"

    def test_falls_back_to_account_id_field_then_user_id(self):
        assert parse_session('{"accessToken": "t", "accountId": "acct-2"}')["account_id"] == "acct-2"
        assert parse_session(session_json(account_id=None, user_id="user-abc"))["account_id"] == "user-abc"

    def test_missing_access_token(self):
        with pytest.raises(ValidationError) as exc:
            parse_session('{"account": {"id": "acct-1"}}')
        assert "accessToken" in exc.value.message

    def test_missing_account(self):
        with pytest.raises(ValidationError):
            parse_session(session_json(account_id=None, user_id=None))

    def test_malformed_json(self):
        with pytest.raises(ValidationError):
            parse_session("{not json")


class TestTeamDirectory:
    """CRUD y estado cacheado."""

    @pytest.mark.asyncio
    async def test_create_from_session(self, services):
        team = await services.teams.create_from_session("Pool A", session_json(account_id="acct-7"))

        stored = await services.teams.get(team.id)
        assert stored.name == "Pool A"
        assert stored.account_id == "acct-7"
        assert stored.token_status == TokenStatus.ACTIVE
        assert stored.member_count == 0

    @pytest.mark.asyncio
    async def test_list_is_oldest_first(self, services):
        first = await TeamFactory.create(services, name="First")
        second = await TeamFactory.create(services, name="Second")
        third = await TeamFactory.create(services, name="Third")

        teams = await services.teams.list()

        assert [t.id for t in teams] == [first.id, second.id, third.id]

    @pytest.mark.asyncio
    async def test_require_missing_team(self, services):
        with pytest.raises(NotFoundError):
            await services.teams.require("nope")

    @pytest.mark.asyncio
    async def test_update_missing_team(self, services):
        with pytest.raises(NotFoundError):
            await services.teams.update("nope", member_count=1)

    @pytest.mark.asyncio
    async def test_update_touches_only_given_fields(self, services, clock):
        team = await TeamFactory.create(services)
        await services.teams.record_member_count(team.id, 3)
        clock.advance(minutes=5)

        updated = await services.teams.update(team.id, name="Renamed")

        assert updated.name == "Renamed"
        assert updated.member_count == 3
        assert updated.updated_at == clock()

    @pytest.mark.asyncio
    async def test_mark_expired_counts_errors(self, services):
        team = await TeamFactory.create(services)

        await services.teams.mark_expired(team.id)
        expired = await services.teams.mark_expired(team.id)

        assert expired.token_status == TokenStatus.EXPIRED
        assert expired.token_error_count == 2

    @pytest.mark.asyncio
    async def test_mark_expired_missing_team(self, services):
        assert await services.teams.mark_expired("nope") is None

    @pytest.mark.asyncio
    async def test_update_token_reactivates(self, services):
        team = await TeamFactory.create(services)
        await services.teams.mark_expired(team.id)

        updated = await services.teams.update_token(team.id, session_json(access_token="tok-new"))

        assert updated.access_token == "tok-new"
        assert updated.token_status == TokenStatus.ACTIVE
        assert updated.token_error_count == 0

    @pytest.mark.asyncio
    async def test_record_invite(self, services, clock):
        team = await TeamFactory.create(services)
        await services.teams.record_member_count(team.id, 2)

        updated = await services.teams.record_invite(team.id)

        assert updated.member_count == 3
        assert updated.last_invite_at == clock()

    @pytest.mark.asyncio
    async def test_delete(self, services):
        team = await TeamFactory.create(services)

        assert await services.teams.delete(team.id) is True
        assert await services.teams.get(team.id) is None
