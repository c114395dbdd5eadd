"""
Tests para el ledger de invitaciones.
"""
import pytest
from datetime import timedelta

from app.core.exceptions import NotFoundError
from app.models.invitation import InvitationStatus
from app.services.invitations_service import InvitationLedger, INDEX_PREFIX


class TestCreate:

    @pytest.mark.asyncio
    async def test_normalizes_email_and_indexes(self, services, store):
        invitation = await services.invitations.create(team_id="team-1", email="  User@Example.COM ")

        assert invitation.email == "user@example.com"
        assert invitation.status == InvitationStatus.SUCCESS
        assert invitation.is_confirmed is False

        index = await store.list((INDEX_PREFIX, "user@example.com"))
        assert [value for _, value in index] == [invitation.id]

    @pytest.mark.asyncio
    async def test_list_all_newest_first(self, services, clock):
        first = await services.invitations.create(team_id="team-1", email="a@x.com")
        clock.advance(seconds=1)
        second = await services.invitations.create(team_id="team-1", email="b@x.com")

        invitations = await services.invitations.list_all()

        assert [i.id for i in invitations] == [second.id, first.id]


class TestLookups:

    @pytest.mark.asyncio
    async def test_latest_by_team_and_email(self, services, clock):
        await services.invitations.create(team_id="team-1", email="u@x.com")
        clock.advance(hours=1)
        latest = await services.invitations.create(team_id="team-1", email="U@x.com", status=InvitationStatus.FAILED)
        clock.advance(hours=1)
        await services.invitations.create(team_id="team-2", email="u@x.com")

        found = await services.invitations.latest_by_team_and_email("team-1", " u@X.com")

        assert found.id == latest.id

    @pytest.mark.asyncio
    async def test_latest_missing(self, services):
        assert await services.invitations.latest_by_team_and_email("team-1", "nobody@x.com") is None

    @pytest.mark.asyncio
    async def test_list_by_email_across_teams(self, services, clock):
        await services.invitations.create(team_id="team-1", email="u@x.com")
        clock.advance(seconds=1)
        await services.invitations.create(team_id="team-2", email="u@x.com")
        await services.invitations.create(team_id="team-2", email="other@x.com")

        invitations = await services.invitations.list_by_email("U@X.COM")

        assert [i.team_id for i in invitations] == ["team-2", "team-1"]


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_by_team_and_email_clears_records_and_index(self, services, store):
        await services.invitations.create(team_id="team-1", email="u@x.com")
        await services.invitations.create(team_id="team-1", email="u@x.com")
        kept = await services.invitations.create(team_id="team-2", email="u@x.com")

        deleted = await services.invitations.delete_by_team_and_email("team-1", "U@x.com ")

        assert deleted == 2
        assert await services.invitations.latest_by_team_and_email("team-1", "u@x.com") is None
        assert await store.list((INDEX_PREFIX, "u@x.com", "team-1")) == []
        assert [i.id for i in await services.invitations.list_all()] == [kept.id]

    @pytest.mark.asyncio
    async def test_delete_nothing(self, services):
        assert await services.invitations.delete_by_team_and_email("team-1", "u@x.com") == 0


class TestConfirm:

    @pytest.mark.asyncio
    async def test_confirm_exempts_from_expiry(self, services, clock):
        invitation = await services.invitations.create(
            team_id="team-1",
            email="u@x.com",
            is_temp=True,
            temp_expire_at=clock() + timedelta(hours=1),
        )
        later = clock() + timedelta(hours=2)
        assert invitation.is_expired_grant(later)

        confirmed = await services.invitations.confirm(invitation.id)

        assert confirmed.is_confirmed is True
        assert not confirmed.is_expired_grant(later)

    @pytest.mark.asyncio
    async def test_confirm_missing(self, services):
        with pytest.raises(NotFoundError):
            await services.invitations.confirm("nope")


class TestLatestSuccessByPair:

    @pytest.mark.asyncio
    async def test_only_most_recent_success_counts(self, services, clock):
        await services.invitations.create(team_id="team-1", email="u@x.com", is_temp=True)
        clock.advance(seconds=1)
        newest = await services.invitations.create(team_id="team-1", email="u@x.com")
        clock.advance(seconds=1)
        await services.invitations.create(team_id="team-1", email="u@x.com", status=InvitationStatus.FAILED)
        await services.invitations.create(team_id="team-1", email="f@x.com", status=InvitationStatus.FAILED)

        latest = InvitationLedger.latest_success_by_pair(await services.invitations.list_all())

        assert set(latest) == {("team-1", "u@x.com")}
        assert latest[("team-1", "u@x.com")].id == newest.id
