"""
Tests for the data service, player service and membership oracle.
Covers the cascading deletes and the duplicate-membership constraint.
"""
import pytest
from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from teamhub.database.models import Attendance, Game, TeamMembership
from teamhub.services import data_service, membership_service, player_service


# ============================================================================
# Players
# ============================================================================

@pytest.mark.asyncio
async def test_create_player_defaults_to_player_role(db_session):
    player = await player_service.create_player(
        db_session, name="Jane", email="jane@example.com", phone="123-456-7890", password_hash="x"
    )
    assert player["role"] == "player"
    assert "password_hash" not in player

    by_email = await player_service.get_player_by_email(db_session, "JANE@example.com")
    assert by_email["id"] == player["id"]
    assert by_email["password_hash"] == "x"


@pytest.mark.asyncio
async def test_duplicate_email_raises(db_session, make_player):
    await make_player(email="taken@example.com")
    with pytest.raises(player_service.DuplicateEmailError):
        await player_service.create_player(
            db_session, name="Copy", email="taken@example.com", phone="123-456-7890", password_hash="x"
        )


@pytest.mark.asyncio
async def test_update_missing_player_returns_none(db_session):
    assert await player_service.update_player(db_session, 404, "N", "n@example.com", "123-456-7890") is None


@pytest.mark.asyncio
async def test_promote_to_admin(db_session, make_player):
    player = await make_player()
    promoted = await player_service.promote_to_admin(db_session, player["id"])
    assert promoted["role"] == "admin"
    assert await player_service.promote_to_admin(db_session, 999) is None


@pytest.mark.asyncio
async def test_delete_player_removes_memberships_and_attendance(
    db_session, make_player, make_team, add_member, make_game, make_attendance
):
    captain = await make_player()
    member = await make_player()
    team = await make_team(captain)
    await add_member(team, member)
    game = await make_game(team)
    await make_attendance(member, game)

    deleted = await player_service.delete_player(db_session, member["id"])
    assert deleted["id"] == member["id"]
    assert await player_service.get_player_by_id(db_session, member["id"]) is None
    assert await membership_service.memberships_of(db_session, member["id"]) == []
    assert await data_service.list_game_attendances(db_session, game["id"]) == []
    assert await player_service.delete_player(db_session, member["id"]) is None


# ============================================================================
# Teams and memberships
# ============================================================================

@pytest.mark.asyncio
async def test_create_team_enrolls_creator_as_captain(db_session, make_player):
    creator = await make_player()
    team = await data_service.create_team(db_session, "Sharks", creator["id"])

    assert team["name"] == "Sharks"
    assert await membership_service.is_captain(db_session, creator["id"], team["id"])
    assert await membership_service.is_member(db_session, creator["id"], team["id"])


@pytest.mark.asyncio
async def test_membership_oracle_on_empty_data(db_session):
    assert await membership_service.is_member(db_session, 1, 1) is False
    assert await membership_service.is_captain(db_session, 1, 1) is False
    assert await membership_service.memberships_of(db_session, 1) == []
    assert await membership_service.members_of(db_session, 1) == []


@pytest.mark.asyncio
async def test_plain_member_is_not_captain(db_session, make_player, make_team, add_member):
    captain = await make_player()
    member = await make_player()
    team = await make_team(captain)
    await add_member(team, member)

    assert await membership_service.is_member(db_session, member["id"], team["id"])
    assert not await membership_service.is_captain(db_session, member["id"], team["id"])
    roster = await membership_service.members_of(db_session, team["id"])
    assert [m["player_id"] for m in roster] == [captain["id"], member["id"]]


@pytest.mark.asyncio
async def test_duplicate_membership_raises(db_session, make_player, make_team):
    captain = await make_player()
    team = await make_team(captain)
    with pytest.raises(data_service.DuplicateMembershipError):
        await data_service.add_team_member(db_session, team["id"], captain["id"])


@pytest.mark.asyncio
async def test_update_membership_to_existing_player_raises(db_session, make_player, make_team, add_member):
    captain = await make_player()
    member = await make_player()
    team = await make_team(captain)
    row = await add_member(team, member)

    with pytest.raises(data_service.DuplicateMembershipError):
        await data_service.update_team_member(
            db_session, team["id"], row["id"], is_captain=False, player_id=captain["id"]
        )


@pytest.mark.asyncio
async def test_update_and_remove_membership(db_session, make_player, make_team, add_member):
    captain = await make_player()
    member = await make_player()
    team = await make_team(captain)
    row = await add_member(team, member)

    updated = await data_service.update_team_member(db_session, team["id"], row["id"], is_captain=True)
    assert updated["is_captain"] is True
    assert updated["player_id"] == member["id"]

    removed = await data_service.remove_team_member(db_session, team["id"], row["id"])
    assert removed["id"] == row["id"]
    assert await data_service.get_team_membership(db_session, team["id"], row["id"]) is None


@pytest.mark.asyncio
async def test_membership_lookup_is_scoped_to_team(db_session, make_player, make_team):
    captain = await make_player()
    team = await make_team(captain)
    other_team = await make_team(captain, name="Other")
    row = (await membership_service.members_of(db_session, team["id"]))[0]

    assert await data_service.get_team_membership(db_session, other_team["id"], row["id"]) is None


@pytest.mark.asyncio
async def test_delete_team_cascades(
    db_session, make_player, make_team, add_member, make_game, make_attendance
):
    captain = await make_player()
    member = await make_player()
    team = await make_team(captain)
    other_team = await make_team(member, name="Keep")
    await add_member(team, member)
    game = await make_game(team)
    kept_game = await make_game(other_team)
    await make_attendance(member, game)
    kept_attendance = await make_attendance(member, kept_game)

    deleted = await data_service.delete_team(db_session, team["id"])
    assert deleted == team
    assert await data_service.get_team(db_session, team["id"]) is None

    memberships = await db_session.execute(select(TeamMembership).where(TeamMembership.team_id == team["id"]))
    assert memberships.scalars().all() == []
    games = await db_session.execute(select(Game).where(Game.team_id == team["id"]))
    assert games.scalars().all() == []
    attendances = await db_session.execute(select(Attendance))
    assert [a.id for a in attendances.scalars().all()] == [kept_attendance["id"]]


# ============================================================================
# Games and attendance
# ============================================================================

@pytest.mark.asyncio
async def test_list_games_filters_by_team(db_session, make_player, make_team, make_game):
    captain = await make_player()
    sharks = await make_team(captain)
    tigers = await make_team(captain, name="Tigers")
    g1 = await make_game(sharks)
    g2 = await make_game(tigers)

    assert [g["id"] for g in await data_service.list_games(db_session)] == [g1["id"], g2["id"]]
    assert [g["id"] for g in await data_service.list_games(db_session, {sharks["id"]})] == [g1["id"]]
    assert await data_service.list_games(db_session, set()) == []


@pytest.mark.asyncio
async def test_update_game_and_missing_game(db_session, make_player, make_team, make_game):
    captain = await make_player()
    team = await make_team(captain)
    game = await make_game(team)

    updated = await data_service.update_game(
        db_session,
        game["id"],
        location="Field 2",
        opposing_team="Bears",
        time=datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc),
        notes="Bring water",
        team_id=team["id"],
    )
    assert updated["location"] == "Field 2"
    assert updated["notes"] == "Bring water"

    assert await data_service.get_game(db_session, 999) is None
    assert await data_service.delete_game(db_session, 999) is None


@pytest.mark.asyncio
async def test_delete_game_removes_its_attendance(
    db_session, make_player, make_team, make_game, make_attendance
):
    captain = await make_player()
    team = await make_team(captain)
    game = await make_game(team)
    await make_attendance(captain, game)

    await data_service.delete_game(db_session, game["id"])
    assert await data_service.list_attendances(db_session) == []


@pytest.mark.asyncio
async def test_attendance_crud(db_session, make_player, make_team, make_game):
    captain = await make_player()
    team = await make_team(captain)
    game = await make_game(team)

    created = await data_service.create_attendance(db_session, captain["id"], game["id"], "present")
    assert await data_service.get_attendance(db_session, created["id"]) == created

    updated = await data_service.update_attendance(
        db_session, created["id"], captain["id"], game["id"], "absent"
    )
    assert updated["status"] == "absent"

    deleted = await data_service.delete_attendance(db_session, created["id"])
    assert deleted["id"] == created["id"]
    assert await data_service.get_attendance(db_session, created["id"]) is None
    assert await data_service.update_attendance(db_session, created["id"], 1, 1, "present") is None


@pytest.mark.asyncio
async def test_attendance_requires_existing_player(db_session, make_player, make_team, make_game):
    captain = await make_player()
    game = await make_game(await make_team(captain))

    with pytest.raises(IntegrityError):
        await data_service.create_attendance(db_session, 999, game["id"], "present")
