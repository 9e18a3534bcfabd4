"""
Data service layer for teams, team memberships, games and attendance.

Functions take an AsyncSession first and return plain dictionaries, or None
when the requested row does not exist. No authorization happens here.
"""

from datetime import datetime
from typing import Optional, Dict, List, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, and_
from sqlalchemy.exc import IntegrityError
from teamhub.database.models import Team, TeamMembership, Game, Attendance
from teamhub.services.membership_service import membership_to_dict
import logging

logger = logging.getLogger(__name__)


class DuplicateMembershipError(ValueError):
    """Raised when a (team, player) membership already exists."""


def _team_to_dict(team: Team) -> Dict:
    return {"id": team.id, "name": team.name}


def _game_to_dict(game: Game) -> Dict:
    return {
        "id": game.id,
        "location": game.location,
        "opposing_team": game.opposing_team,
        "time": game.time,
        "notes": game.notes,
        "team_id": game.team_id,
    }


def _attendance_to_dict(attendance: Attendance) -> Dict:
    return {
        "id": attendance.id,
        "player_id": attendance.player_id,
        "game_id": attendance.game_id,
        "status": attendance.status,
    }


# ============================================================================
# Teams
# ============================================================================


async def create_team(session: AsyncSession, name: str, creator_player_id: int) -> Dict:
    """Create a team and enroll its creator as captain."""
    team = Team(name=name)
    session.add(team)
    await session.flush()  # Get the team ID

    member = TeamMembership(team_id=team.id, player_id=creator_player_id, is_captain=True)
    session.add(member)
    await session.commit()
    await session.refresh(team)
    return _team_to_dict(team)


async def list_teams(session: AsyncSession) -> List[Dict]:
    result = await session.execute(select(Team).order_by(Team.id))
    return [_team_to_dict(t) for t in result.scalars().all()]


async def get_team(session: AsyncSession, team_id: int) -> Optional[Dict]:
    result = await session.execute(select(Team).where(Team.id == team_id))
    team = result.scalar_one_or_none()
    return _team_to_dict(team) if team else None


async def update_team(session: AsyncSession, team_id: int, name: str) -> Optional[Dict]:
    result = await session.execute(update(Team).where(Team.id == team_id).values(name=name))
    await session.commit()
    if result.rowcount == 0:
        return None
    return await get_team(session, team_id)


async def delete_team(session: AsyncSession, team_id: int) -> Optional[Dict]:
    """
    Delete a team.

    Memberships, games and the games' attendance rows are removed first.
    Returns the deleted team, or None if not found.
    """
    team = await get_team(session, team_id)
    if not team:
        return None

    game_ids = select(Game.id).where(Game.team_id == team_id)
    await session.execute(delete(Attendance).where(Attendance.game_id.in_(game_ids)))
    await session.execute(delete(Game).where(Game.team_id == team_id))
    await session.execute(delete(TeamMembership).where(TeamMembership.team_id == team_id))
    await session.execute(delete(Team).where(Team.id == team_id))
    await session.commit()
    return team


# ============================================================================
# Team memberships
# ============================================================================


async def add_team_member(
    session: AsyncSession, team_id: int, player_id: int, is_captain: bool = False
) -> Dict:
    """
    Insert a membership row.

    The (team_id, player_id) unique constraint makes this an atomic
    insert-if-absent.

    Raises:
        DuplicateMembershipError: If the player is already on the team
    """
    member = TeamMembership(team_id=team_id, player_id=player_id, is_captain=is_captain)
    session.add(member)
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        raise DuplicateMembershipError(
            f"Player {player_id} is already a member of team {team_id}"
        ) from e
    await session.commit()
    await session.refresh(member)
    return membership_to_dict(member)


async def get_team_membership(
    session: AsyncSession, team_id: int, membership_id: int
) -> Optional[Dict]:
    """Get a membership by id, scoped to its team."""
    result = await session.execute(
        select(TeamMembership).where(
            and_(TeamMembership.id == membership_id, TeamMembership.team_id == team_id)
        )
    )
    member = result.scalar_one_or_none()
    return membership_to_dict(member) if member else None


async def update_team_member(
    session: AsyncSession,
    team_id: int,
    membership_id: int,
    is_captain: bool,
    player_id: Optional[int] = None,
) -> Optional[Dict]:
    """
    Update a membership's captain flag (and optionally its player).

    Raises:
        DuplicateMembershipError: If the new player is already on the team
    """
    values = {"is_captain": is_captain}
    if player_id is not None:
        values["player_id"] = player_id

    try:
        result = await session.execute(
            update(TeamMembership)
            .where(and_(TeamMembership.id == membership_id, TeamMembership.team_id == team_id))
            .values(**values)
        )
    except IntegrityError as e:
        await session.rollback()
        raise DuplicateMembershipError(
            f"Player {player_id} is already a member of team {team_id}"
        ) from e
    await session.commit()
    if result.rowcount == 0:
        return None
    return await get_team_membership(session, team_id, membership_id)


async def remove_team_member(
    session: AsyncSession, team_id: int, membership_id: int
) -> Optional[Dict]:
    """Remove a membership. Returns the removed row, or None if not found."""
    member = await get_team_membership(session, team_id, membership_id)
    if not member:
        return None
    await session.execute(
        delete(TeamMembership).where(
            and_(TeamMembership.id == membership_id, TeamMembership.team_id == team_id)
        )
    )
    await session.commit()
    return member


# ============================================================================
# Games
# ============================================================================


async def create_game(
    session: AsyncSession,
    location: str,
    opposing_team: str,
    time: datetime,
    notes: Optional[str],
    team_id: int,
) -> Dict:
    game = Game(
        location=location,
        opposing_team=opposing_team,
        time=time,
        notes=notes,
        team_id=team_id,
    )
    session.add(game)
    await session.commit()
    await session.refresh(game)
    return _game_to_dict(game)


async def get_game(session: AsyncSession, game_id: int) -> Optional[Dict]:
    result = await session.execute(select(Game).where(Game.id == game_id))
    game = result.scalar_one_or_none()
    return _game_to_dict(game) if game else None


async def list_games(session: AsyncSession, team_ids: Optional[Iterable[int]] = None) -> List[Dict]:
    """
    List games.

    Args:
        session: Database session
        team_ids: Restrict to these teams; None means every game
    """
    query = select(Game).order_by(Game.id)
    if team_ids is not None:
        ids = set(team_ids)
        if not ids:
            return []
        query = query.where(Game.team_id.in_(ids))
    result = await session.execute(query)
    return [_game_to_dict(g) for g in result.scalars().all()]


async def update_game(
    session: AsyncSession,
    game_id: int,
    location: str,
    opposing_team: str,
    time: datetime,
    notes: Optional[str],
    team_id: int,
) -> Optional[Dict]:
    result = await session.execute(
        update(Game)
        .where(Game.id == game_id)
        .values(
            location=location,
            opposing_team=opposing_team,
            time=time,
            notes=notes,
            team_id=team_id,
        )
    )
    await session.commit()
    if result.rowcount == 0:
        return None
    return await get_game(session, game_id)


async def delete_game(session: AsyncSession, game_id: int) -> Optional[Dict]:
    """Delete a game and its attendance rows. Returns the deleted game or None."""
    game = await get_game(session, game_id)
    if not game:
        return None
    await session.execute(delete(Attendance).where(Attendance.game_id == game_id))
    await session.execute(delete(Game).where(Game.id == game_id))
    await session.commit()
    return game


# ============================================================================
# Attendance
# ============================================================================


async def create_attendance(
    session: AsyncSession, player_id: int, game_id: int, status: str
) -> Dict:
    attendance = Attendance(player_id=player_id, game_id=game_id, status=status)
    session.add(attendance)
    await session.commit()
    await session.refresh(attendance)
    return _attendance_to_dict(attendance)


async def get_attendance(session: AsyncSession, attendance_id: int) -> Optional[Dict]:
    result = await session.execute(select(Attendance).where(Attendance.id == attendance_id))
    attendance = result.scalar_one_or_none()
    return _attendance_to_dict(attendance) if attendance else None


async def list_attendances(session: AsyncSession) -> List[Dict]:
    result = await session.execute(select(Attendance).order_by(Attendance.id))
    return [_attendance_to_dict(a) for a in result.scalars().all()]


async def list_game_attendances(session: AsyncSession, game_id: int) -> List[Dict]:
    """Explicit attendance rows for a game, in storage order."""
    result = await session.execute(
        select(Attendance).where(Attendance.game_id == game_id).order_by(Attendance.id)
    )
    return [_attendance_to_dict(a) for a in result.scalars().all()]


async def update_attendance(
    session: AsyncSession, attendance_id: int, player_id: int, game_id: int, status: str
) -> Optional[Dict]:
    result = await session.execute(
        update(Attendance)
        .where(Attendance.id == attendance_id)
        .values(player_id=player_id, game_id=game_id, status=status)
    )
    await session.commit()
    if result.rowcount == 0:
        return None
    return await get_attendance(session, attendance_id)


async def delete_attendance(session: AsyncSession, attendance_id: int) -> Optional[Dict]:
    attendance = await get_attendance(session, attendance_id)
    if not attendance:
        return None
    await session.execute(delete(Attendance).where(Attendance.id == attendance_id))
    await session.commit()
    return attendance
