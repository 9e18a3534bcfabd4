"""
Membership oracle: read-only questions about team membership rows.

Every authorization rule that depends on team membership is answered from
here, re-reading current rows on every call.
"""

from typing import List, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from teamhub.database.models import TeamMembership


def membership_to_dict(membership: TeamMembership) -> Dict:
    return {
        "id": membership.id,
        "team_id": membership.team_id,
        "player_id": membership.player_id,
        "is_captain": bool(membership.is_captain),
    }


async def is_member(session: AsyncSession, player_id: int, team_id: int) -> bool:
    """Check if a player has a membership row for a team."""
    result = await session.execute(
        select(TeamMembership.id)
        .where(and_(TeamMembership.team_id == team_id, TeamMembership.player_id == player_id))
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def is_captain(session: AsyncSession, player_id: int, team_id: int) -> bool:
    """Check if a player has a captain membership row for a team."""
    result = await session.execute(
        select(TeamMembership.id)
        .where(
            and_(
                TeamMembership.team_id == team_id,
                TeamMembership.player_id == player_id,
                TeamMembership.is_captain.is_(True),
            )
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def memberships_of(session: AsyncSession, player_id: int) -> List[Dict]:
    """All memberships of a player, in storage order."""
    result = await session.execute(
        select(TeamMembership)
        .where(TeamMembership.player_id == player_id)
        .order_by(TeamMembership.id)
    )
    return [membership_to_dict(m) for m in result.scalars().all()]


async def members_of(session: AsyncSession, team_id: int) -> List[Dict]:
    """All memberships of a team, in storage order."""
    result = await session.execute(
        select(TeamMembership)
        .where(TeamMembership.team_id == team_id)
        .order_by(TeamMembership.id)
    )
    return [membership_to_dict(m) for m in result.scalars().all()]
