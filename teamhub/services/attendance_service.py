"""
Attendance reconciliation.

A game's attendance view is every explicit attendance record for the game,
followed by an ``unknown`` placeholder for each member of the game's team
who has not recorded anything yet.
"""

from typing import Dict, Iterable, List
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.database.models import AttendanceStatus
from teamhub.services import data_service, membership_service
import logging

logger = logging.getLogger(__name__)


def reconcile_attendance(explicit: Iterable[Dict], memberships: Iterable[Dict], game_id: int) -> List[Dict]:
    """
    Merge explicit attendance records with the team roster.

    Args:
        explicit: Attendance dicts stored for the game, in storage order
        memberships: Membership dicts of the game's team, in storage order
        game_id: The game being reconciled

    Returns:
        The explicit records unchanged, then one ``{"id": None, "status": "unknown"}``
        entry per member without an explicit record. A player with several
        memberships on the team is synthesized once.
    """
    result = list(explicit)
    seen = {record["player_id"] for record in result}
    for membership in memberships:
        player_id = membership["player_id"]
        if player_id in seen:
            continue
        seen.add(player_id)
        result.append(
            {
                "id": None,
                "player_id": player_id,
                "game_id": game_id,
                "status": AttendanceStatus.UNKNOWN.value,
            }
        )
    return result


async def get_game_attendance(session: AsyncSession, game: Dict) -> List[Dict]:
    """Reconciled attendance for a game dict (as returned by data_service.get_game)."""
    explicit = await data_service.list_game_attendances(session, game["id"])
    roster = await membership_service.members_of(session, game["team_id"])
    reconciled = reconcile_attendance(explicit, roster, game["id"])
    logger.debug(
        f"Game {game['id']}: {len(explicit)} explicit, {len(reconciled) - len(explicit)} unknown"
    )
    return reconciled
