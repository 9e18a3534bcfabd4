"""
Player service layer: the credential store for player accounts.
"""

from typing import Optional, Dict, List, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from teamhub.database.models import Player, PlayerRole, TeamMembership, Attendance
import logging

logger = logging.getLogger(__name__)


class DuplicateEmailError(ValueError):
    """Raised when an email address is already registered."""


def _player_to_dict(player: Player, include_password: bool = False) -> Dict:
    data = {
        "id": player.id,
        "name": player.name,
        "email": player.email,
        "phone": player.phone,
        "role": player.role,
    }
    if include_password:
        data["password_hash"] = player.password_hash
    return data


async def create_player(
    session: AsyncSession, name: str, email: str, phone: str, password_hash: str
) -> Dict:
    """
    Create a new player with the default ``player`` role.

    Raises:
        DuplicateEmailError: If the email address is already registered
    """
    player = Player(
        name=name,
        email=email,
        phone=phone,
        password_hash=password_hash,
        role=PlayerRole.PLAYER.value,
    )
    session.add(player)
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        raise DuplicateEmailError(f"Email {email} is already registered") from e
    await session.commit()
    await session.refresh(player)
    return _player_to_dict(player)


async def get_player_by_id(session: AsyncSession, player_id: int) -> Optional[Dict]:
    """Get player by ID, or None if not found."""
    result = await session.execute(select(Player).where(Player.id == player_id))
    player = result.scalar_one_or_none()
    return _player_to_dict(player) if player else None


async def get_player_by_email(session: AsyncSession, email: str) -> Optional[Dict]:
    """
    Get player by email address, including the password hash (for login).

    Args:
        session: Database session
        email: Email address (will be normalized to lowercase)

    Returns:
        Player dictionary or None if not found
    """
    email = email.strip().lower() if email else None
    if not email:
        return None
    result = await session.execute(select(Player).where(Player.email == email).limit(1))
    player = result.scalar_one_or_none()
    return _player_to_dict(player, include_password=True) if player else None


async def list_players(session: AsyncSession) -> List[Dict]:
    """List every player."""
    result = await session.execute(select(Player).order_by(Player.id))
    return [_player_to_dict(p) for p in result.scalars().all()]


async def list_players_by_ids(session: AsyncSession, player_ids: Iterable[int]) -> List[Dict]:
    """List players whose id is in ``player_ids``, ordered by id."""
    ids = set(player_ids)
    if not ids:
        return []
    result = await session.execute(select(Player).where(Player.id.in_(ids)).order_by(Player.id))
    return [_player_to_dict(p) for p in result.scalars().all()]


async def update_player(
    session: AsyncSession, player_id: int, name: str, email: str, phone: str
) -> Optional[Dict]:
    """
    Update a player's profile fields.

    Returns:
        Updated player dictionary, or None if the player does not exist

    Raises:
        DuplicateEmailError: If the new email belongs to another player
    """
    try:
        result = await session.execute(
            update(Player)
            .where(Player.id == player_id)
            .values(name=name, email=email, phone=phone)
        )
    except IntegrityError as e:
        await session.rollback()
        raise DuplicateEmailError(f"Email {email} is already registered") from e
    await session.commit()
    if result.rowcount == 0:
        return None
    return await get_player_by_id(session, player_id)


async def promote_to_admin(session: AsyncSession, player_id: int) -> Optional[Dict]:
    """Give a player the admin role. Returns the updated player or None."""
    result = await session.execute(
        update(Player).where(Player.id == player_id).values(role=PlayerRole.ADMIN.value)
    )
    await session.commit()
    if result.rowcount == 0:
        return None
    logger.info(f"Player {player_id} promoted to admin")
    return await get_player_by_id(session, player_id)


async def delete_player(session: AsyncSession, player_id: int) -> Optional[Dict]:
    """
    Delete a player along with their team memberships and attendance rows.

    Returns:
        The deleted player, or None if not found
    """
    player = await get_player_by_id(session, player_id)
    if not player:
        return None

    await session.execute(delete(TeamMembership).where(TeamMembership.player_id == player_id))
    await session.execute(delete(Attendance).where(Attendance.player_id == player_id))
    await session.execute(delete(Player).where(Player.id == player_id))
    await session.commit()
    return player
