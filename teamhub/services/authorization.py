"""
Authorization rules.

One pure predicate per (entity, operation). Each takes the acting Principal
plus whatever target data and membership answers the caller fetched
beforehand, and returns a Decision. Nothing here touches storage, so the
rules can be evaluated and tested in isolation.
"""

from dataclasses import dataclass
from typing import Optional, Iterable, Dict, List, Set

from teamhub.services.auth_service import Principal


@dataclass(frozen=True)
class Decision:
    """ALLOW, or DENY with a human-readable reason."""

    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


def team_ids(memberships: Iterable[Dict], captain_only: bool = False) -> Set[int]:
    """Team ids from a list of membership dicts."""
    return {m["team_id"] for m in memberships if m["is_captain"] or not captain_only}


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------


def can_read_player(
    principal: Principal,
    player_id: int,
    principal_memberships: Iterable[Dict],
    target_memberships: Iterable[Dict],
) -> Decision:
    """Admins, the player themselves, or a captain of any of the player's teams."""
    if principal.is_admin or principal.id == player_id:
        return ALLOW
    captained = team_ids(principal_memberships, captain_only=True)
    if captained & team_ids(target_memberships):
        return ALLOW
    return deny("Forbidden: Insufficient permissions")


def visible_player_ids(principal: Principal, rosters: Iterable[Dict]) -> Set[int]:
    """
    Player ids a non-admin may list: everyone on the rosters of their teams,
    or just themselves when those rosters are empty.
    """
    ids = {m["player_id"] for m in rosters}
    return ids or {principal.id}


def can_update_player(principal: Principal, player_id: int) -> Decision:
    if principal.id != player_id:
        return deny("You are not authorized to update this player's information.")
    return ALLOW


def can_delete_player(principal: Principal, player_id: int) -> Decision:
    if principal.id != player_id:
        return deny("You are not authorized to delete this player.")
    return ALLOW


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


def can_update_team(principal: Principal, is_captain: bool) -> Decision:
    if not is_captain:
        return deny("Only the team captain can update the team.")
    return ALLOW


def can_delete_team(principal: Principal, is_captain: bool) -> Decision:
    if not is_captain:
        return deny("Only the team captain can delete the team.")
    return ALLOW


# ---------------------------------------------------------------------------
# Team memberships
# ---------------------------------------------------------------------------


def can_create_membership(principal: Principal, player_id: int, is_captain: bool) -> Decision:
    """A player may join a team themselves; captains may add anyone."""
    if principal.id == player_id or is_captain:
        return ALLOW
    return deny("Only the player themselves or a team captain can add a team membership.")


def can_list_player_memberships(principal: Principal, player_id: int) -> Decision:
    if principal.id == player_id or principal.is_admin:
        return ALLOW
    return deny("Unauthorized. You can only get your own teamMemberships.")


def can_update_membership(principal: Principal, is_captain: bool) -> Decision:
    if not is_captain:
        return deny("Only the team captain can update team memberships.")
    return ALLOW


def can_delete_membership(principal: Principal, membership: Dict, is_captain: bool) -> Decision:
    """Captains may remove anyone; members may remove themselves."""
    if is_captain or principal.id == membership["player_id"]:
        return ALLOW
    return deny("Only the team captain or the player themselves can delete the team membership.")


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------

GAME_ACTIONS = ("create", "update", "delete")


def can_manage_game(principal: Principal, action: str, captain_checks: Iterable[bool]) -> Decision:
    """
    Create/update/delete a game.

    ``captain_checks`` holds one captaincy answer per team the operation
    touches (the game's team, plus the destination team when an update moves
    the game). Every one of them must be true.
    """
    if action not in GAME_ACTIONS:
        raise ValueError(f"Unknown game action: {action}")
    checks = list(captain_checks)
    if not checks or not all(checks):
        return deny(f"Only the team captain can {action} a game.")
    return ALLOW


def can_read_game(principal: Principal, is_member: bool) -> Decision:
    if principal.is_admin or is_member:
        return ALLOW
    return deny("You are not authorized to view this game.")


def visible_game_team_ids(principal: Principal, memberships: Iterable[Dict]) -> Optional[Set[int]]:
    """Team ids whose games a principal may list, or None meaning "all games"."""
    if principal.is_admin:
        return None
    return team_ids(memberships)


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------

ATTENDANCE_ACTIONS = ("create", "update", "delete")


def can_write_attendance(principal: Principal, action: str, membership_checks: Iterable[bool]) -> Decision:
    """
    Create/update/delete an attendance.

    ``membership_checks`` holds one membership answer per game team involved:
    the game named in the body for create, the attendance's game for delete,
    and for update both the current game and (if different) the new one.
    """
    if action not in ATTENDANCE_ACTIONS:
        raise ValueError(f"Unknown attendance action: {action}")
    checks: List[bool] = list(membership_checks)
    if not checks or not all(checks):
        return deny(
            f"You must be a member of the team associated with the game to {action} an attendance."
        )
    return ALLOW


def can_read_game_attendance(principal: Principal, is_member: bool) -> Decision:
    if principal.is_admin or is_member:
        return ALLOW
    return deny("You are not authorized to view this game.")
