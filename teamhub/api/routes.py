"""
API route handlers for the TeamHub system.

Every mutating or reading route (apart from registration, login and the
health check) needs a bearer token. Handlers fetch their target first (404),
then ask the authorization rules (403), then touch storage.
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from teamhub.database.db import get_db_session
from teamhub.services import (
    attendance_service,
    authorization,
    data_service,
    membership_service,
    player_service,
)
from teamhub.services.auth_service import (
    Principal,
    get_token_service,
    hash_password,
    verify_password,
)
from teamhub.api.auth_dependencies import get_current_principal, enforce
from teamhub.models.schemas import (
    PlayerCreate, PlayerUpdate, PlayerResponse, LoginRequest, LoginResponse,
    TeamCreate, TeamUpdate, TeamResponse,
    TeamMembershipCreate, TeamMembershipUpdate, TeamMembershipResponse,
    GameCreate, GameUpdate, GameResponse,
    AttendanceCreate, AttendanceUpdate, AttendanceResponse,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

PLAYER_NOT_FOUND = "Player not found."
TEAM_NOT_FOUND = "Team not found."
MEMBERSHIP_NOT_FOUND = "Team membership not found."
GAME_NOT_FOUND = "Game not found."
ATTENDANCE_NOT_FOUND = "Attendance not found."
DUPLICATE_EMAIL = "A player with this email already exists."
DUPLICATE_MEMBERSHIP = "A team membership with the same playerId and teamId already exists."


def internal_error(action: str) -> HTTPException:
    """Log the active exception and build a generic 500 for ``action``."""
    logger.error(f"Error {action}", exc_info=True)
    return HTTPException(status_code=500, detail=f"An error occurred while {action}.")


async def _require_player(session: AsyncSession, player_id: int) -> dict:
    player = await player_service.get_player_by_id(session, player_id)
    if not player:
        raise HTTPException(status_code=404, detail=PLAYER_NOT_FOUND)
    return player


async def _require_team(session: AsyncSession, team_id: int) -> dict:
    team = await data_service.get_team(session, team_id)
    if not team:
        raise HTTPException(status_code=404, detail=TEAM_NOT_FOUND)
    return team


async def _require_game(session: AsyncSession, game_id: int) -> dict:
    game = await data_service.get_game(session, game_id)
    if not game:
        raise HTTPException(status_code=404, detail=GAME_NOT_FOUND)
    return game


@router.get("/api/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Service status
    """
    return {"status": "healthy", "message": "API is running"}


# Player endpoints

@router.post("/api/players", response_model=PlayerResponse, status_code=201)
async def create_player(
    payload: PlayerCreate,
    session: AsyncSession = Depends(get_db_session)
):
    """
    Register a new player (public). New players always get the ``player`` role.
    """
    try:
        player = await player_service.create_player(
            session=session,
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            password_hash=hash_password(payload.password),
        )
        logger.info(f"Registered player {player['id']}")
        return player
    except player_service.DuplicateEmailError:
        raise HTTPException(status_code=409, detail=DUPLICATE_EMAIL)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("creating the player")


@router.post("/api/players/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session)
):
    """
    Exchange email and password for a bearer token.
    """
    try:
        player = await player_service.get_player_by_email(session, payload.email)
        if not player:
            raise HTTPException(status_code=404, detail="User not found.")
        if not verify_password(payload.password, player["password_hash"]):
            raise HTTPException(status_code=401, detail="Invalid email or password.")

        token = get_token_service().create_access_token(player["id"], player["role"])
        return LoginResponse(
            id=player["id"],
            name=player["name"],
            email=player["email"],
            phone=player["phone"],
            role=player["role"],
            token=token,
        )
    except HTTPException:
        raise
    except Exception:
        raise internal_error("logging in")


@router.get("/api/players", response_model=List[PlayerResponse])
async def list_players(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    List players. Admins see everyone; other players see the rosters of their
    own teams (or only themselves when they belong to no team).
    """
    try:
        if principal.is_admin:
            return await player_service.list_players(session)

        rosters = []
        for membership in await membership_service.memberships_of(session, principal.id):
            rosters.extend(await membership_service.members_of(session, membership["team_id"]))
        visible = authorization.visible_player_ids(principal, rosters)
        return await player_service.list_players_by_ids(session, visible)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving players")


@router.get("/api/players/{player_id}", response_model=PlayerResponse)
async def get_player(
    player_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Get a player. Allowed for admins, the player themselves and captains of
    any team the player is on.
    """
    try:
        player = await _require_player(session, player_id)
        decision = authorization.can_read_player(
            principal,
            player_id,
            await membership_service.memberships_of(session, principal.id),
            await membership_service.memberships_of(session, player_id),
        )
        enforce(decision, principal, f"read player {player_id}")
        return player
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving the player")


@router.put("/api/players/{player_id}", response_model=PlayerResponse)
async def update_player(
    player_id: int,
    payload: PlayerUpdate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Update a player's name, email and phone (self only).
    """
    try:
        await _require_player(session, player_id)
        enforce(authorization.can_update_player(principal, player_id), principal, f"update player {player_id}")

        player = await player_service.update_player(
            session=session,
            player_id=player_id,
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
        )
        if not player:
            raise HTTPException(status_code=404, detail=PLAYER_NOT_FOUND)
        logger.info(f"Player {player_id} updated their profile")
        return player
    except player_service.DuplicateEmailError:
        raise HTTPException(status_code=409, detail=DUPLICATE_EMAIL)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("updating the player")


@router.delete("/api/players/{player_id}", response_model=PlayerResponse)
async def delete_player(
    player_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Delete a player account (self only), with its memberships and attendance.
    """
    try:
        await _require_player(session, player_id)
        enforce(authorization.can_delete_player(principal, player_id), principal, f"delete player {player_id}")

        player = await player_service.delete_player(session, player_id)
        if not player:
            raise HTTPException(status_code=404, detail=PLAYER_NOT_FOUND)
        logger.info(f"Player {player_id} deleted")
        return player
    except HTTPException:
        raise
    except Exception:
        raise internal_error("deleting the player")


@router.get("/api/players/{player_id}/team-memberships", response_model=List[TeamMembershipResponse])
async def list_player_team_memberships(
    player_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    List a player's team memberships (the player themselves or an admin).
    """
    try:
        enforce(
            authorization.can_list_player_memberships(principal, player_id),
            principal,
            f"list memberships of player {player_id}",
        )
        await _require_player(session, player_id)
        return await membership_service.memberships_of(session, player_id)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving the team memberships")


# Team endpoints

@router.post("/api/teams", response_model=TeamResponse, status_code=201)
async def create_team(
    payload: TeamCreate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Create a team. The creator becomes its captain.
    """
    try:
        await _require_player(session, principal.id)
        team = await data_service.create_team(session, payload.name, principal.id)
        logger.info(f"Player {principal.id} created team {team['id']}")
        return team
    except HTTPException:
        raise
    except Exception:
        raise internal_error("creating the team")


@router.get("/api/teams", response_model=List[TeamResponse])
async def list_teams(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        return await data_service.list_teams(session)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving teams")


@router.get("/api/teams/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        return await _require_team(session, team_id)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving the team")


@router.put("/api/teams/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: int,
    payload: TeamUpdate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Rename a team (captain only).
    """
    try:
        await _require_team(session, team_id)
        captain = await membership_service.is_captain(session, principal.id, team_id)
        enforce(authorization.can_update_team(principal, captain), principal, f"update team {team_id}")

        team = await data_service.update_team(session, team_id, payload.name)
        if not team:
            raise HTTPException(status_code=404, detail=TEAM_NOT_FOUND)
        return team
    except HTTPException:
        raise
    except Exception:
        raise internal_error("updating the team")


@router.delete("/api/teams/{team_id}", response_model=TeamResponse)
async def delete_team(
    team_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Delete a team (captain only) together with its memberships, games and
    the attendance recorded for those games.
    """
    try:
        await _require_team(session, team_id)
        captain = await membership_service.is_captain(session, principal.id, team_id)
        enforce(authorization.can_delete_team(principal, captain), principal, f"delete team {team_id}")

        team = await data_service.delete_team(session, team_id)
        if not team:
            raise HTTPException(status_code=404, detail=TEAM_NOT_FOUND)
        logger.info(f"Player {principal.id} deleted team {team_id}")
        return team
    except HTTPException:
        raise
    except Exception:
        raise internal_error("deleting the team")


# Team membership endpoints

@router.post("/api/teams/{team_id}/team-memberships", response_model=TeamMembershipResponse, status_code=201)
async def create_team_membership(
    team_id: int,
    payload: TeamMembershipCreate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Add a player to a team. Players may join on their own; captains may add anyone.
    """
    try:
        await _require_team(session, team_id)
        captain = await membership_service.is_captain(session, principal.id, team_id)
        enforce(
            authorization.can_create_membership(principal, payload.player_id, captain),
            principal,
            f"add player {payload.player_id} to team {team_id}",
        )
        await _require_player(session, payload.player_id)

        membership = await data_service.add_team_member(
            session, team_id, payload.player_id, is_captain=payload.is_captain
        )
        logger.info(f"Player {payload.player_id} added to team {team_id}")
        return membership
    except data_service.DuplicateMembershipError:
        raise HTTPException(status_code=409, detail=DUPLICATE_MEMBERSHIP)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("creating the team membership")


@router.get("/api/teams/{team_id}/team-memberships", response_model=List[TeamMembershipResponse])
async def list_team_memberships(
    team_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        await _require_team(session, team_id)
        return await membership_service.members_of(session, team_id)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving the team memberships")


@router.get("/api/teams/{team_id}/team-memberships/{membership_id}", response_model=TeamMembershipResponse)
async def get_team_membership(
    team_id: int,
    membership_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        await _require_team(session, team_id)
        membership = await data_service.get_team_membership(session, team_id, membership_id)
        if not membership:
            raise HTTPException(status_code=404, detail=MEMBERSHIP_NOT_FOUND)
        return membership
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving the team membership")


@router.put("/api/teams/{team_id}/team-memberships/{membership_id}", response_model=TeamMembershipResponse)
async def update_team_membership(
    team_id: int,
    membership_id: int,
    payload: TeamMembershipUpdate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Change a membership's captain flag or player (captain only).
    """
    try:
        await _require_team(session, team_id)
        existing = await data_service.get_team_membership(session, team_id, membership_id)
        if not existing:
            raise HTTPException(status_code=404, detail=MEMBERSHIP_NOT_FOUND)
        captain = await membership_service.is_captain(session, principal.id, team_id)
        enforce(
            authorization.can_update_membership(principal, captain),
            principal,
            f"update membership {membership_id}",
        )
        if payload.player_id is not None and payload.player_id != existing["player_id"]:
            await _require_player(session, payload.player_id)

        membership = await data_service.update_team_member(
            session,
            team_id,
            membership_id,
            is_captain=payload.is_captain,
            player_id=payload.player_id,
        )
        if not membership:
            raise HTTPException(status_code=404, detail=MEMBERSHIP_NOT_FOUND)
        return membership
    except data_service.DuplicateMembershipError:
        raise HTTPException(status_code=409, detail=DUPLICATE_MEMBERSHIP)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("updating the team membership")


@router.delete("/api/teams/{team_id}/team-memberships/{membership_id}", response_model=TeamMembershipResponse)
async def delete_team_membership(
    team_id: int,
    membership_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Remove a membership. Captains may remove anyone; members may leave.
    """
    try:
        await _require_team(session, team_id)
        existing = await data_service.get_team_membership(session, team_id, membership_id)
        if not existing:
            raise HTTPException(status_code=404, detail=MEMBERSHIP_NOT_FOUND)
        captain = await membership_service.is_captain(session, principal.id, team_id)
        enforce(
            authorization.can_delete_membership(principal, existing, captain),
            principal,
            f"delete membership {membership_id}",
        )

        membership = await data_service.remove_team_member(session, team_id, membership_id)
        if not membership:
            raise HTTPException(status_code=404, detail=MEMBERSHIP_NOT_FOUND)
        logger.info(f"Player {existing['player_id']} removed from team {team_id}")
        return membership
    except HTTPException:
        raise
    except Exception:
        raise internal_error("deleting the team membership")


# Game endpoints

@router.post("/api/games", response_model=GameResponse, status_code=201)
async def create_game(
    payload: GameCreate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Schedule a game for a team (captain only).
    """
    try:
        captain = await membership_service.is_captain(session, principal.id, payload.team_id)
        enforce(authorization.can_manage_game(principal, "create", [captain]), principal, "create game")

        game = await data_service.create_game(
            session=session,
            location=payload.location,
            opposing_team=payload.opposing_team,
            time=payload.time,
            notes=payload.notes,
            team_id=payload.team_id,
        )
        logger.info(f"Player {principal.id} created game {game['id']} for team {payload.team_id}")
        return game
    except HTTPException:
        raise
    except Exception:
        raise internal_error("creating the game")


@router.get("/api/games", response_model=List[GameResponse])
async def list_games(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    List games. Admins see every game; others see the games of their teams.
    """
    try:
        memberships = [] if principal.is_admin else await membership_service.memberships_of(session, principal.id)
        team_ids = authorization.visible_game_team_ids(principal, memberships)
        return await data_service.list_games(session, team_ids)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving games")


@router.get("/api/games/{game_id}", response_model=GameResponse)
async def get_game(
    game_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        game = await _require_game(session, game_id)
        member = await membership_service.is_member(session, principal.id, game["team_id"])
        enforce(authorization.can_read_game(principal, member), principal, f"read game {game_id}")
        return game
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving the game")


@router.put("/api/games/{game_id}", response_model=GameResponse)
async def update_game(
    game_id: int,
    payload: GameUpdate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Update a game (captain only). Moving a game to another team requires
    captaincy of both teams.
    """
    try:
        existing = await _require_game(session, game_id)
        checks = [await membership_service.is_captain(session, principal.id, existing["team_id"])]
        if payload.team_id != existing["team_id"]:
            checks.append(await membership_service.is_captain(session, principal.id, payload.team_id))
        enforce(authorization.can_manage_game(principal, "update", checks), principal, f"update game {game_id}")

        game = await data_service.update_game(
            session=session,
            game_id=game_id,
            location=payload.location,
            opposing_team=payload.opposing_team,
            time=payload.time,
            notes=payload.notes,
            team_id=payload.team_id,
        )
        if not game:
            raise HTTPException(status_code=404, detail=GAME_NOT_FOUND)
        return game
    except HTTPException:
        raise
    except Exception:
        raise internal_error("updating the game")


@router.delete("/api/games/{game_id}", response_model=GameResponse)
async def delete_game(
    game_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Delete a game and its attendance (captain only).
    """
    try:
        existing = await _require_game(session, game_id)
        captain = await membership_service.is_captain(session, principal.id, existing["team_id"])
        enforce(authorization.can_manage_game(principal, "delete", [captain]), principal, f"delete game {game_id}")

        game = await data_service.delete_game(session, game_id)
        if not game:
            raise HTTPException(status_code=404, detail=GAME_NOT_FOUND)
        logger.info(f"Player {principal.id} deleted game {game_id}")
        return game
    except HTTPException:
        raise
    except Exception:
        raise internal_error("deleting the game")


@router.get("/api/games/{game_id}/attendance", response_model=List[AttendanceResponse])
async def get_game_attendance(
    game_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Attendance for a game: recorded answers first, then an ``unknown`` entry
    for every team member who has not answered.
    """
    try:
        game = await _require_game(session, game_id)
        member = await membership_service.is_member(session, principal.id, game["team_id"])
        enforce(
            authorization.can_read_game_attendance(principal, member),
            principal,
            f"read attendance of game {game_id}",
        )
        return await attendance_service.get_game_attendance(session, game)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving the game attendance")


# Attendance endpoints

@router.post("/api/attendance", response_model=AttendanceResponse, status_code=201)
async def create_attendance(
    payload: AttendanceCreate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Record attendance for a game. Only members of the game's team may do so.
    """
    try:
        game = await _require_game(session, payload.game_id)
        member = await membership_service.is_member(session, principal.id, game["team_id"])
        enforce(authorization.can_write_attendance(principal, "create", [member]), principal, "create attendance")
        await _require_player(session, payload.player_id)

        attendance = await data_service.create_attendance(
            session, payload.player_id, payload.game_id, payload.status
        )
        logger.info(f"Attendance {attendance['id']} recorded for game {payload.game_id}")
        return attendance
    except HTTPException:
        raise
    except Exception:
        raise internal_error("creating the attendance")


@router.get("/api/attendance", response_model=List[AttendanceResponse])
async def list_attendances(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        return await data_service.list_attendances(session)
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving attendances")


@router.get("/api/attendance/{attendance_id}", response_model=AttendanceResponse)
async def get_attendance(
    attendance_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        attendance = await data_service.get_attendance(session, attendance_id)
        if not attendance:
            raise HTTPException(status_code=404, detail=ATTENDANCE_NOT_FOUND)
        return attendance
    except HTTPException:
        raise
    except Exception:
        raise internal_error("retrieving the attendance")


async def _is_member_of_game_team(session: AsyncSession, player_id: int, game_id: int) -> bool:
    game = await data_service.get_game(session, game_id)
    if not game:
        return False
    return await membership_service.is_member(session, player_id, game["team_id"])


@router.put("/api/attendance/{attendance_id}", response_model=AttendanceResponse)
async def update_attendance(
    attendance_id: int,
    payload: AttendanceUpdate,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Update an attendance. The caller must belong to the team of the current
    game and, when the attendance moves to another game, to that game's team too.
    """
    try:
        existing = await data_service.get_attendance(session, attendance_id)
        if not existing:
            raise HTTPException(status_code=404, detail=ATTENDANCE_NOT_FOUND)
        checks = [await _is_member_of_game_team(session, principal.id, existing["game_id"])]
        if payload.game_id != existing["game_id"]:
            new_game = await _require_game(session, payload.game_id)
            checks.append(await membership_service.is_member(session, principal.id, new_game["team_id"]))
        enforce(
            authorization.can_write_attendance(principal, "update", checks),
            principal,
            f"update attendance {attendance_id}",
        )
        if payload.player_id != existing["player_id"]:
            await _require_player(session, payload.player_id)

        attendance = await data_service.update_attendance(
            session, attendance_id, payload.player_id, payload.game_id, payload.status
        )
        if not attendance:
            raise HTTPException(status_code=404, detail=ATTENDANCE_NOT_FOUND)
        return attendance
    except HTTPException:
        raise
    except Exception:
        raise internal_error("updating the attendance")


@router.delete("/api/attendance/{attendance_id}", response_model=AttendanceResponse)
async def delete_attendance(
    attendance_id: int,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        existing = await data_service.get_attendance(session, attendance_id)
        if not existing:
            raise HTTPException(status_code=404, detail=ATTENDANCE_NOT_FOUND)
        member = await _is_member_of_game_team(session, principal.id, existing["game_id"])
        enforce(
            authorization.can_write_attendance(principal, "delete", [member]),
            principal,
            f"delete attendance {attendance_id}",
        )

        attendance = await data_service.delete_attendance(session, attendance_id)
        if not attendance:
            raise HTTPException(status_code=404, detail=ATTENDANCE_NOT_FOUND)
        return attendance
    except HTTPException:
        raise
    except Exception:
        raise internal_error("deleting the attendance")
