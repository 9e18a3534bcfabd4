"""
Pydantic models for API request/response validation.

Request bodies accept camelCase (``playerId``) as well as snake_case
(``player_id``) keys; responses are serialized in camelCase.
"""

import re
from datetime import datetime
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s().-]+$")
PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


def validate_email(value: str) -> str:
    """Normalize an email address, raising ValueError when it is malformed."""
    email = value.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format.")
    return email


def validate_phone(value: str) -> str:
    """
    Check a phone number.

    Accepts digits with optional leading ``+`` and the usual separators
    (spaces, dashes, dots, parentheses), 10 to 15 digits in total.
    The number is stored as entered (trimmed).
    """
    phone = value.strip()
    digits = re.sub(r"\D", "", phone)
    if not PHONE_PATTERN.match(phone) or not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        raise ValueError("Invalid phone number format.")
    return phone


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------


class PlayerProfile(CamelModel):
    """Contact fields shared by registration and profile updates."""

    name: str = Field(min_length=1)
    email: str
    phone: str = Field(validation_alias=AliasChoices("phone", "cellphone"))

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return validate_email(value)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        return validate_phone(value)


class PlayerCreate(PlayerProfile):
    """Registration payload."""

    password: str = Field(min_length=1)


class PlayerUpdate(PlayerProfile):
    """Self-service profile update."""

    pass


class LoginRequest(CamelModel):
    """Login with email and password."""

    email: str
    password: str


class PlayerResponse(CamelModel):
    """Public player data (never includes the password hash)."""

    id: int
    name: str
    email: str
    phone: str
    role: str


class LoginResponse(PlayerResponse):
    """Player data plus the issued bearer token."""

    token: str


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


class TeamCreate(CamelModel):
    name: str = Field(min_length=1)


class TeamUpdate(CamelModel):
    name: str = Field(min_length=1)


class TeamResponse(CamelModel):
    id: int
    name: str


# ---------------------------------------------------------------------------
# Team memberships
# ---------------------------------------------------------------------------


class TeamMembershipCreate(CamelModel):
    player_id: int
    is_captain: bool = False


class TeamMembershipUpdate(CamelModel):
    """Captain-only update. Omitting ``playerId`` keeps the current player."""

    player_id: Optional[int] = None
    is_captain: bool


class TeamMembershipResponse(CamelModel):
    id: int
    team_id: int
    player_id: int
    is_captain: bool


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


class GameCreate(CamelModel):
    location: str = Field(min_length=1)
    opposing_team: str = Field(min_length=1)
    time: datetime
    notes: Optional[str] = None
    team_id: int


class GameUpdate(GameCreate):
    pass


class GameResponse(CamelModel):
    id: int
    location: str
    opposing_team: str
    time: datetime
    notes: Optional[str] = None
    team_id: int


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------


class AttendanceCreate(CamelModel):
    """Status is free text; ``present``/``absent``/``unknown`` are conventional."""

    player_id: int
    game_id: int
    status: str


class AttendanceUpdate(AttendanceCreate):
    pass


class AttendanceResponse(CamelModel):
    """An attendance record. Synthesized "unknown" entries have ``id=None``."""

    id: Optional[int] = None
    player_id: int
    game_id: int
    status: str
