"""
SQLAlchemy ORM models for the team management system.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from teamhub.database.db import Base


class PlayerRole(str, enum.Enum):
    """Player role enum."""

    PLAYER = "player"
    ADMIN = "admin"


class AttendanceStatus(str, enum.Enum):
    """Well-known attendance statuses. The column itself accepts any text."""

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class Player(Base):
    """Registered players (also the credential store)."""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    phone = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=PlayerRole.PLAYER.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    team_memberships = relationship("TeamMembership", back_populates="player")
    attendances = relationship("Attendance", back_populates="player")


class Team(Base):
    """Teams."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    memberships = relationship("TeamMembership", back_populates="team")
    games = relationship("Game", back_populates="team")


class TeamMembership(Base):
    """Join table (Player ↔ Team). A team may have several captains."""

    __tablename__ = "team_memberships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    is_captain = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    team = relationship("Team", back_populates="memberships")
    player = relationship("Player", back_populates="team_memberships")

    __table_args__ = (
        UniqueConstraint("team_id", "player_id", name="uq_team_memberships_team_player"),
        Index("idx_team_memberships_team", "team_id"),
        Index("idx_team_memberships_player", "player_id"),
    )


class Game(Base):
    """Scheduled games. Each game belongs to exactly one team."""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    location = Column(String, nullable=False)
    opposing_team = Column(String, nullable=False)
    time = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    team = relationship("Team", back_populates="games")
    attendances = relationship("Attendance", back_populates="game")

    __table_args__ = (Index("idx_games_team", "team_id"),)


class Attendance(Base):
    """A player's RSVP/outcome for one game."""

    __tablename__ = "attendances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    player = relationship("Player", back_populates="attendances")
    game = relationship("Game", back_populates="attendances")

    __table_args__ = (Index("idx_attendances_game", "game_id"),)
