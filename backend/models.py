# models.py — Database models for Kanbex
# - Integer primary keys stay internal; external_id (UUID4) is the public identifier
# - Soft deletes through a status enum, never physical removal
# - Ownership: Board → User, Stage → Board + User, Task → Stage + User

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, Integer, Enum as SQLEnum, ForeignKey, Text, Index,
    CheckConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================

class RecordStatus(str, PyEnum):
    ACTIVE = "active"
    DELETED = "deleted"


class TaskPriority(int, PyEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    URGENT = 3


# ============================================================
# CORE TABLES
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(36), unique=True, nullable=False, default=new_uuid)
    username = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    status = Column(SQLEnum(RecordStatus), nullable=False, default=RecordStatus.ACTIVE)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    boards = relationship("Board", back_populates="owner")


class Board(Base):
    """Kanban board owned by a single user"""
    __tablename__ = "boards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(36), unique=True, nullable=False, default=new_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(SQLEnum(RecordStatus), nullable=False, default=RecordStatus.ACTIVE)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="boards")
    stages = relationship("Stage", back_populates="board", order_by="Stage.created_at")

    __table_args__ = (
        Index("idx_board_owner_status", "owner_id", "status"),
    )


class Stage(Base):
    """Column of a board; tasks move between stages"""
    __tablename__ = "stages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(36), unique=True, nullable=False, default=new_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    board_id = Column(Integer, ForeignKey("boards.id"), nullable=False, index=True)
    status = Column(SQLEnum(RecordStatus), nullable=False, default=RecordStatus.ACTIVE)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User")
    board = relationship("Board", back_populates="stages")
    tasks = relationship("Task", back_populates="stage", order_by="Task.created_at")

    __table_args__ = (
        Index("idx_stage_owner_status", "owner_id", "status"),
    )


class Task(Base):
    """Card on a stage"""
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(36), unique=True, nullable=False, default=new_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    priority = Column(Integer, nullable=False, default=TaskPriority.LOW.value)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    stage_id = Column(Integer, ForeignKey("stages.id"), nullable=False, index=True)
    status = Column(SQLEnum(RecordStatus), nullable=False, default=RecordStatus.ACTIVE)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User")
    stage = relationship("Stage", back_populates="tasks")

    __table_args__ = (
        CheckConstraint("priority BETWEEN 0 AND 3", name="ck_task_priority_range"),
        Index("idx_task_owner_status", "owner_id", "status"),
    )
