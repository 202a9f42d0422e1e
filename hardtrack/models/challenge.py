from sqlalchemy import (
    Column, Integer, String, Float, Boolean, Date, DateTime, ForeignKey,
    UniqueConstraint, CheckConstraint, func,
)
from hardtrack.database import Base

class Challenge(Base):
    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)  # owner
    name = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    duration_days = Column(Integer, nullable=False, default=75)
    invite_token = Column(String(32), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("duration_days >= 1", name="ck_challenge_duration_positive"),
    )

class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String, nullable=False)
    type = Column(String(16), nullable=False)  # "checkbox" or "number"
    target_value = Column(Float, nullable=False, default=1)
    unit = Column(String, nullable=True)
    is_required = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("type IN ('checkbox','number')", name="ck_task_type"),
    )

class ChallengeMember(Base):
    __tablename__ = "challenge_members"

    id = Column(Integer, primary_key=True, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("challenge_id", "user_id", name="uq_challenge_member"),)
