from sqlalchemy import (
    Column, Integer, String, Text, Float, Boolean, Date, DateTime, ForeignKey,
    UniqueConstraint, func,
)
from hardtrack.database import Base

class DailyEntry(Base):
    __tablename__ = "daily_entries"

    id = Column(Integer, primary_key=True, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    note = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    is_complete = Column(Boolean, nullable=False, default=False)  # all required tasks done
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", "date", name="uq_entry_challenge_user_date"),
    )

class TaskCompletion(Base):
    __tablename__ = "task_completions"

    id = Column(Integer, primary_key=True, index=True)
    daily_entry_id = Column(Integer, ForeignKey("daily_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Float, nullable=False, default=0)
    is_completed = Column(Boolean, nullable=False, default=False)

    __table_args__ = (UniqueConstraint("daily_entry_id", "task_id", name="uq_completion_entry_task"),)
