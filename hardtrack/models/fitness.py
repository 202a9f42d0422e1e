from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON,
    UniqueConstraint, CheckConstraint, func,
)
from hardtrack.database import Base

class FitnessProvider(Base):
    __tablename__ = "fitness_providers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    provider = Column(String(32), nullable=False)  # "strava" or "apple_health"
    access_token = Column(String, nullable=True)
    refresh_token = Column(String, nullable=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
    athlete_id = Column(String, nullable=True)
    connected_at = Column(DateTime(timezone=True), server_default=func.now())
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_fitness_provider_user"),
        CheckConstraint("provider IN ('strava','apple_health')", name="ck_fitness_provider"),
    )

class FitnessActivity(Base):
    __tablename__ = "fitness_activities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    provider = Column(String(32), nullable=False)
    provider_activity_id = Column(String, nullable=False)
    activity_type = Column(String, nullable=False)
    name = Column(String, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)  # stored as UTC
    duration_seconds = Column(Float, nullable=True)
    distance_meters = Column(Float, nullable=True)
    calories_burned = Column(Float, nullable=True)
    steps_count = Column(Integer, nullable=True)
    heart_rate_avg = Column(Float, nullable=True)
    heart_rate_max = Column(Float, nullable=True)
    raw_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "provider", "provider_activity_id", name="uq_fitness_activity_provider_id"),
    )

class FitnessTaskMapping(Base):
    __tablename__ = "fitness_task_mappings"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, unique=True)
    activity_type = Column(String, nullable=False)
    metric = Column(String(16), nullable=False)  # distance, duration, steps, calories
    multiplier = Column(Float, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("metric IN ('distance','duration','steps','calories')", name="ck_mapping_metric"),
    )
