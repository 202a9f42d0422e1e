from sqlalchemy import Column, String, Boolean, DateTime, func
from hardtrack.database import Base

class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the external auth service's user (JWT "sub")
    id = Column(String(64), primary_key=True)
    email = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    timezone = Column(String, nullable=True)
    reminder_enabled = Column(Boolean, nullable=False, default=True)
    reminder_time = Column(String(5), nullable=False, default="20:00")  # HH:MM, user's local time
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
