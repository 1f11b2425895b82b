"""Database models."""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Call(Base):
    """Call record model."""

    __tablename__ = "calls"

    id = Column(Integer, primary_key=True, index=True)
    call_sid = Column(String, unique=True, index=True, nullable=False)
    from_number = Column(String, nullable=True)
    direction = Column(String, default="inbound", nullable=False)  # inbound, outbound
    mood = Column(String, nullable=True)
    voice = Column(String, nullable=True)
    status = Column(String, default="in-progress", nullable=False)
    turn_count = Column(Integer, default=0, nullable=False)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)
    transcript = Column(Text, nullable=True)
