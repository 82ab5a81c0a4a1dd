"""SQLAlchemy model for dashboard user accounts."""

import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id = Column(String(64), primary_key=True, default=_new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(160), nullable=True)
    role = Column(String(32), nullable=False, default="AGENCY")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
