"""SQLAlchemy models for client dashboards and the keywords tracked on them."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.sql import func

from database import Base
from models.user import _new_id


class Client(Base):
    """Client dashboard owned by a user account."""

    __tablename__ = "clients"
    __table_args__ = {"extend_existing": True}

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String(191), nullable=False)
    domain = Column(String(255), nullable=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    belongs_to_agency_id = Column(String(64), ForeignKey("agencies.id", ondelete="SET NULL"), nullable=True, index=True)
    is_agency_own_dashboard = Column(Boolean, nullable=False, default=False)
    last_rank_refresh_at = Column(DateTime(timezone=True), nullable=True)
    last_ai_refresh_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ClientAgencyIncluded(Base):
    """Complimentary dashboards that do not count against an agency's dashboard limit."""

    __tablename__ = "client_agency_included"
    __table_args__ = (
        UniqueConstraint("client_id", "agency_id", name="client_agency_included_client_agency_key"),
        {"extend_existing": True},
    )

    id = Column(String(64), primary_key=True, default=_new_id)
    client_id = Column(String(64), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    agency_id = Column(String(64), ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Keyword(Base):
    __tablename__ = "keywords"
    __table_args__ = {"extend_existing": True}

    id = Column(String(64), primary_key=True, default=_new_id)
    client_id = Column(String(64), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    keyword = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class TargetKeyword(Base):
    __tablename__ = "target_keywords"
    __table_args__ = {"extend_existing": True}

    id = Column(String(64), primary_key=True, default=_new_id)
    client_id = Column(String(64), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    keyword = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


__all__ = ["Client", "ClientAgencyIncluded", "Keyword", "TargetKeyword"]
