"""SQLAlchemy models for agencies (tenants), their members, and purchased add-ons."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from database import Base
from models.user import _new_id


class Agency(Base):
    """Billable tenant. ``subscription_tier`` and ``billing_class`` are written by billing sync only."""

    __tablename__ = "agencies"
    __table_args__ = {"extend_existing": True}

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String(160), nullable=False)
    subscription_tier = Column(String(50), nullable=True)
    billing_class = Column(String(32), nullable=False, default="charge")
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    keyword_research_credits_used = Column(Integer, nullable=False, default=0)
    keyword_research_credits_reset_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UserAgency(Base):
    """Membership row linking a user account to the agency that bills it."""

    __tablename__ = "user_agencies"
    __table_args__ = {"extend_existing": True}

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    agency_id = Column(String(64), ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True)
    agency_role = Column(String(16), nullable=False, default="WORKER")


class AgencyAddOn(Base):
    """Purchased capacity add-on. Several rows of the same type accumulate."""

    __tablename__ = "agency_add_ons"
    __table_args__ = {"extend_existing": True}

    id = Column(String(64), primary_key=True, default=_new_id)
    agency_id = Column(String(64), ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True)
    add_on_type = Column(String(64), nullable=False)
    add_on_option = Column(String(64), nullable=False)
    display_name = Column(String(191), nullable=False, default="")
    price_cents = Column(Integer, nullable=False, default=0)
    billing_interval = Column(String(32), nullable=False, default="monthly")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


__all__ = ["Agency", "AgencyAddOn", "UserAgency"]
