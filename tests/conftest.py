import os
from datetime import datetime
from typing import Generator, Optional

import pytest

os.environ.setdefault("DATABASE_ALLOW_NON_POSTGRES", "1")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DATABASE_URL", os.environ["TEST_DATABASE_URL"])

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import models  # noqa: E402,F401
from database import Base  # noqa: E402
from models.agency import Agency, AgencyAddOn, UserAgency  # noqa: E402
from models.client import Client, ClientAgencyIncluded, Keyword, TargetKeyword  # noqa: E402
from models.user import User  # noqa: E402


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory schema per test; StaticPool keeps one shared connection."""
    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


class TenantBuilder:
    """Small helper for seeding agencies, members, dashboards, and keywords."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def user(self, *, role: str = "AGENCY") -> User:
        index = self._next()
        user = User(email=f"user{index}@example.com", name=f"User {index}", role=role)
        self.session.add(user)
        self.session.flush()
        return user

    def agency(
        self,
        *,
        tier: Optional[str] = "solo",
        billing_class: str = "charge",
        trial_ends_at: Optional[datetime] = None,
        credits_used: int = 0,
        credits_reset_at: Optional[datetime] = None,
    ) -> Agency:
        agency = Agency(
            name=f"Agency {self._next()}",
            subscription_tier=tier,
            billing_class=billing_class,
            trial_ends_at=trial_ends_at,
            keyword_research_credits_used=credits_used,
            keyword_research_credits_reset_at=credits_reset_at,
        )
        self.session.add(agency)
        self.session.flush()
        return agency

    def member(self, agency: Agency, *, role: str = "AGENCY", agency_role: str = "OWNER") -> User:
        user = self.user(role=role)
        self.session.add(UserAgency(user_id=user.id, agency_id=agency.id, agency_role=agency_role))
        self.session.flush()
        return user

    def add_on(self, agency: Agency, add_on_type: str, add_on_option: str) -> AgencyAddOn:
        row = AgencyAddOn(agency_id=agency.id, add_on_type=add_on_type, add_on_option=add_on_option)
        self.session.add(row)
        self.session.flush()
        return row

    def dashboard(
        self,
        owner: User,
        *,
        agency: Optional[Agency] = None,
        own: bool = False,
        keywords: int = 0,
        target_keywords: int = 0,
    ) -> Client:
        client = Client(
            name=f"Client {self._next()}",
            user_id=owner.id,
            belongs_to_agency_id=agency.id if agency is not None else None,
            is_agency_own_dashboard=own,
        )
        self.session.add(client)
        self.session.flush()
        for index in range(keywords):
            self.session.add(Keyword(client_id=client.id, keyword=f"keyword {index}"))
        for index in range(target_keywords):
            self.session.add(TargetKeyword(client_id=client.id, keyword=f"target {index}"))
        self.session.flush()
        return client

    def include(self, client: Client, agency: Agency) -> None:
        self.session.add(ClientAgencyIncluded(client_id=client.id, agency_id=agency.id))
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()


@pytest.fixture()
def tenants(db_session: Session) -> TenantBuilder:
    return TenantBuilder(db_session)

