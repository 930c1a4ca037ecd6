"""Pytest fixtures for testing"""

import pytest
from contextlib import contextmanager
from datetime import timedelta
from typing import Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from spurz_engine.api.dependencies import get_session_scope
from spurz_engine.api.main import create_app
from spurz_engine.domain.models import CardOffer, CatalogCard, Deal, DealType, RewardCategory
from spurz_engine.infrastructure.database.models import Base, CatalogCardRecord, DealRecord
from spurz_engine.infrastructure.database.repositories import CatalogRepository, DealRepository
from spurz_engine.infrastructure.database.session import get_db
from spurz_engine.utils.date_utils import utcnow


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER = "user-123"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db: Session):
    """Opens extra sessions on the test database, closed at teardown"""
    sessions = []

    def factory() -> Session:
        session = TestingSessionLocal()
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.close()


@pytest.fixture
def shared_scope(db: Session):
    """Session scope for background work that reuses the test session"""

    @contextmanager
    def scope():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    return scope


@pytest.fixture
def client(db: Session, shared_scope) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_scope] = lambda: shared_scope
    return TestClient(app)


@pytest.fixture
def headers() -> dict:
    return {"X-User-ID": OWNER}


@pytest.fixture
def catalog_cards() -> List[CatalogCard]:
    """Market cards: a dining specialist, a grocery card and a premium HDFC upgrade"""
    return [
        CatalogCard(
            bank_name="Axis",
            card_name="Axis Dine Max",
            tier="gold",
            annual_fee=1000,
            base_reward_rate=1.0,
            reward_categories=[RewardCategory("dining", 10.0)],
            popularity=90,
        ),
        CatalogCard(
            bank_name="SBI",
            card_name="SBI Grocer",
            tier="silver",
            annual_fee=500,
            base_reward_rate=0.5,
            reward_categories=[RewardCategory("groceries", 5.0), RewardCategory("dining", 2.0)],
            popularity=70,
        ),
        CatalogCard(
            bank_name="HDFC",
            card_name="HDFC Infinia",
            tier="infinite",
            annual_fee=10000,
            base_reward_rate=3.3,
            reward_categories=[RewardCategory("travel", 5.0)],
            popularity=50,
        ),
    ]


@pytest.fixture
def seeded_catalog(db: Session, catalog_cards) -> List[CatalogCardRecord]:
    repo = CatalogRepository(db)
    records = [repo.add(card) for card in catalog_cards]
    db.commit()
    return records


@pytest.fixture
def seeded_deals(db: Session, seeded_catalog) -> List[DealRecord]:
    """Two live dining deals (one featured, with card offers), one expired and one upcoming"""
    now = utcnow()
    axis_id = str(seeded_catalog[0].id)
    repo = DealRepository(db)

    records = [
        repo.add(
            Deal(
                merchant_name="Spice Route",
                category="dining",
                deal_type=DealType.CASHBACK,
                value=10,
                title="10% off dinner",
                max_discount=50,
                card_offers=[
                    CardOffer(bank_name="Axis", card_name="Axis Dine Max", catalog_card_id=axis_id, additional_discount=5),
                    CardOffer(bank_name="HDFC", card_name="HDFC Regalia", additional_discount=2),
                ],
                is_featured=True,
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=10),
            )
        ),
        repo.add(
            Deal(
                merchant_name="Cafe Nine",
                category="dining",
                deal_type=DealType.VOUCHER,
                value=150,
                title="Voucher worth 150",
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=5),
            )
        ),
        repo.add(
            Deal(
                merchant_name="Old Bazaar",
                category="groceries",
                deal_type=DealType.DISCOUNT,
                value=20,
                title="Gone",
                start_date=now - timedelta(days=30),
                end_date=now - timedelta(days=1),
            )
        ),
        repo.add(
            Deal(
                merchant_name="Future Mart",
                category="groceries",
                deal_type=DealType.DISCOUNT,
                value=15,
                title="Soon",
                start_date=now + timedelta(days=3),
                end_date=now + timedelta(days=30),
            )
        ),
    ]
    db.commit()
    return records
