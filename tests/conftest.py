import os

# In-memory database for the app module; tests get their own engine below
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.database import Base
from app.main import app
from app.schemas import PaymentRecord


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def record():
    return PaymentRecord(
        payer_name="Петар Петровић",
        payer_address="Кнеза Милоша 10",
        payer_city="Београд",
        purpose="Рачун за струју 03/24",
        receiver_name="ЈП ЕПС Снабдевање",
        receiver_address="Царице Милице 2",
        receiver_city="Београд",
        receiver_account="160-0000000000123-45",
        payment_code="189",
        currency="RSD",
        amount="1234.56",
        model="97",
        reference="123",
    )
