"""Shared fixtures: in-memory SQLite, factories and an API client."""

import os

# Must be set before anything imports src.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["NOTIFICATIONS_CONSOLE"] = "false"
os.environ["API_KEY"] = ""
os.environ["CLINIC_TIMEZONE"] = "UTC"

from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.api.app import app as fastapi_app
from src.api.deps import get_db, get_gateway
from src.core.notifications.gateway import DeliveryResult, NotificationGateway
from src.db.models import (
    Alert,
    AlertChannel,
    AlertKind,
    Appointment,
    AppointmentStatus,
    Base,
    Campaign,
    Client,
    Product,
    Sale,
    SaleItem,
    Warranty,
)

# Fixed reference time for service tests
NOW = datetime(2025, 3, 3, 12, 0, 0)

# SQLite in-memory with StaticPool - one database for all connections
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test and drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Session:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def gateway() -> Mock:
    """Gateway mock that reports success on the requested channel."""

    def send(email, phone, subject, message, channels=(AlertChannel.EMAIL,)):
        return DeliveryResult(
            email_sent=AlertChannel.EMAIL in channels and bool(email),
            sms_sent=AlertChannel.SMS in channels and bool(phone),
        )

    mock = Mock(spec=NotificationGateway)
    mock.send.side_effect = send
    return mock


# --- Factories ---


@pytest.fixture
def make_client(db_session: Session):
    def _make(name="Ana Pérez", email="ana@example.com", phone="+56911111111", rut=None) -> Client:
        client = Client(name=name, email=email, phone=phone, rut=rut)
        db_session.add(client)
        db_session.commit()
        return client

    return _make


@pytest.fixture
def make_campaign(db_session: Session):
    def _make(name="Operativo Maipú", date=None, location="Plaza de Maipú") -> Campaign:
        campaign = Campaign(name=name, date=date or NOW + timedelta(days=10), location=location)
        db_session.add(campaign)
        db_session.commit()
        return campaign

    return _make


@pytest.fixture
def make_appointment(db_session: Session):
    def _make(
        client: Client,
        scheduled_at: datetime,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        campaign: Campaign = None,
    ) -> Appointment:
        appointment = Appointment(
            client_id=client.id,
            scheduled_at=scheduled_at,
            status=status,
            campaign_id=campaign.id if campaign else None,
        )
        db_session.add(appointment)
        db_session.commit()
        return appointment

    return _make


@pytest.fixture
def make_warranty(db_session: Session):
    def _make(client: Client, end_date: datetime, product_name="Lentes Ray-Ban RB2140") -> Warranty:
        product = Product(name=product_name)
        sale = Sale(client_id=client.id)
        db_session.add_all([product, sale])
        db_session.flush()

        item = SaleItem(sale_id=sale.id, product_id=product.id, quantity=1)
        db_session.add(item)
        db_session.flush()

        warranty = Warranty(
            sale_item_id=item.id,
            start_date=end_date - timedelta(days=365),
            end_date=end_date,
        )
        db_session.add(warranty)
        db_session.commit()
        return warranty

    return _make


@pytest.fixture
def make_alert(db_session: Session):
    def _make(
        client: Client,
        scheduled_at: datetime,
        kind: AlertKind = AlertKind.APPOINTMENT_REMINDER,
        channel: AlertChannel = AlertChannel.EMAIL,
        message="Mensaje de prueba",
        sent=False,
    ) -> Alert:
        alert = Alert(
            client_id=client.id,
            kind=kind,
            channel=channel,
            message=message,
            scheduled_at=scheduled_at,
            sent=sent,
        )
        db_session.add(alert)
        db_session.commit()
        return alert

    return _make


# --- API ---


@pytest.fixture
def api_client(db_session: Session, gateway: Mock) -> TestClient:
    """FastAPI TestClient using the test session and the gateway mock."""

    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()
