"""SQLAlchemy ORM models."""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    Enum,
    Text,
    ForeignKey,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

MESSAGE_MAX_LENGTH = 240


def utcnow() -> datetime:
    """Get current UTC time as naive datetime for database compatibility."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AppointmentStatus(str, enum.Enum):
    """Lifecycle states of an appointment."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    ATTENDED = "attended"


class AlertKind(str, enum.Enum):
    """What an alert is about."""

    APPOINTMENT_REMINDER = "appointment_reminder"
    WARRANTY_EXPIRY = "warranty_expiry"
    CAMPAIGN_ANNOUNCEMENT = "campaign_announcement"


class AlertChannel(str, enum.Enum):
    """Delivery channel chosen when the alert is generated."""

    EMAIL = "email"
    SMS = "sms"


class AlertSource(str, enum.Enum):
    """Source row types an alert can be generated from."""

    APPOINTMENT = "appointment"
    WARRANTY = "warranty"
    CAMPAIGN = "campaign"


class Client(Base):
    """Clinic client."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rut = Column(String(12), unique=True, nullable=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    appointments = relationship("Appointment", back_populates="client")
    sales = relationship("Sale", back_populates="client")
    alerts = relationship("Alert", back_populates="client", cascade="all, delete-orphan")

    @property
    def has_contact(self) -> bool:
        """Whether the client can be reached by email or SMS."""
        return bool(self.email or self.phone)

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name})>"


class Campaign(Base):
    """Ophthalmology campaign (operativo) held on a given date."""

    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    date = Column(DateTime, nullable=False)
    location = Column(String(200), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    appointments = relationship("Appointment", back_populates="campaign")

    def __repr__(self) -> str:
        return f"<Campaign(id={self.id}, name={self.name}, date={self.date})>"


class Appointment(Base):
    """Scheduled appointment."""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=True)
    scheduled_at = Column(DateTime, nullable=False, index=True)
    status = Column(
        Enum(AppointmentStatus, values_callable=lambda e: [m.value for m in e]),
        default=AppointmentStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="appointments")
    campaign = relationship("Campaign", back_populates="appointments")

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, client_id={self.client_id}, status={self.status})>"


class Product(Base):
    """Product sold by the clinic."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False)

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name})>"


class Sale(Base):
    """Sale to a client."""

    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    client = relationship("Client", back_populates="sales")
    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan")


class SaleItem(Base):
    """Line item of a sale."""

    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)

    sale = relationship("Sale", back_populates="items")
    product = relationship("Product")
    warranty = relationship("Warranty", back_populates="item", uselist=False)


class Warranty(Base):
    """Warranty attached to a sold item."""

    __tablename__ = "warranties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_item_id = Column(Integer, ForeignKey("sale_items.id"), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False, index=True)
    conditions = Column(Text, nullable=True)

    item = relationship("SaleItem", back_populates="warranty")

    @property
    def client(self) -> Client:
        """Owning client, through sale item and sale."""
        return self.item.sale.client

    def __repr__(self) -> str:
        return f"<Warranty(id={self.id}, end_date={self.end_date})>"


class Alert(Base):
    """Client notification waiting to be (or already) dispatched.

    ``sent`` only changes from False to True; ``last_attempt_at`` records the
    latest failed dispatch.
    """

    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    kind = Column(
        Enum(AlertKind, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    channel = Column(
        Enum(AlertChannel, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    message = Column(String(MESSAGE_MAX_LENGTH), nullable=False)
    scheduled_at = Column(DateTime, nullable=False, index=True)
    sent = Column(Boolean, default=False, nullable=False)
    # Last failed dispatch attempt; failed alerts rotate behind untried ones
    last_attempt_at = Column(DateTime, nullable=True)

    # Originating row, when generated from one
    source_type = Column(
        Enum(AlertSource, values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    source_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="alerts")

    def __repr__(self) -> str:
        return f"<Alert(id={self.id}, kind={self.kind}, client_id={self.client_id}, sent={self.sent})>"
