"""SQLAlchemy models for the treasury ledger."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    JSON,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    iban = Column(String, unique=True, nullable=False)
    opening_balance = Column(Numeric(14, 2), nullable=False, default=0)
    opening_balance_date = Column(Date, nullable=False)
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    minimum_balance = Column(Numeric(14, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="EUR")
    is_active = Column(Boolean, nullable=False, default=True)
    is_at_risk = Column(Boolean, nullable=False, default=False)
    deactivated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    movements = relationship("Movement", back_populates="account")
    rules = relationship("AutomationRule", back_populates="account")


class Movement(Base):
    """Bank movement model."""

    __tablename__ = "movements"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    value_date = Column(Date, nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(String, nullable=False, default="")
    counterparty = Column(String, nullable=True)
    reference = Column(String, nullable=True)
    running_balance = Column(Numeric(14, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="EUR")
    status = Column(String, nullable=False, default="confirmed")
    reconciliation_state = Column(String, nullable=False, default="unreconciled", index=True)
    import_batch_id = Column(String, nullable=True, index=True)
    row_index = Column(Integer, nullable=True)
    document_ids = Column(JSON, nullable=False, default=list)
    category = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="movements")


class ImportBatch(Base):
    """Statement import audit model. Never stores file contents."""

    __tablename__ = "import_batches"

    id = Column(String, primary_key=True)
    filename = Column(String, nullable=False)
    detected_format = Column(String, nullable=False)
    detected_bank = Column(String, nullable=True)
    account_id = Column(Integer, nullable=False)
    account_iban = Column(String, nullable=True)
    date_from = Column(Date, nullable=True)
    date_to = Column(Date, nullable=True)
    total_rows = Column(Integer, nullable=False, default=0)
    imported_rows = Column(Integer, nullable=False, default=0)
    duplicate_rows = Column(Integer, nullable=False, default=0)
    error_rows = Column(Integer, nullable=False, default=0)
    content_hash = Column(String(64), nullable=False)
    actor = Column(String, nullable=False, default="system")
    imported_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("content_hash", name="uq_import_batch_hash"),)


class ForecastEvent(Base):
    """Predicted cash movement model."""

    __tablename__ = "forecast_events"

    id = Column(Integer, primary_key=True)
    event_type = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    predicted_date = Column(Date, nullable=False)
    description = Column(String, nullable=False, default="")
    source_type = Column(String, nullable=False, default="document")
    source_id = Column(String, nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    iban = Column(String, nullable=True)
    payment_method = Column(String, nullable=False)
    status = Column(String, nullable=False, default="predicted", index=True)
    movement_id = Column(Integer, nullable=True)
    actual_date = Column(Date, nullable=True)
    actual_amount = Column(Numeric(14, 2), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)


class Recommendation(Base):
    """Liquidity recommendation model."""

    __tablename__ = "recommendations"

    id = Column(String, primary_key=True)
    rec_type = Column(String, nullable=False)
    severity = Column(String, nullable=False)
    source_account_id = Column(Integer, nullable=True)
    target_account_id = Column(Integer, nullable=False)
    suggested_amount = Column(Numeric(14, 2), nullable=False)
    suggested_date = Column(Date, nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False)
    status = Column(String, nullable=False, default="active", index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class AutomationRule(Base):
    """Learned movement categorization rule model."""

    __tablename__ = "automation_rules"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    learn_key = Column(String, nullable=False)
    counterparty_pattern = Column(String, nullable=False, default="")
    description_pattern = Column(String, nullable=False, default="")
    amount_sign = Column(String, nullable=False)
    category = Column(String, nullable=False)
    applied_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    last_applied_at = Column(DateTime, nullable=True)

    __table_args__ = (UniqueConstraint("account_id", "learn_key", name="uq_rule_account_key"),)

    # Relationships
    account = relationship("Account", back_populates="rules")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
