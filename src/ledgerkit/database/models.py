"""SQLAlchemy models for ledgerkit database."""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Boolean,
    Enum as SAEnum,
    Index,
    TypeDecorator,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

from ledgerkit.domain.entities import AccountType, EntryDirection, CENT

Base = declarative_base()


class Money(TypeDecorator):
    """Decimal amount stored as integer minor units (cents)."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Optional[Decimal], dialect) -> Optional[int]:
        if value is None:
            return None
        return int((Decimal(value) / CENT).to_integral_value())

    def process_result_value(self, value: Optional[int], dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return (Decimal(value) * CENT).quantize(CENT)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Chart of accounts model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    account_type = Column(SAEnum(AccountType, native_enum=False, length=20), nullable=False)
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    balance = Column(Money, default=Decimal("0.00"), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    parent = relationship("Account", remote_side=[id], backref="children")
    lines = relationship("JournalEntryLine", back_populates="account")


class JournalEntry(Base):
    """Posted journal entry model."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    code = Column(String(32), unique=True, nullable=False)
    date = Column(Date, nullable=False)
    reference = Column(String(255), nullable=True)
    description = Column(String, nullable=True)
    reversal_of_id = Column(Integer, ForeignKey("journal_entries.id"), unique=True, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    lines = relationship(
        "JournalEntryLine",
        back_populates="entry",
        order_by="JournalEntryLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (Index("ix_journal_entries_date", "date"),)


class JournalEntryLine(Base):
    """Journal entry line model."""

    __tablename__ = "journal_entry_lines"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    position = Column(Integer, nullable=False)
    direction = Column(SAEnum(EntryDirection, native_enum=False, length=10), nullable=False)
    amount = Column(Money, nullable=False)
    description = Column(String(255), nullable=True)

    # Relationships
    entry = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account", back_populates="lines")

    __table_args__ = (Index("ix_journal_entry_lines_account", "account_id"),)


class Reconciliation(Base):
    """Reconciliation record model (append-only)."""

    __tablename__ = "reconciliations"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    statement_balance = Column(Money, nullable=False)
    book_balance = Column(Money, nullable=False)
    difference = Column(Money, nullable=False)
    statement_date = Column(Date, nullable=False)
    reconciled = Column(Boolean, default=False, nullable=False)
    reconciled_at = Column(DateTime, default=_utcnow, nullable=False)


class LedgerSequence(Base):
    """Named counters for sequential identifiers."""

    __tablename__ = "ledger_sequences"

    name = Column(String(100), primary_key=True)
    next_value = Column(BigInteger, default=1, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


def create_session_factory(database_url: str, **engine_options) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False, **engine_options)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
