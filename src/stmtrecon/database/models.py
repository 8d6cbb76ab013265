"""SQLAlchemy models for the stmtrecon database.

Table and column names follow the statement processing schema: raw tables
carry `statement_id`, a 3-digit `transaction_id` and the audit columns
`dateCreated`/`createdBy`; consolidated tables add `statement_reference` and
`status`; postings carry a cross-reference column per source table.
"""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from stmtrecon.domain.formats import BANK_COLUMNS, SECU_COLUMNS

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class BankStatement(Base):
    """Uploaded statement model."""

    __tablename__ = "bank_statement"

    id = Column(String(36), primary_key=True)
    account_type = Column(String(10), nullable=False)
    bank_code = Column(String(20), nullable=False)
    from_date = Column(Date, nullable=True)
    to_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="new")
    file_path = Column(String, nullable=True)
    row_count = Column(Integer, nullable=True)
    duplicate_count = Column(Integer, nullable=True)
    total_count = Column(Integer, nullable=True)
    error_message = Column(String(1000), nullable=True)
    processing_timestamp = Column(DateTime, nullable=True)
    consolidation_timestamp = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class StatusAudit(Base):
    """Status change audit model."""

    __tablename__ = "status_audit"

    id = Column(Integer, primary_key=True)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(String(36), nullable=False, index=True)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    actor = Column(String(100), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class RawRowMixin:
    """Bookkeeping columns shared by raw statement tables."""

    id = Column(String(36), primary_key=True)
    statement_id = Column(String(36), nullable=False, index=True)
    transaction_id = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default="new")
    acc_post_id = Column(String(36), nullable=True, index=True)
    date_created = Column("dateCreated", DateTime, default=_now, nullable=False)
    created_by = Column("createdBy", String(100), nullable=False)


def _declare_raw_model(class_name: str, table_name: str, columns: tuple[str, ...]):
    """Declare a raw statement table with one text column per format column."""
    attributes = {
        "__tablename__": table_name,
        "__doc__": f"Raw statement rows of table {table_name}.",
    }
    for name in columns:
        attributes[name] = Column(String, nullable=True)
    return type(Base)(class_name, (RawRowMixin, Base), attributes)


BankAccountTrx = _declare_raw_model("BankAccountTrx", "bank_account_trx", BANK_COLUMNS)
SecAccountTrx = _declare_raw_model("SecAccountTrx", "sec_account_trx", SECU_COLUMNS)


class BankTotalTrx(Base):
    """Consolidated bank transaction model."""

    __tablename__ = "bank_total_trx"

    id = Column(String(36), primary_key=True)
    statement_id = Column(String(36), ForeignKey("bank_statement.id"), nullable=False, index=True)
    statement_reference = Column(String(20), nullable=False)
    account_number = Column(String, nullable=True)
    document_nr = Column(String, nullable=True)
    payment_date = Column(String, nullable=True)
    other_side_account = Column(String, nullable=True)
    other_side_name = Column(String, nullable=True)
    other_side_bank = Column(String, nullable=True)
    d_c = Column(String, nullable=True)
    payment_description = Column(String, nullable=True)
    currency = Column(String, nullable=True)
    customer_id = Column(String, nullable=True)
    other_side_bic = Column(String, nullable=True)
    payment_amount = Column(Numeric(15, 2), nullable=False)
    transaction_fee = Column(Numeric(15, 2), nullable=False)
    provider_reference = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="new")
    type = Column(String(20), nullable=True)
    acc_post_id = Column(String(36), nullable=True, index=True)
    transaction_type = Column(String(20), nullable=True)
    main_bank_total_trx = Column(String(36), nullable=True)
    date_created = Column("dateCreated", DateTime, default=_now, nullable=False)
    created_by = Column("createdBy", String(100), nullable=False)


class SecuTotalTrx(Base):
    """Consolidated securities transaction model."""

    __tablename__ = "secu_total_trx"

    id = Column(String(36), primary_key=True)
    statement_id = Column(String(36), ForeignKey("bank_statement.id"), nullable=False, index=True)
    statement_reference = Column(String(20), nullable=False)
    value_date = Column(String, nullable=True)
    transaction_date = Column(String, nullable=True)
    type = Column(String, nullable=True)
    ticker = Column(String, nullable=True)
    description = Column(String, nullable=True)
    currency = Column(String, nullable=True)
    quantity = Column(Numeric(18, 6), nullable=False)
    price = Column(Numeric(18, 6), nullable=True)
    amount = Column(Numeric(15, 2), nullable=False)
    fee = Column(Numeric(15, 2), nullable=False)
    total_amount = Column(Numeric(15, 2), nullable=False)
    reference = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="new")
    acc_post_id = Column(String(36), nullable=True, index=True)
    transaction_type = Column(String(20), nullable=True)
    bank_payment_trx_id = Column(String(36), nullable=True)
    bank_fee_trx_id = Column(String(36), nullable=True)
    date_created = Column("dateCreated", DateTime, default=_now, nullable=False)
    created_by = Column("createdBy", String(100), nullable=False)


class AccPost(Base):
    """Accounting posting model."""

    __tablename__ = "acc_post"

    id = Column(String(36), primary_key=True)
    statement_id = Column(String(36), nullable=False, index=True)
    account_type = Column(String(10), nullable=False)
    transaction_type = Column(String(20), nullable=False)
    type = Column(String(50), nullable=True)
    acc_post_date = Column(Date, nullable=False)
    amount = Column(Numeric(15, 2), nullable=True)
    fee = Column(Numeric(15, 2), nullable=True)
    total_amount = Column(Numeric(15, 2), nullable=True)
    quantity = Column(Numeric(18, 6), nullable=True)
    price = Column(Numeric(18, 6), nullable=True)
    currency = Column(String(10), nullable=True)
    ticker = Column(String, nullable=True)
    description = Column(String, nullable=True)
    transaction_date = Column(String, nullable=True)
    customer_id = Column(Integer, nullable=True)
    customer_ref = Column(String, nullable=True)
    secu_total_trx_id = Column(String(36), nullable=True, index=True)
    paired_secu_total_trx_id = Column(String(36), nullable=True, index=True)
    bank_total_trx_id = Column(String(36), nullable=True, index=True)
    bank_fee_trx_id = Column(String(36), nullable=True, index=True)
    date_created = Column("dateCreated", DateTime, default=_now, nullable=False)
    created_by = Column("createdBy", String(100), nullable=False)


class TrxType(Base):
    """Internal transaction type model."""

    __tablename__ = "trx_type"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), nullable=False)
    name = Column(String, nullable=True)
    statement_type = Column(String(10), nullable=False)
    flow_type = Column(String(10), nullable=False)
    asset_type = Column(String(20), nullable=True)
    is_customer = Column(String(5), nullable=True)

    __table_args__ = (UniqueConstraint("code", name="uq_trx_type_code"),)


class LedgerOpType(Base):
    """Ledger operation type model."""

    __tablename__ = "ledger_op_type"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False)
    name = Column(String, nullable=True)
    basis_trx_type = Column(String(20), nullable=False)
    included_words = Column(Text, nullable=True)
    excluded_words = Column(Text, nullable=True)

    __table_args__ = (UniqueConstraint("code", name="uq_ledger_op_type_code"),)


class Customer(Base):
    """Customer model."""

    __tablename__ = "customer"

    id = Column(Integer, primary_key=True)
    customer_ref = Column(String, nullable=False)
    registration_number = Column(String, nullable=True, index=True)
    national_id = Column(String, nullable=True, index=True)
    org_name = Column(String, nullable=True)
    ind_business_name = Column(String, nullable=True)
    account_number = Column(String, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
