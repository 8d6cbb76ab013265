"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer is the boundary where loosely typed table rows become the typed
row dataclasses the domain works with.
"""

from dataclasses import fields
from typing import Any

from stmtrecon.domain import entities as domain
from stmtrecon.domain.formats import RawRow, get_policy
from stmtrecon.database.models import (
    BankStatement as ORMBankStatement,
    StatusAudit as ORMStatusAudit,
    BankTotalTrx as ORMBankTotalTrx,
    SecuTotalTrx as ORMSecuTotalTrx,
    AccPost as ORMAccPost,
    TrxType as ORMTrxType,
    LedgerOpType as ORMLedgerOpType,
    Customer as ORMCustomer,
)


def statement_to_domain(orm_statement: ORMBankStatement) -> domain.Statement:
    """Convert SQLAlchemy BankStatement model to domain Statement entity."""
    return domain.Statement(
        id=orm_statement.id,
        account_type=domain.AccountType(orm_statement.account_type),
        bank_code=orm_statement.bank_code,
        from_date=orm_statement.from_date,
        to_date=orm_statement.to_date,
        status=domain.StatementStatus(orm_statement.status),
        file_path=orm_statement.file_path,
        created_at=orm_statement.created_at,
        row_count=orm_statement.row_count,
        duplicate_count=orm_statement.duplicate_count,
        total_count=orm_statement.total_count,
        error_message=orm_statement.error_message,
        processing_timestamp=orm_statement.processing_timestamp,
        consolidation_timestamp=orm_statement.consolidation_timestamp,
    )


def status_change_to_domain(orm_audit: ORMStatusAudit) -> domain.StatusChange:
    """Convert SQLAlchemy StatusAudit model to domain StatusChange entity."""
    return domain.StatusChange(
        id=orm_audit.id,
        entity_type=orm_audit.entity_type,
        entity_id=orm_audit.entity_id,
        from_status=orm_audit.from_status,
        to_status=orm_audit.to_status,
        actor=orm_audit.actor,
        note=orm_audit.note,
        created_at=orm_audit.created_at,
    )


def raw_row_to_domain(account_type: domain.AccountType, orm_row: Any) -> RawRow:
    """Convert a raw table row to the account type's raw row dataclass."""
    policy = get_policy(account_type)
    values = {name: getattr(orm_row, name) for name in policy.columns}
    return policy.row_class(
        **values,
        id=orm_row.id,
        statement_id=orm_row.statement_id,
        transaction_id=orm_row.transaction_id,
        status=domain.RowStatus(orm_row.status),
        acc_post_id=orm_row.acc_post_id,
    )


def raw_row_to_orm_fields(account_type: domain.AccountType, row: RawRow) -> dict[str, Any]:
    """Return the format column values of a raw row keyed by column name."""
    policy = get_policy(account_type)
    return {name: getattr(row, name) for name in policy.columns}


def bank_total_to_domain(orm_row: ORMBankTotalTrx) -> domain.BankConsolidatedRow:
    """Convert SQLAlchemy BankTotalTrx model to domain BankConsolidatedRow."""
    return domain.BankConsolidatedRow(
        id=orm_row.id,
        statement_id=orm_row.statement_id,
        statement_reference=orm_row.statement_reference,
        account_number=orm_row.account_number,
        document_nr=orm_row.document_nr,
        payment_date=orm_row.payment_date,
        other_side_account=orm_row.other_side_account,
        other_side_name=orm_row.other_side_name,
        other_side_bank=orm_row.other_side_bank,
        d_c=orm_row.d_c,
        payment_description=orm_row.payment_description,
        currency=orm_row.currency,
        customer_id=orm_row.customer_id,
        other_side_bic=orm_row.other_side_bic,
        payment_amount=orm_row.payment_amount,
        transaction_fee=orm_row.transaction_fee,
        provider_reference=orm_row.provider_reference,
        status=domain.RowStatus(orm_row.status),
        type=orm_row.type,
        acc_post_id=orm_row.acc_post_id,
        transaction_type=orm_row.transaction_type,
        main_bank_total_trx=orm_row.main_bank_total_trx,
    )


def secu_total_to_domain(orm_row: ORMSecuTotalTrx) -> domain.SecuConsolidatedRow:
    """Convert SQLAlchemy SecuTotalTrx model to domain SecuConsolidatedRow."""
    return domain.SecuConsolidatedRow(
        id=orm_row.id,
        statement_id=orm_row.statement_id,
        statement_reference=orm_row.statement_reference,
        value_date=orm_row.value_date,
        transaction_date=orm_row.transaction_date,
        type=orm_row.type,
        ticker=orm_row.ticker,
        description=orm_row.description,
        currency=orm_row.currency,
        quantity=orm_row.quantity,
        price=orm_row.price,
        amount=orm_row.amount,
        fee=orm_row.fee,
        total_amount=orm_row.total_amount,
        reference=orm_row.reference,
        status=domain.RowStatus(orm_row.status),
        acc_post_id=orm_row.acc_post_id,
        transaction_type=orm_row.transaction_type,
        bank_payment_trx_id=orm_row.bank_payment_trx_id,
        bank_fee_trx_id=orm_row.bank_fee_trx_id,
    )


def posting_to_domain(orm_post: ORMAccPost) -> domain.Posting:
    """Convert SQLAlchemy AccPost model to domain Posting entity."""
    return domain.Posting(
        id=orm_post.id,
        statement_id=orm_post.statement_id,
        account_type=domain.AccountType(orm_post.account_type),
        transaction_type=orm_post.transaction_type,
        type=orm_post.type,
        acc_post_date=orm_post.acc_post_date,
        created_at=orm_post.date_created,
        amount=orm_post.amount,
        fee=orm_post.fee,
        total_amount=orm_post.total_amount,
        quantity=orm_post.quantity,
        price=orm_post.price,
        currency=orm_post.currency,
        ticker=orm_post.ticker,
        description=orm_post.description,
        transaction_date=orm_post.transaction_date,
        customer_id=orm_post.customer_id,
        customer_ref=orm_post.customer_ref,
        secu_total_trx_id=orm_post.secu_total_trx_id,
        paired_secu_total_trx_id=orm_post.paired_secu_total_trx_id,
        bank_total_trx_id=orm_post.bank_total_trx_id,
        bank_fee_trx_id=orm_post.bank_fee_trx_id,
    )


def trx_type_to_domain(orm_type: ORMTrxType) -> domain.InternalTransactionType:
    """Convert SQLAlchemy TrxType model to domain InternalTransactionType."""
    return domain.InternalTransactionType(
        id=orm_type.id,
        code=orm_type.code,
        name=orm_type.name,
        statement_type=orm_type.statement_type,
        flow_type=orm_type.flow_type,
        asset_type=orm_type.asset_type,
        is_customer=orm_type.is_customer,
    )


def ledger_op_type_to_domain(orm_type: ORMLedgerOpType) -> domain.LedgerOperationType:
    """Convert SQLAlchemy LedgerOpType model to domain LedgerOperationType."""
    return domain.LedgerOperationType(
        id=orm_type.id,
        code=orm_type.code,
        name=orm_type.name,
        basis_trx_type=orm_type.basis_trx_type,
        included_words=orm_type.included_words,
        excluded_words=orm_type.excluded_words,
    )


def customer_to_domain(orm_customer: ORMCustomer) -> domain.Customer:
    """Convert SQLAlchemy Customer model to domain Customer entity."""
    return domain.Customer(
        id=orm_customer.id,
        customer_ref=orm_customer.customer_ref,
        registration_number=orm_customer.registration_number,
        national_id=orm_customer.national_id,
        org_name=orm_customer.org_name,
        ind_business_name=orm_customer.ind_business_name,
        account_number=orm_customer.account_number,
    )


def consolidated_row_to_orm_fields(row: Any) -> dict[str, Any]:
    """Return the column values of a consolidated row dataclass."""
    values = {f.name: getattr(row, f.name) for f in fields(row)}
    values["status"] = domain.RowStatus(values["status"]).value
    return values


def posting_draft_to_orm_fields(draft: domain.PostingDraft) -> dict[str, Any]:
    """Return the column values of a posting draft."""
    values = {f.name: getattr(draft, f.name) for f in fields(draft)}
    values["account_type"] = domain.AccountType(values["account_type"]).value
    return values
