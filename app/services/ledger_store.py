"""
Office Nexus Ledger - Ledger Store

Append-only persistence for postings plus the indexed reads every report
is derived from. All reads are scoped by company_id.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.config import settings
from app.models.ledger import LedgerEntry, LedgerTransaction, SourceType
from app.schemas.ledger import TransactionCreate
from app.services.chart_of_accounts import get_account
from app.utils.money import ZERO, round_money


class LedgerStore:
    """Reads and appends against ledger_transactions / ledger_entries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # WRITES
    # =========================================================================

    async def append(
        self,
        company_id: uuid.UUID,
        tx: TransactionCreate,
        reverses_transaction_id: Optional[uuid.UUID] = None,
        reversal_reason: Optional[str] = None,
    ) -> LedgerTransaction:
        """
        Add a posting header and its lines to the session and flush.

        Lines with both sides zero are never passed in; the posting engine
        has already validated and balanced the request.
        """
        now = datetime.now(timezone.utc)
        header = LedgerTransaction(
            id=uuid.uuid4(),
            company_id=company_id,
            transaction_date=tx.transaction_date,
            reference=tx.reference,
            description=tx.description,
            source_type=tx.source_type,
            source_id=tx.source_id,
            total_debit=tx.total_debit,
            total_credit=tx.total_credit,
            currency=settings.currency,
            reverses_transaction_id=reverses_transaction_id,
            reversal_reason=reversal_reason,
            posted_at=now,
        )

        lines = []
        for idx, line in enumerate(tx.entries, 1):
            account = get_account(line.account_code)
            lines.append(LedgerEntry(
                id=uuid.uuid4(),
                company_id=company_id,
                transaction_id=header.id,
                line_number=idx,
                entry_date=tx.transaction_date,
                account_code=account.code,
                account_name=account.name,
                debit=line.debit,
                credit=line.credit,
                reference=tx.reference,
                description=line.description or tx.description,
                source_type=tx.source_type,
                source_id=tx.source_id,
                party_id=line.party_id,
                created_at=now,
            ))
        header.entries = lines

        self.db.add(header)
        await self.db.flush()
        return header

    # =========================================================================
    # HEADER LOOKUPS
    # =========================================================================

    async def find_by_source(
        self,
        company_id: uuid.UUID,
        source_type: SourceType,
        source_id: str,
    ) -> Optional[LedgerTransaction]:
        result = await self.db.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.company_id == company_id)
            .where(LedgerTransaction.source_type == source_type)
            .where(LedgerTransaction.source_id == source_id)
        )
        return result.scalar_one_or_none()

    async def get_transaction(
        self,
        company_id: uuid.UUID,
        transaction_id: uuid.UUID,
    ) -> Optional[LedgerTransaction]:
        result = await self.db.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.company_id == company_id)
            .where(LedgerTransaction.id == transaction_id)
        )
        return result.scalar_one_or_none()

    async def list_transactions(
        self,
        company_id: uuid.UUID,
        source_type: Optional[SourceType] = None,
        source_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[LedgerTransaction]:
        """Posting headers (with lines) in posting order."""
        query = select(LedgerTransaction).where(LedgerTransaction.company_id == company_id)
        if source_type is not None:
            query = query.where(LedgerTransaction.source_type == source_type)
        if source_id is not None:
            query = query.where(LedgerTransaction.source_id == source_id)
        query = query.order_by(LedgerTransaction.posted_at, LedgerTransaction.transaction_date)
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # =========================================================================
    # ENTRY READS
    # =========================================================================

    def _entry_filters(
        self,
        company_id: uuid.UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_codes: Optional[Sequence[str]] = None,
        source_type: Optional[SourceType] = None,
        source_id: Optional[str] = None,
    ) -> list:
        filters = [LedgerEntry.company_id == company_id]
        if start_date is not None:
            filters.append(LedgerEntry.entry_date >= start_date)
        if end_date is not None:
            filters.append(LedgerEntry.entry_date <= end_date)
        if account_codes is not None:
            filters.append(LedgerEntry.account_code.in_(list(account_codes)))
        if source_type is not None:
            filters.append(LedgerEntry.source_type == source_type)
        if source_id is not None:
            filters.append(LedgerEntry.source_id == source_id)
        return filters

    async def list_entries(
        self,
        company_id: uuid.UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_codes: Optional[Sequence[str]] = None,
        source_type: Optional[SourceType] = None,
        source_id: Optional[str] = None,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[LedgerEntry]:
        order = (
            (LedgerEntry.entry_date.desc(), LedgerEntry.created_at.desc(), LedgerEntry.line_number)
            if newest_first
            else (LedgerEntry.entry_date, LedgerEntry.created_at, LedgerEntry.line_number)
        )
        query = (
            select(LedgerEntry)
            .where(and_(*self._entry_filters(
                company_id, start_date, end_date, account_codes, source_type, source_id,
            )))
            .order_by(*order)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def totals_by_account(
        self,
        company_id: uuid.UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_codes: Optional[Sequence[str]] = None,
        source_type: Optional[SourceType] = None,
    ) -> List[Tuple[str, Decimal, Decimal]]:
        """(account_code, debit_total, credit_total) sorted by account code."""
        result = await self.db.execute(
            select(
                LedgerEntry.account_code,
                func.coalesce(func.sum(LedgerEntry.debit), 0),
                func.coalesce(func.sum(LedgerEntry.credit), 0),
            )
            .where(and_(*self._entry_filters(
                company_id, start_date, end_date, account_codes, source_type,
            )))
            .group_by(LedgerEntry.account_code)
            .order_by(LedgerEntry.account_code)
        )
        return [
            (code, round_money(debit), round_money(credit))
            for code, debit, credit in result.all()
        ]

    async def side_total(
        self,
        company_id: uuid.UUID,
        account_codes: Sequence[str],
        side: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        source_type: Optional[SourceType] = None,
    ) -> Decimal:
        """Sum of one side ("debit" or "credit") over the given accounts."""
        totals = await self.totals_by_account(
            company_id, start_date, end_date, account_codes, source_type,
        )
        index = 1 if side == "debit" else 2
        return sum((row[index] for row in totals), ZERO)

    async def reversed_side_total(
        self,
        company_id: uuid.UUID,
        account_codes: Sequence[str],
        side: str,
        original_source_type: SourceType,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Decimal:
        """
        Sum of one side of reversal lines whose original posting came from
        original_source_type. Used to net reversed documents out of returns.
        """
        reversal = aliased(LedgerTransaction)
        original = aliased(LedgerTransaction)
        column = LedgerEntry.debit if side == "debit" else LedgerEntry.credit
        result = await self.db.execute(
            select(func.coalesce(func.sum(column), 0))
            .select_from(LedgerEntry)
            .join(reversal, LedgerEntry.transaction_id == reversal.id)
            .join(original, reversal.reverses_transaction_id == original.id)
            .where(and_(*self._entry_filters(
                company_id, start_date, end_date, account_codes, SourceType.REVERSAL,
            )))
            .where(original.company_id == company_id)
            .where(original.source_type == original_source_type)
        )
        return round_money(result.scalar_one())

    async def reversed_transaction_ids(
        self,
        company_id: uuid.UUID,
        transaction_ids: Iterable[uuid.UUID],
    ) -> set:
        """Subset of transaction_ids that have been reversed."""
        ids = list(transaction_ids)
        if not ids:
            return set()
        result = await self.db.execute(
            select(LedgerTransaction.reverses_transaction_id)
            .where(LedgerTransaction.company_id == company_id)
            .where(LedgerTransaction.reverses_transaction_id.in_(ids))
        )
        return set(result.scalars().all())
