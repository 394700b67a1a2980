"""
Office Nexus Ledger - Posting Engine

The single entry point for writing to the ledger.

Every posting goes through the same guard:
    1. Validate lines (at least two, one positive side each, known accounts)
    2. Check balance within tolerance
    3. Serialize on the idempotency key (company, source_type, source_id)
    4. Skip with a warning when the key is already posted
    5. Run the optional before_commit hook in the same DB transaction
    6. Append header + lines and commit, all or nothing

Reports are never updated here; they are derived from the ledger on read.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.ledger import LedgerTransaction, SourceType
from app.schemas.ledger import (
    PostingResult, PostingStatus, TransactionCreate, TransactionLine,
)
from app.services.chart_of_accounts import get_account
from app.services.ledger_store import LedgerStore
from app.utils.error_handling import (
    BusinessRuleException,
    ImbalanceError,
    TransactionNotFoundException,
    ValidationException,
)
from app.utils.locks import KeyedLock, posting_locks
from app.utils.money import ZERO

logger = logging.getLogger(__name__)

BeforeCommitHook = Callable[[AsyncSession], Awaitable[None]]


class PostingEngine:
    """
    Validates and commits balanced transactions.

    Duplicate postings are not errors: they return
    PostingStatus.DUPLICATE_SKIPPED with the id of the transaction that
    already holds the key.
    """

    def __init__(
        self,
        db: AsyncSession,
        store: Optional[LedgerStore] = None,
        locks: KeyedLock = posting_locks,
    ):
        self.db = db
        self.store = store or LedgerStore(db)
        self.locks = locks
        self.tolerance = settings.balance_tolerance

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate(self, tx: TransactionCreate) -> Tuple[Decimal, Decimal]:
        """Check line shape, account codes and balance. Returns (debit, credit) totals."""
        if len(tx.entries) < 2:
            raise ValidationException(
                "A transaction needs at least two lines",
                field="entries",
                details={"line_count": len(tx.entries)},
            )

        for idx, line in enumerate(tx.entries, 1):
            if line.debit < 0 or line.credit < 0:
                raise ValidationException(
                    f"Line {idx}: amounts cannot be negative (debit {line.debit}, credit {line.credit})",
                    field=f"entries.{idx}",
                    details={"line": idx, "debit": line.debit, "credit": line.credit},
                )
            if (line.debit > 0) == (line.credit > 0):
                raise ValidationException(
                    f"Line {idx}: exactly one of debit or credit must be non-zero "
                    f"(debit {line.debit}, credit {line.credit})",
                    field=f"entries.{idx}",
                    details={"line": idx, "debit": line.debit, "credit": line.credit},
                )
            get_account(line.account_code)

        total_debit = tx.total_debit
        total_credit = tx.total_credit
        if abs(total_debit - total_credit) > self.tolerance:
            raise ImbalanceError(total_debit, total_credit, self.tolerance)
        return total_debit, total_credit

    # =========================================================================
    # IDEMPOTENCY
    # =========================================================================

    async def is_already_posted(
        self,
        company_id: uuid.UUID,
        source_type: SourceType,
        source_id: str,
    ) -> bool:
        """Check if a source document has already been posted."""
        return await self.store.find_by_source(company_id, source_type, source_id) is not None

    def _duplicate_result(self, existing: LedgerTransaction) -> PostingResult:
        message = (
            f"Duplicate posting skipped: {existing.source_type.value}:{existing.source_id} "
            f"already posted as transaction {existing.id}"
        )
        logger.warning(message)
        return PostingResult(
            status=PostingStatus.DUPLICATE_SKIPPED,
            transaction_id=existing.id,
            source_type=existing.source_type,
            source_id=existing.source_id,
            entry_ids=[entry.id for entry in existing.entries],
            total_debit=existing.total_debit,
            total_credit=existing.total_credit,
            warnings=[message],
        )

    # =========================================================================
    # POSTING
    # =========================================================================

    async def post(
        self,
        company_id: uuid.UUID,
        tx: TransactionCreate,
        before_commit: Optional[BeforeCommitHook] = None,
        commit: bool = True,
    ) -> PostingResult:
        """
        Post a transaction atomically.

        Args:
            company_id: Tenant owning the ledger
            tx: Balanced posting request
            before_commit: Awaited after the duplicate check and before the
                append, inside the same DB transaction. Raising aborts the
                whole posting.
            commit: Commit the session when done. Pass False when the caller
                commits a larger unit of work itself.

        Reversals are only posted through reverse().
        """
        if tx.source_type == SourceType.REVERSAL:
            raise ValidationException(
                "Reversals must be posted through the reverse operation, not as a plain transaction",
                field="source_type",
                details={"source_type": tx.source_type.value, "source_id": tx.source_id},
            )
        return await self._post(company_id, tx, before_commit, commit)

    async def _post(
        self,
        company_id: uuid.UUID,
        tx: TransactionCreate,
        before_commit: Optional[BeforeCommitHook] = None,
        commit: bool = True,
        reverses_transaction_id: Optional[uuid.UUID] = None,
        reversal_reason: Optional[str] = None,
    ) -> PostingResult:
        total_debit, total_credit = self.validate(tx)
        key = (company_id, tx.source_type.value, tx.source_id)

        async with self.locks.hold(key):
            existing = await self.store.find_by_source(company_id, tx.source_type, tx.source_id)
            if existing is not None:
                return self._duplicate_result(existing)

            try:
                if before_commit is not None:
                    await before_commit(self.db)
                header = await self.store.append(
                    company_id,
                    tx,
                    reverses_transaction_id=reverses_transaction_id,
                    reversal_reason=reversal_reason,
                )
                entry_ids = [entry.id for entry in header.entries]
                if commit:
                    await self.db.commit()
            except IntegrityError:
                # Another process committed the same key between our check and insert
                await self.db.rollback()
                existing = await self.store.find_by_source(company_id, tx.source_type, tx.source_id)
                if existing is None:
                    raise
                return self._duplicate_result(existing)
            except Exception:
                await self.db.rollback()
                raise

        logger.info(
            f"Posted {tx.source_type.value}:{tx.source_id} for company {company_id} "
            f"as {header.id} ({len(entry_ids)} lines, {total_debit})"
        )
        return PostingResult(
            status=PostingStatus.POSTED,
            transaction_id=header.id,
            source_type=tx.source_type,
            source_id=tx.source_id,
            entry_ids=entry_ids,
            total_debit=total_debit,
            total_credit=total_credit,
        )

    # =========================================================================
    # REVERSALS
    # =========================================================================

    async def reverse(
        self,
        company_id: uuid.UUID,
        transaction_id: uuid.UUID,
        reversal_date: date,
        reason: str,
    ) -> PostingResult:
        """
        Post the mirror image of an existing transaction.

        The reversal is keyed on the original transaction id, so reversing
        the same transaction twice is a duplicate skip.
        """
        original = await self.store.get_transaction(company_id, transaction_id)
        if original is None:
            raise TransactionNotFoundException(transaction_id)
        if original.is_reversal:
            raise BusinessRuleException(
                f"Transaction {transaction_id} is itself a reversal and cannot be reversed",
                rule="NO_REVERSAL_OF_REVERSAL",
                details={"transaction_id": transaction_id},
            )

        lines = [
            TransactionLine(
                account_code=entry.account_code,
                debit=entry.credit or ZERO,
                credit=entry.debit or ZERO,
                description=f"Reversal: {entry.description}"[:500],
                party_id=entry.party_id,
            )
            for entry in original.entries
        ]
        tx = TransactionCreate(
            transaction_date=reversal_date,
            reference=f"REV-{original.reference}"[:100],
            description=f"Reversal of {original.reference}: {reason}"[:500],
            source_type=SourceType.REVERSAL,
            source_id=str(original.id),
            entries=lines,
        )
        return await self._post(
            company_id,
            tx,
            reverses_transaction_id=original.id,
            reversal_reason=reason,
        )


# Factory function for dependency injection
def get_posting_engine(db: AsyncSession) -> PostingEngine:
    """Create a new PostingEngine instance."""
    return PostingEngine(db)
