"""
Office Nexus Ledger - Transaction Service

Business event processing: encode -> (capital side effects) -> post.

Capital Side Effects:
- capital_contribution: records a confirmed contribution and allocates
  shares (shares_allocated, or floor(amount / share_price))
- share_issuance: same, with floor(amount / par_value) shares

The side effect runs inside the posting (before_commit hook) so a
rejected allocation posts nothing, and a replayed event, which is skipped
as a duplicate, never allocates shares twice.
"""

import logging
import uuid
from typing import Any, Mapping, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.capital import CapitalContribution, ContributionStatus, ContributionType
from app.schemas.capital import ContributionCreate
from app.schemas.events import (
    BusinessEventBase,
    CapitalContributionEvent,
    EventProcessingResult,
    EventType,
    ShareIssuanceEvent,
)
from app.schemas.ledger import TransactionCreate
from app.services.capital_service import CapitalService
from app.services.chart_of_accounts import PaymentMethod
from app.services.event_encoder import EventEncoder, parse_event, split_share_proceeds
from app.services.posting_engine import BeforeCommitHook, PostingEngine
from app.utils.money import round_money

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for turning business events into ledger postings."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.encoder = EventEncoder()
        self.engine = PostingEngine(db)

    def encode(self, event: Union[BusinessEventBase, Mapping[str, Any]]) -> TransactionCreate:
        """Encode without posting."""
        return self.encoder.encode(event)

    def _contribution_for(self, event: BusinessEventBase) -> Optional[ContributionCreate]:
        """The capital contribution an event implies, if any."""
        if isinstance(event, ShareIssuanceEvent):
            amount = round_money(event.amount)
            par_value = event.par_value if event.par_value is not None else settings.default_par_value
            shares, _, _ = split_share_proceeds(amount, par_value)
            description = f"Share issuance: {shares} shares at par {par_value}"
        elif isinstance(event, CapitalContributionEvent):
            amount = round_money(event.amount)
            shares = event.shares_allocated
            description = event.description or "Capital contribution"
        else:
            return None

        return ContributionCreate(
            shareholder_ref=event.shareholder_id,
            shareholder_name=event.shareholder_name or event.party_name or event.shareholder_id,
            amount=amount,
            shares_allocated=shares,
            contribution_type=(
                ContributionType.CASH if event.payment_method == PaymentMethod.CASH
                else ContributionType.BANK_TRANSFER
            ),
            contribution_date=event.event_date,
            status=ContributionStatus.CONFIRMED,
            description=description,
        )

    async def process_event(
        self,
        company_id: uuid.UUID,
        event: Union[BusinessEventBase, Mapping[str, Any]],
    ) -> EventProcessingResult:
        """
        Encode and post a business event.

        Raises ValidationException for malformed events, and
        CapitalLimitExceeded when a contribution or issuance would pass the
        authorized shares (nothing is posted in that case).
        """
        event = parse_event(event)
        tx = self.encoder.encode(event)

        contribution_data = self._contribution_for(event)
        recorded: dict = {}
        hook: Optional[BeforeCommitHook] = None
        if contribution_data is not None:
            async def hook(db: AsyncSession) -> None:
                recorded["contribution"] = await CapitalService(db).record_contribution(
                    company_id, contribution_data, commit=False,
                )

        result = await self.engine.post(company_id, tx, before_commit=hook)

        contribution: Optional[CapitalContribution] = recorded.get("contribution")
        if contribution is not None and not result.is_duplicate:
            contribution.ledger_transaction_id = result.transaction_id
            await self.db.commit()

        return EventProcessingResult(
            transaction_id=result.transaction_id,
            status=result.status.value,
            event_type=EventType(event.type),
            source_type=tx.source_type,
            source_id=tx.source_id,
            entries=tx.entries,
            warnings=result.warnings,
        )


# Factory function for dependency injection
def get_transaction_service(db: AsyncSession) -> TransactionService:
    """Create a new TransactionService instance."""
    return TransactionService(db)
