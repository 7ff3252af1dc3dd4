"""Checkout session repository."""

from uuid import UUID

from sqlalchemy import select

from rentwise.db.models.base import utc_now
from rentwise.db.models.checkout import CheckoutSession

from .base import BaseRepository


class CheckoutSessionRepository(BaseRepository[CheckoutSession, UUID]):
    """Data access for checkout sessions."""

    async def get_by_idempotency_key(self, key: str) -> CheckoutSession | None:
        stmt = select(CheckoutSession).where(CheckoutSession.idempotency_key == key)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_processed(self, key: str) -> bool:
        """Flag the session as reconciled; False if no session has this key."""
        session = await self.get_by_idempotency_key(key)
        if session is None:
            return False
        if not session.is_processed:
            session.is_processed = True
            session.processed_at = utc_now()
            await self.db.flush()
        return True
