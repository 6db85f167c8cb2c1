from typing import Optional

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span
from packages.factories.models.database.factory_account import FactoryAccountEntity
from packages.factories.models.domain.factory_account import FactoryAccount


class FactoryAccountRepository(BaseRepository[FactoryAccountEntity, FactoryAccount]):
    def __init__(self, db_session=None):
        super().__init__(FactoryAccountEntity, FactoryAccount, db_session)

    @trace_span
    async def get_by_stripe_subscription_id(
        self, subscription_id: str
    ) -> Optional[FactoryAccount]:
        """Get the factory whose billing record points at this subscription."""
        return await self._get_one_by(
            FactoryAccountEntity.stripe_subscription_id, subscription_id
        )

    @trace_span
    async def get_by_stripe_customer_id(
        self, customer_id: str
    ) -> Optional[FactoryAccount]:
        """Get the factory whose billing record points at this customer."""
        return await self._get_one_by(
            FactoryAccountEntity.stripe_customer_id, customer_id
        )
