"""Service for retrieving billing plan information."""

from typing import Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.catalog import TierCatalog, TierDefinition, get_tier_catalog
from packages.billing.models.domain.enums import BillingInterval
from packages.billing.models.domain.plans import PlanInfo, PlanPrice, PlansResponse

logger = get_logger(__name__)


def format_price(price_cents: Optional[int]) -> str:
    """Format a price in cents for display; sales-led plans read "Custom"."""
    if price_cents is None:
        return "Custom"
    price_dollars = price_cents / 100
    if price_dollars == int(price_dollars):
        return f"${int(price_dollars):,}"
    return f"${price_dollars:,.2f}"


class PlansService:
    """Service for retrieving plan information."""

    def __init__(self, catalog: Optional[TierCatalog] = None):
        self.catalog = catalog or get_tier_catalog()

    @trace_span
    async def get_all_plans(self) -> PlansResponse:
        """Get all plans in rank order with prices for both intervals."""
        plans = [self._build_plan_info(d) for d in self.catalog.definitions]
        return PlansResponse(plans=plans)

    def _build_plan_info(self, definition: TierDefinition) -> PlanInfo:
        prices = [
            PlanPrice(
                interval=BillingInterval.MONTH.value,
                price_cents=definition.monthly_price_cents,
                price_formatted=format_price(definition.monthly_price_cents),
                stripe_price_id=definition.monthly_price_id,
            ),
            PlanPrice(
                interval=BillingInterval.YEAR.value,
                price_cents=definition.yearly_price_cents,
                price_formatted=format_price(definition.yearly_price_cents),
                stripe_price_id=definition.yearly_price_id,
            ),
        ]
        return PlanInfo(
            tier=definition.tier.value,
            name=definition.name,
            description=definition.description,
            rank=definition.rank,
            max_lines=definition.max_lines,
            self_serve=definition.self_serve,
            prices=prices,
            features=list(definition.features),
        )
