"""
Tier catalog.

One ordered table of plan tiers, built once from settings, with lookups in
both directions: tier/interval -> Stripe price, Stripe price -> tier/interval,
Stripe product -> tier.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from common.core.config import Settings, settings
from packages.billing.exceptions import AlreadyOnPlanError
from packages.billing.models.domain.enums import BillingInterval, ChangeType, PlanTier

# Effectively unlimited lines for sales-led plans
UNLIMITED_LINES = 999999

YEARLY_DISCOUNT = 0.85


@dataclass(frozen=True)
class TierDefinition:
    tier: PlanTier
    rank: int
    name: str
    description: str
    max_lines: int
    monthly_price_cents: Optional[int]
    monthly_price_id: Optional[str] = None
    yearly_price_id: Optional[str] = None
    product_id: Optional[str] = None
    features: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def self_serve(self) -> bool:
        return bool(self.monthly_price_id or self.yearly_price_id)

    @property
    def yearly_price_cents(self) -> Optional[int]:
        if self.monthly_price_cents is None:
            return None
        return round(self.monthly_price_cents * 12 * YEARLY_DISCOUNT)

    def price_id(self, interval: BillingInterval) -> Optional[str]:
        if interval == BillingInterval.YEAR:
            return self.yearly_price_id
        return self.monthly_price_id


class TierCatalog:
    """Lookup tables derived from an ordered list of tier definitions."""

    def __init__(self, definitions: List[TierDefinition]):
        self._definitions = sorted(definitions, key=lambda d: d.rank)
        self._by_tier: Dict[PlanTier, TierDefinition] = {
            d.tier: d for d in self._definitions
        }
        self._by_price: Dict[str, Tuple[PlanTier, BillingInterval]] = {}
        self._by_product: Dict[str, PlanTier] = {}
        for definition in self._definitions:
            for interval in BillingInterval:
                price_id = definition.price_id(interval)
                if price_id:
                    self._by_price[price_id] = (definition.tier, interval)
            if definition.product_id:
                self._by_product[definition.product_id] = definition.tier

    @classmethod
    def from_settings(cls, config: Settings) -> "TierCatalog":
        return cls(
            [
                TierDefinition(
                    tier=PlanTier.STARTER,
                    rank=1,
                    name="Starter",
                    description="For small factories getting started",
                    max_lines=30,
                    monthly_price_cents=39999,
                    monthly_price_id=config.stripe_price_id_starter_monthly,
                    yearly_price_id=config.stripe_price_id_starter_yearly,
                    product_id=config.stripe_product_id_starter,
                    features=(
                        "Up to 30 production lines",
                        "Work orders and daily production tracking",
                        "Email support",
                    ),
                ),
                TierDefinition(
                    tier=PlanTier.GROWTH,
                    rank=2,
                    name="Growth",
                    description="For growing factories with multiple units",
                    max_lines=60,
                    monthly_price_cents=54999,
                    monthly_price_id=config.stripe_price_id_growth_monthly,
                    yearly_price_id=config.stripe_price_id_growth_yearly,
                    product_id=config.stripe_product_id_growth,
                    features=(
                        "Up to 60 production lines",
                        "Everything in Starter",
                        "Priority support",
                    ),
                ),
                TierDefinition(
                    tier=PlanTier.SCALE,
                    rank=3,
                    name="Scale",
                    description="For large factories running many lines",
                    max_lines=100,
                    monthly_price_cents=62999,
                    monthly_price_id=config.stripe_price_id_scale_monthly,
                    yearly_price_id=config.stripe_price_id_scale_yearly,
                    product_id=config.stripe_product_id_scale,
                    features=(
                        "Up to 100 production lines",
                        "Everything in Growth",
                        "Dedicated onboarding",
                    ),
                ),
                TierDefinition(
                    tier=PlanTier.ENTERPRISE,
                    rank=4,
                    name="Enterprise",
                    description="For factory groups with custom needs",
                    max_lines=UNLIMITED_LINES,
                    monthly_price_cents=None,
                    features=(
                        "Unlimited production lines",
                        "Custom integrations",
                        "Dedicated account manager",
                    ),
                ),
            ]
        )

    @property
    def definitions(self) -> List[TierDefinition]:
        return list(self._definitions)

    def get(self, tier: PlanTier) -> TierDefinition:
        return self._by_tier[tier]

    def rank(self, tier: PlanTier) -> int:
        return self._by_tier[tier].rank

    def max_lines(self, tier: PlanTier) -> int:
        return self._by_tier[tier].max_lines

    def price_id_for(self, tier: PlanTier, interval: BillingInterval) -> Optional[str]:
        """Stripe price for a tier and interval, or None for sales-led tiers."""
        return self._by_tier[tier].price_id(interval)

    def resolve_price(
        self, price_id: Optional[str]
    ) -> Optional[Tuple[PlanTier, BillingInterval]]:
        if not price_id:
            return None
        return self._by_price.get(price_id)

    def tier_for_product(self, product_id: Optional[str]) -> Optional[PlanTier]:
        if not product_id:
            return None
        return self._by_product.get(product_id)

    def classify_plan_change(
        self,
        current_tier: PlanTier,
        current_interval: BillingInterval,
        new_tier: PlanTier,
        new_interval: BillingInterval,
    ) -> ChangeType:
        """Decide whether moving between two plans is an upgrade or a downgrade.

        Across tiers the rank decides. Within a tier, monthly to yearly is an
        upgrade (immediate, paid up front) and yearly to monthly a downgrade.

        Raises:
            AlreadyOnPlanError: same tier and same interval
        """
        if new_tier != current_tier:
            if self.rank(new_tier) > self.rank(current_tier):
                return ChangeType.UPGRADE
            return ChangeType.DOWNGRADE

        if new_interval == current_interval:
            raise AlreadyOnPlanError()
        if new_interval == BillingInterval.YEAR:
            return ChangeType.UPGRADE
        return ChangeType.DOWNGRADE


@lru_cache(maxsize=1)
def get_tier_catalog() -> TierCatalog:
    """Process-wide catalog built from the current settings."""
    return TierCatalog.from_settings(settings)
