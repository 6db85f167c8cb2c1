"""Domain models for billing plans."""

from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PlanPrice(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    interval: str
    price_cents: Optional[int]
    price_formatted: str
    stripe_price_id: Optional[str]


class PlanInfo(BaseModel):
    """Catalog entry as shown on the pricing page."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tier: str
    name: str
    description: str
    rank: int
    max_lines: int
    self_serve: bool
    prices: list[PlanPrice]
    features: list[str]


class PlansResponse(BaseModel):
    """Response model for plans endpoint."""

    plans: list[PlanInfo]
