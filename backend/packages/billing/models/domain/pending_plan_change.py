"""
Pending plan change stored on the factory billing record.

A factory either has no pending change (``None``) or one scheduled downgrade.
The JSON layout (camelCase keys) is shared with the web client, which shows
the effective date on the billing page.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.enums import BillingInterval, PlanTier


class PendingDowngrade(BaseModel):
    """A downgrade accepted now and applied at the end of the current period."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Literal["downgrade"] = "downgrade"
    new_tier: PlanTier
    new_interval: BillingInterval
    effective_date: datetime
    new_price_id: str

    def to_record(self) -> dict[str, Any]:
        """Serialize to the JSON document stored in ``pending_plan_change``."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, value: Optional[dict[str, Any]]) -> Optional["PendingDowngrade"]:
        if not value:
            return None
        return cls.model_validate(value)
