from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func

from common.db.base import Base, JSONDocument


class FactoryAccountEntity(Base):
    """
    Factory (tenant) account.

    Besides the factory's identity this row is the tenant's billing record:
    a cache of its Stripe subscription that plan changes and webhooks keep
    in sync. Rows are never deleted by billing, only updated.
    """

    __tablename__ = "factory_accounts"

    id = Column(String(36), primary_key=True, index=True)  # UUID
    name = Column(String, nullable=False)

    # Stripe references
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, index=True)

    # Plan state derived from the Stripe subscription
    subscription_status = Column(
        String(50), nullable=False, default="trial", server_default="trial"
    )  # trial, trialing, active, past_due, canceled, inactive, expired
    subscription_tier = Column(String(50), nullable=True)  # starter..enterprise
    billing_interval = Column(String(20), nullable=True)  # month, year
    max_lines = Column(Integer, nullable=True)

    # Start of the payment grace period, kept across retried failures
    payment_failed_at = Column(DateTime(timezone=True), nullable=True)
    # {"type": "downgrade", "newTier", "newInterval", "effectiveDate", "newPriceId"}
    pending_plan_change = Column(JSONDocument, nullable=True)
    trial_end_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
