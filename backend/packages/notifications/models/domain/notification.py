from enum import Enum
from typing import List
from pydantic import BaseModel


class BillingNotificationType(str, Enum):
    PAYMENT_FAILED = "payment_failed"
    SUBSCRIPTION_CANCELED = "subscription_canceled"


class EmailMessage(BaseModel):
    to: List[str]
    subject: str
    html: str
