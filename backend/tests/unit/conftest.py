import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from packages.billing.catalog import TierCatalog
from common.core.config import Settings


@pytest.fixture
def catalog():
    """Tier catalog built from default settings (placeholder price ids)."""
    return TierCatalog.from_settings(Settings())


@pytest.fixture
def mock_payment_provider():
    """Create a mock payment provider instance for testing."""
    provider = AsyncMock()
    provider.retrieve_subscription = AsyncMock()
    provider.list_subscriptions = AsyncMock(return_value=[])
    provider.retrieve_customer = AsyncMock()
    provider.list_customers_by_email = AsyncMock(return_value=[])
    provider.create_checkout_session = AsyncMock()
    provider.schedule_downgrade = AsyncMock()
    provider.create_subscription = AsyncMock()
    provider.cancel_subscription = AsyncMock(return_value=None)
    provider.verify_webhook = MagicMock()
    return provider


@pytest.fixture
def mock_email_provider():
    """Create a mock e-mail provider instance for testing."""
    provider = AsyncMock()
    provider.send = AsyncMock(return_value=None)
    return provider


@pytest.fixture(autouse=True)
def mock_get_email_provider(mock_email_provider):
    """Automatically mock get_email_provider for all unit tests."""
    with patch(
        "packages.notifications.services.billing_notification_service.get_email_provider",
        return_value=mock_email_provider,
    ):
        yield


@pytest.fixture
def mock_span():
    """Create a mock span instance for testing telemetry."""
    span = MagicMock()
    span.__enter__ = MagicMock(return_value=span)
    span.__exit__ = MagicMock(return_value=None)
    return span


@pytest.fixture
def mock_start_span(mock_span):
    """Create a mock start_span function that returns mock_span."""
    with patch(
        "common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span",
        return_value=mock_span,
    ) as mock:
        yield mock
