"""
Billing API routes.

Protected endpoints for the caller's factory plan.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from common.core.otel_axiom_exporter import get_logger
from common.providers.rate_limiter.limiter import limiter
from packages.auth.dependencies import get_current_active_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.billing.exceptions import BillingError
from packages.billing.models.schemas.billing import (
    BillingStatusResponse,
    ChangePlanRequest,
    ChangePlanResponse,
)
from packages.billing.services.plan_change_service import PlanChangeService
from packages.factories.repositories.factory_account_repository import (
    FactoryAccountRepository,
)

logger = get_logger(__name__)

router = APIRouter()

GENERIC_CHANGE_PLAN_ERROR = "Unable to change your plan right now. Please try again."


def get_plan_change_service() -> PlanChangeService:
    return PlanChangeService()


def get_factory_account_repository() -> FactoryAccountRepository:
    return FactoryAccountRepository()


# ============================================================================
# Billing Status
# ============================================================================


@router.get("/status", response_model=BillingStatusResponse)
async def get_billing_status(
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    factory_repo: FactoryAccountRepository = Depends(get_factory_account_repository),
):
    """
    Get the billing state of the caller's factory.

    Includes whether the factory currently has access, taking the trial end
    date and the payment grace period into account.
    """
    factory = (
        await factory_repo.get(current_user.factory_id)
        if current_user.factory_id
        else None
    )
    if factory is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No factory associated with user",
        )

    return BillingStatusResponse(
        factory_id=factory.id,
        subscription_status=factory.subscription_status,
        subscription_tier=factory.subscription_tier,
        billing_interval=factory.billing_interval,
        max_lines=factory.max_lines,
        has_access=factory.has_access(),
        payment_failed_at=factory.payment_failed_at,
        grace_period_ends_at=factory.grace_period_ends_at(),
        trial_end_date=factory.trial_end_date,
        pending_plan_change=factory.pending_plan_change,
    )


# ============================================================================
# Plan Change
# ============================================================================


@router.post(
    "/change-plan",
    response_model=ChangePlanResponse,
    response_model_exclude_none=True,
)
@limiter.limit("10/minute")
async def change_plan(
    request: Request,
    body: ChangePlanRequest,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    plan_change_service: PlanChangeService = Depends(get_plan_change_service),
):
    """
    Change the caller's factory plan.

    Upgrades return a checkout URL; the plan changes once checkout completes.
    Downgrades take effect at the end of the current billing period.
    Errors are returned as ``{"success": false, "error": ...}`` with status 200.
    """
    try:
        return await plan_change_service.change_plan(
            current_user, body.new_tier, body.billing_interval
        )
    except BillingError as e:
        logger.info(
            f"[change-plan] Rejected: {e.user_message}",
            extra={"user_id": current_user.user_id, "factory_id": current_user.factory_id},
        )
        return ChangePlanResponse.failure(e.user_message)
    except Exception as e:
        logger.error(
            f"[change-plan] Failed: {str(e)}",
            extra={
                "user_id": current_user.user_id,
                "factory_id": current_user.factory_id,
                "error": str(e),
            },
        )
        return ChangePlanResponse.failure(GENERIC_CHANGE_PLAN_ERROR)
