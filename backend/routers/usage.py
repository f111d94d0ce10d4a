"""Usage quota router.

Clients call /authorize immediately before a paid action and /debit
immediately after it succeeds. A declined authorization or debit is a 402 whose
detail tells the user when the limit resets.
"""

from fastapi import APIRouter, Depends, HTTPException

from models.schemas import UsageDecision, UsageRequest, UsageStatus
from services.storage import storage
from services.usage_meter import UsageMeter

router = APIRouter(prefix="/api/usage", tags=["usage"])

usage_meter = UsageMeter(storage)


def get_usage_meter() -> UsageMeter:
    return usage_meter


@router.get("", response_model=UsageStatus)
async def get_usage(meter: UsageMeter = Depends(get_usage_meter)) -> UsageStatus:
    """Remaining credits for the current month."""
    return meter.status()


@router.post("/authorize", response_model=UsageDecision)
async def authorize_action(
    request: UsageRequest,
    meter: UsageMeter = Depends(get_usage_meter),
) -> UsageDecision:
    """Check that a paid action may start. Does not spend credits."""
    decision = meter.authorize(request.action, request.units)
    if not decision.allowed:
        raise HTTPException(status_code=402, detail=decision.message)
    return decision


@router.post("/debit", response_model=UsageStatus)
async def debit_action(
    request: UsageRequest,
    meter: UsageMeter = Depends(get_usage_meter),
) -> UsageStatus:
    """
    Record a completed paid action.

    The balance is re-checked and debited in one step; if another client
    spent the credits since /authorize, this is a 402 and nothing is debited.
    """
    decision = meter.charge(request.action, request.units)
    if not decision.allowed:
        raise HTTPException(status_code=402, detail=decision.message)
    return meter.status()
