"""Tax obligation API routes."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ledgercast.config import settings
from ledgercast.database import AsyncSessionLocal
from ledgercast.forecast.errors import InvalidHorizonError, SourceUnavailableError, validate_horizon
from ledgercast.forecast.types import ZERO
from ledgercast.tax.calculator import UKTaxCalculator
from ledgercast.tax.schemas import TaxObligationResponse, TaxObligationsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def get_tax_calculator() -> UKTaxCalculator:
    return UKTaxCalculator(AsyncSessionLocal)


@router.get("/obligations", response_model=TaxObligationsResponse)
async def get_obligations(
    days: int = Query(settings.FORECAST_DEFAULT_DAYS, description="Horizon in days"),
    calculator: UKTaxCalculator = Depends(get_tax_calculator),
):
    """
    Get upcoming VAT, PAYE/NI and corporation tax obligations.

    Stored pending obligations take precedence over calculated ones with
    the same type and due date. Each carries a precision tag.
    """
    try:
        validate_horizon(days, settings.FORECAST_MAX_DAYS)
    except InvalidHorizonError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        obligations = await calculator.calculate_upcoming_obligations(days)
    except SourceUnavailableError as e:
        logger.warning(f"Returning no tax obligations: {e}")
        return TaxObligationsResponse(days=days, obligations=[], total_amount=ZERO, degraded=True)

    return TaxObligationsResponse(
        days=days,
        obligations=[TaxObligationResponse.model_validate(o) for o in obligations],
        total_amount=sum((o.amount for o in obligations), ZERO),
    )
