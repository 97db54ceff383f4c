"""Tax API schemas."""
from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from ledgercast.forecast.types import Precision
from ledgercast.tax.types import TaxKind, TaxStatus


class TaxObligationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: TaxKind
    due_date: date
    amount: Decimal
    reference: str
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    status: TaxStatus
    precision: Precision
    notes: Optional[str] = None
    persisted: bool


class TaxObligationsResponse(BaseModel):
    """Upcoming tax obligations within the horizon."""
    days: int
    obligations: List[TaxObligationResponse]
    total_amount: Decimal
    degraded: bool = False
