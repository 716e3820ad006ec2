import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel

from shiftmint.allocation import TipAllocation


class TipTransaction(BaseModel):
    id: str
    staff_id: str
    employee: str
    amount: float
    type: str = "credit"
    source: str = "automatic"
    notes: str
    recorded_at: datetime


def to_tip_transactions(allocation: TipAllocation, recorded_at: Optional[datetime] = None) -> List[TipTransaction]:
    """
    Turn a confirmed allocation into one tip-ledger record per staff member, amounts rounded to cents.
    Storing the records is up to the caller.
    """
    recorded_at = recorded_at or datetime.now(timezone.utc)
    return [
        TipTransaction(
            id=uuid.uuid4().hex,
            staff_id=r.staff_id,
            employee=r.name,
            amount=r.tip_amount,
            notes=f"Auto-calculated based on {r.basis}",
            recorded_at=recorded_at,
        )
        for r in allocation.rounded()
    ]
