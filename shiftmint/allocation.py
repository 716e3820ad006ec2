import logging
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from shiftmint.errors import EmptyStaffError, ZeroBasisError
from shiftmint.formatting import format_fixed, format_number, split_cents

logger = logging.getLogger(__name__)


class AllocationPolicy(str, Enum):
    BY_HOURS = "hours"
    EQUAL_SPLIT = "equal"
    BY_PERFORMANCE = "performance"


class StaffMember(BaseModel):
    id: str
    name: str
    role: str = "employee"
    hours_worked: float = Field(ge=0, allow_inf_nan=False)
    performance_score: float = Field(ge=0, le=1)


class TipPoolInput(BaseModel):
    total_sales: float = Field(gt=0, allow_inf_nan=False)
    # percent of total_sales, 18 means 18%
    service_charge_rate: float = Field(ge=0, le=100)
    policy: AllocationPolicy = AllocationPolicy.BY_HOURS
    staff: List[StaffMember]


class AllocationResult(BaseModel):
    staff_id: str
    name: str
    role: str
    tip_amount: float
    basis: str


class TipAllocation(BaseModel):
    policy: AllocationPolicy
    total_tips: float
    results: List[AllocationResult]

    @property
    def total_distributed(self) -> float:
        return sum(r.tip_amount for r in self.results)

    def rounded(self) -> List[AllocationResult]:
        """
        Results with tip amounts rounded to cents for display and ledger records. The rounded amounts
        add up to total_tips rounded to cents.
        """
        cents = split_cents([r.tip_amount for r in self.results], self.total_tips)
        return [r.model_copy(update={'tip_amount': c}) for r, c in zip(self.results, cents)]


def _result(member: StaffMember, tip_amount: float, basis: str) -> AllocationResult:
    return AllocationResult(
        staff_id=member.id,
        name=member.name,
        role=member.role,
        tip_amount=tip_amount,
        basis=basis,
    )


def allocate_tips(pool: TipPoolInput) -> TipAllocation:
    """
    Divide the tip pool (service_charge_rate percent of total_sales) among pool.staff.

    - hours: share proportional to hours_worked
    - equal: same share for everyone
    - performance: share proportional to performance_score

    Results keep the input staff order and are not rounded. Raises EmptyStaffError when there is
    nobody to pay and ZeroBasisError when the chosen weights sum to zero.
    """
    staff = pool.staff
    if not staff:
        raise EmptyStaffError()

    total_tips = pool.total_sales * (pool.service_charge_rate / 100)

    if pool.policy == AllocationPolicy.BY_HOURS:
        total_hours = sum(m.hours_worked for m in staff)
        if total_hours == 0:
            raise ZeroBasisError(pool.policy.value, "Cannot allocate tips by hours: no hours were worked")
        results = [
            _result(m, total_tips * (m.hours_worked / total_hours),
                    f"{format_number(m.hours_worked)}h of {format_number(total_hours)}h total")
            for m in staff
        ]
    elif pool.policy == AllocationPolicy.EQUAL_SPLIT:
        equal_amount = total_tips / len(staff)
        results = [_result(m, equal_amount, 'Equal distribution') for m in staff]
    elif pool.policy == AllocationPolicy.BY_PERFORMANCE:
        total_performance = sum(m.performance_score for m in staff)
        if total_performance == 0:
            raise ZeroBasisError(pool.policy.value, "Cannot allocate tips by performance: all scores are zero")
        results = [
            _result(m, total_tips * (m.performance_score / total_performance),
                    f"{format_fixed(m.performance_score * 100)}% performance score")
            for m in staff
        ]
    else:
        raise ValueError(f"Unknown allocation policy: {pool.policy!r}")

    logger.debug("Allocated %.2f in tips across %d staff by %s", total_tips, len(staff), pool.policy.value)
    return TipAllocation(policy=pool.policy, total_tips=total_tips, results=results)
