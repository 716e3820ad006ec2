import logging
import math
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from shiftmint.errors import EmptyRosterError, InvalidConfigurationError

logger = logging.getLogger(__name__)


class TaxSettings(BaseModel):
    federal_rate: float = Field(default=0.22, ge=0)
    state_rate: float = Field(default=0.09, ge=0)
    fica_rate: float = Field(default=0.0765, ge=0)
    # employer-side cost, not withheld from pay
    unemployment_rate: float = Field(default=0.006, ge=0)

    @property
    def combined_tax_rate(self) -> float:
        return self.federal_rate + self.state_rate + self.fica_rate


class EmployeeWage(BaseModel):
    hourly_wage: float = Field(ge=0, allow_inf_nan=False)
    id: Optional[str] = None
    name: Optional[str] = None


class PayrollEstimateInput(BaseModel):
    employees: List[EmployeeWage]
    combined_tax_rate: float
    assumed_weekly_hours: float


class PayrollEstimateResult(BaseModel):
    total_employees: int
    average_hourly_wage: float
    assumed_weekly_hours: float
    combined_tax_rate: float
    estimated_gross_pay: float
    estimated_taxes: float
    estimated_net_pay: float

    @computed_field
    @property
    def net_rate(self) -> float:
        if self.estimated_gross_pay == 0:
            return 0.0
        return self.estimated_net_pay / self.estimated_gross_pay


def estimate_payroll(data: PayrollEstimateInput) -> PayrollEstimateResult:
    """
    Estimate one pay period's gross pay, withholding and net pay for a roster of hourly employees,
    assuming everyone works assumed_weekly_hours at the roster's average wage.
    """
    if not data.employees:
        raise EmptyRosterError()
    if not math.isfinite(data.combined_tax_rate) or data.combined_tax_rate < 0:
        raise InvalidConfigurationError(f"combined_tax_rate must be a non-negative number, got {data.combined_tax_rate}")
    if not math.isfinite(data.assumed_weekly_hours) or data.assumed_weekly_hours <= 0:
        raise InvalidConfigurationError(f"assumed_weekly_hours must be greater than 0, got {data.assumed_weekly_hours}")

    total_employees = len(data.employees)
    average_hourly_wage = sum(e.hourly_wage for e in data.employees) / total_employees
    estimated_gross_pay = total_employees * average_hourly_wage * data.assumed_weekly_hours
    estimated_taxes = estimated_gross_pay * data.combined_tax_rate
    estimated_net_pay = estimated_gross_pay - estimated_taxes

    logger.debug("Estimated payroll for %d employees: gross=%.2f taxes=%.2f",
                 total_employees, estimated_gross_pay, estimated_taxes)
    return PayrollEstimateResult(
        total_employees=total_employees,
        average_hourly_wage=average_hourly_wage,
        assumed_weekly_hours=data.assumed_weekly_hours,
        combined_tax_rate=data.combined_tax_rate,
        estimated_gross_pay=estimated_gross_pay,
        estimated_taxes=estimated_taxes,
        estimated_net_pay=estimated_net_pay,
    )
