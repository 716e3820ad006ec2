import logging
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shiftmint.allocation import AllocationPolicy, StaffMember, TipPoolInput, allocate_tips
from shiftmint.anomalies import AnomalyDetector, DetectionOptions, Punch, ValidationResult, validate_punches
from shiftmint.config import get_settings
from shiftmint.errors import ShiftMintError
from shiftmint.ledger import TipTransaction, to_tip_transactions
from shiftmint.logging_config import configure_logging
from shiftmint.payroll import (
    EmployeeWage,
    PayrollEstimateInput,
    PayrollEstimateResult,
    TaxSettings,
    estimate_payroll,
)

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title="ShiftMint Tip & Payroll API")

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,  # React dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShiftMintError)
async def shiftmint_error_handler(request: Request, exc: ShiftMintError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc), "code": exc.code})


# Pydantic models
class TipCalculationRequest(BaseModel):
    total_sales: float = Field(gt=0, allow_inf_nan=False)
    service_charge_rate: Optional[float] = Field(default=None, ge=0, le=100)
    policy: AllocationPolicy = AllocationPolicy.BY_HOURS
    staff: List[StaffMember]

    def to_pool(self) -> TipPoolInput:
        rate = self.service_charge_rate
        if rate is None:
            rate = settings.default_service_charge_rate
        return TipPoolInput(total_sales=self.total_sales, service_charge_rate=rate,
                            policy=self.policy, staff=self.staff)


class CalculationResult(BaseModel):
    staff_id: str
    employee_name: str
    role: str
    basis: str
    share_percentage: float
    tip_amount: float


class TipCalculationResponse(BaseModel):
    policy: AllocationPolicy
    total_tips: float
    total_distributed: float
    results: List[CalculationResult]


class TipConfirmationResponse(BaseModel):
    total_tips: float
    transactions: List[TipTransaction]


class PayrollEstimateRequest(BaseModel):
    employees: List[EmployeeWage]
    tax_settings: Optional[TaxSettings] = None
    assumed_weekly_hours: Optional[float] = None


class PunchValidationRequest(BaseModel):
    punches: List[Punch]
    options: Optional[DetectionOptions] = None


@app.get("/")
def read_root():
    return {"message": "ShiftMint Tip & Payroll API"}


@app.post("/tips/calculate", response_model=TipCalculationResponse)
def calculate_tips(request: TipCalculationRequest):
    """
    Calculate the tip distribution for a pool, amounts rounded to cents for display
    """
    allocation = allocate_tips(request.to_pool())

    results = []
    for r in allocation.rounded():
        share = (r.tip_amount / allocation.total_tips * 100) if allocation.total_tips > 0 else 0.0
        results.append(CalculationResult(
            staff_id=r.staff_id,
            employee_name=r.name,
            role=r.role,
            basis=r.basis,
            share_percentage=share,
            tip_amount=r.tip_amount,
        ))
    return TipCalculationResponse(
        policy=allocation.policy,
        total_tips=round(allocation.total_tips, 2),
        total_distributed=round(sum(r.tip_amount for r in results), 2),
        results=results,
    )


@app.post("/tips/confirm", response_model=TipConfirmationResponse)
def confirm_tips(request: TipCalculationRequest):
    """
    Convert a tip distribution into ledger records, one per staff member
    """
    allocation = allocate_tips(request.to_pool())
    transactions = to_tip_transactions(allocation)
    logger.info("Recorded %d tip transactions totalling %.2f", len(transactions), allocation.total_tips)
    return TipConfirmationResponse(total_tips=round(allocation.total_tips, 2), transactions=transactions)


@app.post("/payroll/estimate", response_model=PayrollEstimateResult)
def payroll_estimate(request: PayrollEstimateRequest):
    """
    Estimate gross pay, taxes and net pay for the current pay period
    """
    tax_settings = request.tax_settings or settings.tax_settings()
    hours = request.assumed_weekly_hours
    if hours is None:
        hours = settings.assumed_weekly_hours
    return estimate_payroll(PayrollEstimateInput(
        employees=request.employees,
        combined_tax_rate=tax_settings.combined_tax_rate,
        assumed_weekly_hours=hours,
    ))


@app.post("/tiee/validate", response_model=ValidationResult)
def validate_time_entries(request: PunchValidationRequest):
    """
    Check a batch of clock punches for time-entry anomalies
    """
    options = request.options or DetectionOptions(
        venue_closing_time=settings.venue_closing_time,
        tip_sales_ratio_min=settings.tip_sales_ratio_min,
        tip_sales_ratio_max=settings.tip_sales_ratio_max,
    )
    return validate_punches(request.punches, AnomalyDetector(options))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
