from shiftmint.allocation import (
    AllocationPolicy,
    AllocationResult,
    StaffMember,
    TipAllocation,
    TipPoolInput,
    allocate_tips,
)
from shiftmint.anomalies import (
    Anomaly,
    AnomalyDetector,
    DetectionOptions,
    Punch,
    Shift,
    ValidationResult,
    detect_anomalies,
    shifts_from_punches,
    validate_punches,
)
from shiftmint.errors import (
    AllocationError,
    EmptyRosterError,
    EmptyStaffError,
    InvalidConfigurationError,
    PayrollError,
    RosterError,
    ShiftMintError,
    ZeroBasisError,
)
from shiftmint.ledger import TipTransaction, to_tip_transactions
from shiftmint.payroll import (
    EmployeeWage,
    PayrollEstimateInput,
    PayrollEstimateResult,
    TaxSettings,
    estimate_payroll,
)
from shiftmint.roster import load_roster, load_wage_roster

__version__ = "0.1.0"
