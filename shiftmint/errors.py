from typing import Optional


class ShiftMintError(ValueError):
    code = "shiftmint_error"


class AllocationError(ShiftMintError):
    code = "allocation_error"


class EmptyStaffError(AllocationError):
    code = "empty_staff"

    def __init__(self, message: str = "At least one active staff member is required"):
        super().__init__(message)


class ZeroBasisError(AllocationError):
    """The selected policy's weights sum to zero, so no share is defined."""

    code = "zero_basis"

    def __init__(self, policy: str, message: Optional[str] = None):
        self.policy = policy
        super().__init__(message or f"Cannot allocate tips by '{policy}': the allocation basis sums to zero")


class PayrollError(ShiftMintError):
    code = "payroll_error"


class EmptyRosterError(PayrollError):
    code = "empty_roster"

    def __init__(self, message: str = "At least one employee is required to estimate payroll"):
        super().__init__(message)


class InvalidConfigurationError(PayrollError):
    code = "invalid_configuration"


class RosterError(ShiftMintError):
    code = "roster_error"
