"""
Exception types for reward calculation.

All errors are fatal to the computation that raised them; the core never
retries or downgrades them to warnings.
"""


class RewardsError(Exception):
    """Base class for all reward calculation errors."""
    pass


class PlanValidationError(RewardsError, ValueError):
    """Raised when a reward plan is malformed or inconsistent."""
    pass


class PerformanceDataError(RewardsError):
    """Raised when required performance data is not available."""
    pass


class CalculationError(RewardsError, ArithmeticError):
    """Raised when a calculation precondition does not hold."""
    pass


class ConsistencyError(RewardsError):
    """Raised when an internal cross-check fails."""
    pass
