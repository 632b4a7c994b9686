"""Exception types raised by the loan engine."""


class TallybookError(Exception):
    """Base class for all tallybook errors."""


class InvalidParameterError(TallybookError, ValueError):
    """Loan parameters outside the domain the engine can compute over."""


class DegenerateScheduleError(TallybookError):
    """A schedule that does not retire the loan within its term.

    Only raised when the caller asks for strict checking; otherwise the
    schedule is returned with ``degenerate=True``.
    """

    def __init__(self, message: str, unpaid_balance):
        super().__init__(message)
        self.unpaid_balance = unpaid_balance
