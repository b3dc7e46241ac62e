class PosError(Exception):
    """
    Base class for errors the register screen shows to the operator.
    """

    severity = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PosError):
    """
    Operator input rejected before any state transition.
    e.g. empty cart at checkout, insufficient cash, missing customer name
    """

    severity = "warning"


class ConnectivityError(PosError):
    """
    The backing store could not be reached or rejected a call.
    """


class AuthenticationTimeout(PosError):
    """
    No operator identity became available in time for a ledger write.
    """

    def __init__(self, message: str = "Not authenticated. Please refresh the page."):
        super().__init__(message)


class CheckoutInProgress(PosError):
    """
    A sale is already being submitted for this cart.
    """

    severity = "warning"

    def __init__(self, message: str = "A sale is already being processed."):
        super().__init__(message)
