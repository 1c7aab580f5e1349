"""
Failures raised by the ledger services.

Every one of them is recoverable: the operation is rejected, its session is
rolled back, and the caller may show a message and retry.
"""


class LedgerError(Exception):
    """Base class for rejected ledger operations."""
    pass


class NotFoundError(LedgerError):
    """Exception raised when a referenced product or user doesn't exist."""
    pass


class ProductNotFoundError(NotFoundError):
    """Exception raised when a sale references a product that doesn't exist."""

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found")


class InsufficientStockError(LedgerError):
    """Exception raised when there's not enough stock to fulfill a sale."""

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for '{product_name}'. "
            f"Available: {available}, Requested: {requested}"
        )


class ValidationError(LedgerError):
    """Exception raised when input breaks a business rule (e.g. a PIN already in use)."""
    pass


class InvalidCredentialsError(LedgerError):
    """Exception raised when a PIN matches no user."""
    pass


class InvalidStateError(LedgerError):
    """Exception raised when an operation is not valid in the current state."""
    pass


class NotAuthenticatedError(LedgerError):
    """Exception raised when a mutation arrives without a signed-in user."""
    pass


class PermissionDeniedError(LedgerError):
    """Exception raised when the signed-in user's role does not allow an operation."""
    pass
