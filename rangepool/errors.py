"""Exception types for the pool core.

Every public entry point on ``Pool`` raises one of these and leaves the pool
state exactly as it was before the call.
"""

from __future__ import annotations


class PoolError(Exception):
    """Base class for all pool errors."""


class PoolValidationError(PoolError, ValueError):
    """Raised when caller-supplied parameters are malformed."""


class PoolMathError(PoolError, ArithmeticError):
    """Raised on fixed-point overflow, underflow or division by zero."""


class PoolStateError(PoolError):
    """Raised when an action is not allowed in the current pool/position state."""


class PriceRangeViolation(PoolStateError):
    """Raised when a swap would move the price outside the pool's active range."""

    def __init__(self, next_sqrt_price: int, sqrt_min_price: int, sqrt_max_price: int) -> None:
        self.next_sqrt_price = next_sqrt_price
        self.sqrt_min_price = sqrt_min_price
        self.sqrt_max_price = sqrt_max_price
        super().__init__(
            f"price range violation: next sqrt price {next_sqrt_price} "
            f"outside [{sqrt_min_price}, {sqrt_max_price}]"
        )


class PoolLockedError(PoolStateError):
    """Raised when a mutating call arrives while the pool lock is held."""


class SettlementError(PoolError):
    """Raised when the token custody collaborator did not deliver the owed delta."""

    def __init__(self, token: str, expected: int, received: int) -> None:
        self.token = token
        self.expected = expected
        self.received = received
        super().__init__(f"settlement shortfall on {token}: expected {expected}, received {received}")
