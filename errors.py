"""
Errors raised by the ordering core.

Every error maps to an HTTP status and is rendered by the API as
``{"error": message}``.
"""

from typing import Optional


class StorefrontError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    """Malformed or missing request fields."""


class InputError(StorefrontError):
    """Delivery address without coordinates."""


class ConfigurationError(StorefrontError):
    """Store location or delivery settings are not configured."""


class ProductUnavailableError(StorefrontError):
    def __init__(self, product_id: str, name: Optional[str] = None):
        label = f"{name} ({product_id})" if name else product_id
        super().__init__(f"Product {label} is not available")
        self.product_id = product_id


class MinimumOrderNotMetError(StorefrontError):
    def __init__(self, minimum_order: float, subtotal: float):
        super().__init__(
            f"Minimum order amount is {minimum_order:.2f} (current subtotal {subtotal:.2f})"
        )
        self.minimum_order = minimum_order
        self.subtotal = subtotal


class InvalidTransitionError(StorefrontError):
    status_code = 409


class AuthorizationError(StorefrontError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(StorefrontError):
    status_code = 404
