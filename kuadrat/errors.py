"""
Common Error Constants and Cart Exceptions

Centralized error messages to avoid string duplication (SonarQube S1192).
"""

# Cart input errors
ERROR_INVALID_QUANTITY = "quantity must be an integer"
ERROR_NON_POSITIVE_QUANTITY = "quantity must be a positive integer"
ERROR_NEGATIVE_PRICE = "unit_price must be a non-negative number"
ERROR_INVALID_SHIPPING = "shipping must be a ShippingSelection or None"
ERROR_INVALID_PRODUCT_TYPE = "product_type must be 'art' or 'other'"
ERROR_INVALID_ENTRY = "Invalid cart entry"

# Storage errors
ERROR_STORAGE_UNAVAILABLE = "Cart storage unavailable"
ERROR_CORRUPT_CART = "Corrupted cart data"


class CartError(Exception):
    """Base class for cart errors."""


class InvalidCartEntry(CartError, ValueError):
    """Raised when a cart mutation would break a line invariant."""
