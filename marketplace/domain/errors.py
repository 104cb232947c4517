# marketplace/domain/errors.py
"""
Bledy domenowe. Kazdy ma staly `code` i komunikat, ktory UI moze pokazac
uzytkownikowi. Bazy (ValueError, PermissionError, ...) zostaja, zeby stary
kod lapiacy wbudowane wyjatki dalej dzialal.
"""


class MarketplaceError(Exception):
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(MarketplaceError, LookupError):
    code = "not_found"

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenError(MarketplaceError, PermissionError):
    code = "forbidden"


class ProductUnavailableError(MarketplaceError, ValueError):
    code = "product_unavailable"

    def __init__(self, product_id: int, name: str):
        super().__init__(f"{name} is not available for purchase")
        self.product_id = product_id


class InsufficientStockError(MarketplaceError, ValueError):
    code = "insufficient_stock"

    def __init__(self, product_id: int, name: str, available: int, requested: int):
        if available <= 0:
            message = f"{name} is out of stock"
        else:
            message = f"Only {available} left in stock for {name} (requested {requested})"
        super().__init__(message)
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InvalidQuantityError(MarketplaceError, ValueError):
    code = "invalid_quantity"

    def __init__(self, quantity: int):
        super().__init__(f"Quantity must be at least 1, got {quantity}")


class EmptyCartError(MarketplaceError, ValueError):
    code = "empty_cart"

    def __init__(self):
        super().__init__("Your cart is empty. Add products before placing an order")


class IllegalTransitionError(MarketplaceError, ValueError):
    code = "illegal_transition"

    def __init__(self, current: str, requested: str, message: str | None = None):
        super().__init__(message or f"Cannot change order status from {current} to {requested}")
        self.current = current
        self.requested = requested


class NotCancellableError(MarketplaceError, ValueError):
    code = "not_cancellable"

    def __init__(self, status: str):
        super().__init__(f"Order cannot be cancelled in its current status: {status}")
        self.status = status


class ConflictError(MarketplaceError, RuntimeError):
    code = "conflict"
