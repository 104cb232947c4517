# marketplace/api/http_errors.py
from fastapi import HTTPException

from marketplace.domain.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientStockError,
    MarketplaceError,
    NotFoundError,
)

_STATUS = [
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (InsufficientStockError, 409),
    (ConflictError, 409),
]


def to_http(e: MarketplaceError) -> HTTPException:
    status = next((code for cls, code in _STATUS if isinstance(e, cls)), 400)
    return HTTPException(status_code=status, detail={"code": e.code, "message": e.message})
