from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from starlette import status


@dataclass(frozen=True)
class FieldViolation:
    msg: str
    path: str

    def as_dict(self) -> dict[str, str]:
        return {"msg": self.msg, "path": self.path}


class CheckoutError(Exception):
    """Base for every failure the checkout API reports to its caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    client_error: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CartValidationError(CheckoutError):
    status_code = status.HTTP_400_BAD_REQUEST
    client_error = True

    def __init__(self, violations: Sequence[FieldViolation]):
        self.violations = list(violations)
        super().__init__("; ".join(v.msg for v in self.violations) or "Invalid cart")


class ProductNotFoundError(CheckoutError):
    status_code = status.HTTP_404_NOT_FOUND
    client_error = True

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"No product found with ID {product_id}")


class AuthError(CheckoutError):
    status_code = status.HTTP_401_UNAUTHORIZED
    client_error = True


class TransientStoreError(CheckoutError):
    """Store failure before commit. Rollback leaves nothing behind, so a retry is safe."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


CATALOG_UNAVAILABLE_MSG = "Product catalog is unavailable, please retry"


class CatalogUnavailableError(TransientStoreError):
    """Catalog read failed. Details go to the log, the caller gets a fixed message."""

    def __init__(self, message: str = CATALOG_UNAVAILABLE_MSG):
        super().__init__(message)


class InvariantViolation(CheckoutError):
    """Computed total disagrees with its items. A defect, never bad input."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
