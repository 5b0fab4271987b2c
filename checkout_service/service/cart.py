"""
Cart normalization and validation.

Runs before any store is touched. Every rule is evaluated for every line so the
caller gets the complete list of problems in one response.
"""
from __future__ import annotations

import re
from typing import Any, List

from loguru import logger

from checkout_service.core.errors import CartValidationError, FieldViolation
from checkout_service.schemas.cart import MAX_QUANTITY, CartLine

EMPTY_CART_MSG = "Cart must be a non-empty array."
MISSING_PRODUCT_ID_MSG = "Each cart item must have a productId."
BAD_PRODUCT_ID_MSG = "Invalid product ID format"
BAD_QUANTITY_MSG = "Item quantity must be a number greater than 0."
QUANTITY_TOO_LARGE_MSG = f"Item quantity must not exceed {MAX_QUANTITY}."

PRODUCT_ID_RE = re.compile(r"^[a-fA-F0-9]{24}$")
_INT_TEXT_RE = re.compile(r"^[+-]?\d+$")


def normalize_cart(payload: Any) -> Any:
    """A bare array body and ``{"cart": [...]}`` mean the same thing."""
    if isinstance(payload, dict):
        return payload.get("cart")
    return payload


def _coerce_quantity(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INT_TEXT_RE.match(value.strip()):
        return int(value.strip())
    return None


def validate_cart(payload: Any) -> List[CartLine]:
    cart = normalize_cart(payload)
    if not isinstance(cart, list) or not cart:
        logger.warning("Cart rejected: not a non-empty array")
        raise CartValidationError([FieldViolation(msg=EMPTY_CART_MSG, path="cart")])

    violations: list[FieldViolation] = []
    lines: list[CartLine] = []

    for idx, raw in enumerate(cart):
        item = raw if isinstance(raw, dict) else {}

        product_id = item.get("productId")
        if isinstance(product_id, str):
            product_id = product_id.strip()
        if not isinstance(product_id, str) or not product_id:
            violations.append(FieldViolation(MISSING_PRODUCT_ID_MSG, f"cart[{idx}].productId"))
            product_id = None
        elif not PRODUCT_ID_RE.match(product_id):
            violations.append(FieldViolation(BAD_PRODUCT_ID_MSG, f"cart[{idx}].productId"))
            product_id = None

        quantity = _coerce_quantity(item.get("quantity"))
        if quantity is None or quantity <= 0:
            violations.append(FieldViolation(BAD_QUANTITY_MSG, f"cart[{idx}].quantity"))
            quantity = None
        elif quantity > MAX_QUANTITY:
            violations.append(FieldViolation(QUANTITY_TOO_LARGE_MSG, f"cart[{idx}].quantity"))
            quantity = None

        if product_id is not None and quantity is not None:
            lines.append(CartLine(product_id=product_id, quantity=quantity))

    if violations:
        logger.warning(
            "Cart rejected with {count} violation(s): {paths}",
            count=len(violations),
            paths=[v.path for v in violations],
        )
        raise CartValidationError(violations)

    return lines
