from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence
from uuid import UUID

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_service.catalog.base import CatalogReader
from checkout_service.core.errors import (
    CartValidationError,
    CatalogUnavailableError,
    CheckoutError,
    FieldViolation,
    InvariantViolation,
    ProductNotFoundError,
    TransientStoreError,
)
from checkout_service.core.metrics import CHECKOUT_OPERATIONS_TOTAL
from checkout_service.models.order import Order
from checkout_service.models.order_item import OrderItem
from checkout_service.schemas.cart import CartLine
from checkout_service.schemas.order import OrderSummary
from checkout_service.schemas.product import MAX_AMOUNT

CENT = Decimal("0.01")
ORDER_TOTAL_TOO_LARGE_MSG = f"Order total must not exceed {MAX_AMOUNT}."


def _to_money(value: Decimal) -> Decimal:
    # ROUND_HALF_UP on Decimal rounds half away from zero
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    quantity: int
    price_at_purchase: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price_at_purchase * self.quantity


def build_order(user_id: UUID, lines: Sequence[PricedLine]) -> Order:
    total = sum((line.line_total for line in lines), Decimal("0.00"))
    return Order(
        user_id=user_id,
        total=_to_money(total),
        items=[
            OrderItem(
                position=idx,
                product_id=line.product_id,
                quantity=line.quantity,
                price_at_purchase=line.price_at_purchase,
            )
            for idx, line in enumerate(lines)
        ],
    )


def verify_total(order: Order) -> None:
    expected = sum(
        (item.price_at_purchase * item.quantity for item in order.items),
        Decimal("0.00"),
    )
    if not order.items or order.total != expected:
        raise InvariantViolation(
            f"Order total {order.total} does not match sum of its items {expected}"
        )


class CheckoutCoordinator:
    """Turns a validated cart and an authenticated user into a committed Order.

    The catalog read is not part of the relational transaction. Prices are
    captured per line inside the transaction scope and frozen into the items;
    the Order and all of its items are written in one commit or not at all.
    """

    def __init__(
        self,
        catalog: CatalogReader,
        session_factory: async_sessionmaker[AsyncSession],
        lookup_timeout: float | None = None,
        service_name: str = "checkout",
    ):
        self._catalog = catalog
        self._session_factory = session_factory
        self._lookup_timeout = lookup_timeout or None
        self._service_name = service_name

    def _count(self, status: str) -> None:
        CHECKOUT_OPERATIONS_TOTAL.labels(service=self._service_name, status=status).inc()

    async def _price_lines(self, cart: Sequence[CartLine]) -> list[PricedLine]:
        priced: list[PricedLine] = []
        for line in cart:
            product = await self._catalog.lookup_by_id(line.product_id)
            if product is None:
                raise ProductNotFoundError(line.product_id)
            price = _to_money(product.price)
            logger.debug(
                "Captured price for product '{product_id}': qty={qty}, price_at_purchase={price}",
                product_id=line.product_id,
                qty=line.quantity,
                price=str(price),
            )
            priced.append(PricedLine(line.product_id, line.quantity, price))
        return priced

    async def _price_lines_bounded(self, cart: Sequence[CartLine]) -> list[PricedLine]:
        if self._lookup_timeout is None:
            return await self._price_lines(cart)
        try:
            return await asyncio.wait_for(self._price_lines(cart), timeout=self._lookup_timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                "Catalog lookups did not finish within {timeout} seconds",
                timeout=self._lookup_timeout,
            )
            raise CatalogUnavailableError() from e

    async def checkout(self, user_id: UUID, cart: Sequence[CartLine]) -> OrderSummary:
        self._count("attempt")
        logger.info(
            "Checkout started for user_id='{user_id}' with {items_count} line(s)",
            user_id=str(user_id),
            items_count=len(cart),
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    priced = await self._price_lines_bounded(cart)
                    order = build_order(user_id, priced)
                    if order.total > MAX_AMOUNT:
                        raise CartValidationError([FieldViolation(ORDER_TOTAL_TOO_LARGE_MSG, "cart")])
                    verify_total(order)
                    session.add(order)
                    await session.flush()
                    summary = OrderSummary.model_validate(order)
        except ProductNotFoundError as e:
            logger.warning(
                "Checkout aborted for user_id='{user_id}': product '{product_id}' not found",
                user_id=str(user_id),
                product_id=e.product_id,
            )
            self._count("not_found")
            raise
        except CartValidationError as e:
            logger.warning(
                "Checkout rejected for user_id='{user_id}': {error}",
                user_id=str(user_id),
                error=e.message,
            )
            self._count("invalid_cart")
            raise
        except InvariantViolation as e:
            logger.critical("Checkout invariant violated: {error}", error=e.message)
            self._count("invariant_violation")
            raise
        except CheckoutError as e:
            logger.error("Checkout failed for user_id='{user_id}': {error}", user_id=str(user_id), error=e.message)
            self._count("store_error")
            raise
        except SQLAlchemyError as e:
            logger.exception("Checkout transaction rolled back for user_id='{user_id}'", user_id=str(user_id))
            self._count("store_error")
            raise TransientStoreError("Order could not be saved, please retry") from e

        logger.info(
            "Checkout committed order_id='{order_id}' for user_id='{user_id}', total={total}",
            order_id=str(summary.id),
            user_id=str(user_id),
            total=str(summary.total),
        )
        self._count("success")
        return summary
