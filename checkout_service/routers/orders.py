from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from loguru import logger

from checkout_service.core.errors import CartValidationError, CheckoutError, ProductNotFoundError
from checkout_service.core.metrics import CHECKOUT_API_REQUESTS_TOTAL
from checkout_service.dependencies.auth import CurrentIdentity
from checkout_service.dependencies.depend import get_coordinator
from checkout_service.schemas.order import (
    CheckoutData,
    CheckoutResponse,
    ErrorResponse,
    FailResponse,
)
from checkout_service.service.cart import validate_cart
from checkout_service.service.checkout import CheckoutCoordinator

router = APIRouter(prefix="/orders", tags=["Orders"])


def _outcome(error: CheckoutError) -> str:
    if isinstance(error, CartValidationError):
        return "invalid_cart"
    if isinstance(error, ProductNotFoundError):
        return "not_found"
    return "error"


def _count_request(service_name: str, outcome: str) -> None:
    CHECKOUT_API_REQUESTS_TOTAL.labels(
        service=service_name,
        endpoint="/orders/checkout",
        method="POST",
        status=outcome,
    ).inc()


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": FailResponse},
        401: {"model": FailResponse},
        404: {"model": FailResponse},
        500: {"model": ErrorResponse},
    },
)
async def checkout(
    request: Request,
    identity: CurrentIdentity,
    payload: Any = Body(default=None),
    coordinator: CheckoutCoordinator = Depends(get_coordinator),
):
    service_name = request.app.state.settings.SERVICE_NAME
    logger.info(
        "Checkout request received for user_id='{user_id}'",
        user_id=str(identity.user_id),
    )
    try:
        cart = validate_cart(payload)
        summary = await coordinator.checkout(identity.user_id, cart)
    except CheckoutError as e:
        _count_request(service_name, _outcome(e))
        raise

    _count_request(service_name, "success")
    return CheckoutResponse(data=CheckoutData(order=summary))
