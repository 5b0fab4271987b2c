from fastapi import Request

from checkout_service.service.checkout import CheckoutCoordinator


def get_coordinator(request: Request) -> CheckoutCoordinator:
    """Coordinator built once in the app lifespan, see ``main.lifespan``."""
    return request.app.state.coordinator
