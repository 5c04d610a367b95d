from fastapi import Request

from app.core.guarded_service import GuardedService
from app.services.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    """Service container built in the application lifespan."""
    return request.app.state.services


def get_blockchain(request: Request) -> GuardedService:
    return get_services(request).blockchain


def get_prices(request: Request) -> GuardedService:
    return get_services(request).prices


def get_payments(request: Request) -> GuardedService:
    return get_services(request).payments
