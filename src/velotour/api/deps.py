"""Request-scoped access to the shared service container."""

from __future__ import annotations

from fastapi import Request

from ..services.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services
