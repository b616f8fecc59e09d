"""Request dependencies."""

from fastapi import Request

from dinner.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
