"""Request-scoped access to the application's services."""

from fastapi import Request


def services(request: Request):
    return request.app.state.services
