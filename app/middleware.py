"""Request middleware: attach the proxy-authenticated email to request.state."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.services.auth import get_auth_email


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request.state.user_email = get_auth_email(request.headers)
        return await call_next(request)
