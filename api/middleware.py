"""Request-scoped middleware for API requests."""

from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from utils.user_context import set_current_user_id, clear_current_user_id


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ActorMiddleware(BaseHTTPMiddleware):
    """
    Identifies the staff member behind a request.

    Sign-in happens in the upstream gateway, which forwards the user's ID in
    the X-User-ID header. Requests without the header run as 'system'.
    The user context is always cleared after the request.
    """

    HEADER = "X-User-ID"

    async def dispatch(self, request: Request, call_next):
        raw_user_id = request.headers.get(self.HEADER)
        if raw_user_id is None:
            return await call_next(request)

        try:
            user_id = UUID(raw_user_id)
        except ValueError:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    f"{self.HEADER} must be a UUID",
                ).model_dump(mode="json"),
            )

        set_current_user_id(user_id)
        request.state.user_id = user_id
        try:
            return await call_next(request)
        finally:
            clear_current_user_id()
