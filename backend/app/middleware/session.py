"""Session middleware — resolves the client session on every request.

Flow:
  1. Read the X-Session-ID header
  2. Validate it
  3. Set the ContextVar so routers and the activity log can read it
  4. After the response, clear the ContextVar

Routes that don't need a session (health, customers, prices) never read
it, so a missing header is fine for them.  A malformed header is
rejected up front.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.sessions import (
    clear_session_context,
    set_current_session_id,
    validate_session_id,
)

SESSION_HEADER = "x-session-id"


class SessionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        session_id = request.headers.get(SESSION_HEADER)

        if session_id:
            try:
                validate_session_id(session_id)
            except ValueError:
                clear_session_context()
                return JSONResponse(
                    status_code=400,
                    content={
                        "error": {
                            "code": "INVALID_SESSION",
                            "message": "Malformed X-Session-ID header",
                        }
                    },
                )
            set_current_session_id(session_id)
        else:
            clear_session_context()

        try:
            return await call_next(request)
        finally:
            clear_session_context()
