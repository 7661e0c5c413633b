from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class FallbackOriginMiddleware(BaseHTTPMiddleware):
    """Pin Access-Control-Allow-Origin to the primary front-end for unknown origins.

    Allowed origins are handled by CORSMiddleware; everything else gets the
    first configured https origin, which a browser on another site will refuse.
    """

    def __init__(self, app, origins: list[str]):
        super().__init__(app)
        self.origins = origins
        secure = [o for o in origins if o.startswith("https://")]
        self.fallback = (secure or origins or [None])[0]

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        origin = request.headers.get("origin")
        if origin and self.fallback and origin not in self.origins:
            response.headers["Access-Control-Allow-Origin"] = self.fallback
            response.headers["Vary"] = "Origin"
        return response
