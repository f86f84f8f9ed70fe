from fastapi import FastAPI, Request

from carenotify.api.errors import setup_error_handlers
from carenotify.api.rate_limits import setup_rate_limiter
from carenotify.api.router import api_router
from carenotify.logging import bind_request_context
from carenotify.server.lifespan import lifespan


async def logging_middleware(request: Request, call_next):
    """Bind a correlation id and the request line to every log of the request."""
    with bind_request_context(
        correlation_id=request.headers.get("X-Correlation-ID"),
        request_path=request.url.path,
        request_method=request.method,
    ):
        return await call_next(request)


def create_app() -> FastAPI:
    app = FastAPI(title="carenotify", lifespan=lifespan)
    setup_rate_limiter(app)
    setup_error_handlers(app)
    app.middleware("http")(logging_middleware)
    app.include_router(api_router)
    return app


handler = create_app()
