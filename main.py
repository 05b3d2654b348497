"""Application entry point for the Calorie Tracker API.

`create_app` is the composition root: its lifespan opens the meal store and
the shared upstream HTTP client before serving requests, and closes both on
shutdown. Handlers reach them through `app.state`.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from datetime import datetime, timezone
from typing import Optional
from contextlib import asynccontextmanager

import httpx

from core import config
from core.logger import get_logger
from core.error_handlers import register_exception_handlers
from database import MealStore
from services.estimation import EstimationGateway
from services.llm_client import ChatCompletionClient
from api.meals import router as meals_router
from api.llm import router as llm_router

logger = get_logger("main")


def create_app(
    database_url: Optional[str] = None,
    llm_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        database_url: Async SQLAlchemy URL; defaults to `DATABASE_URL`.
        llm_transport: Optional httpx transport for the upstream client
            (tests pass an `httpx.MockTransport`).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = MealStore(database_url or config.DATABASE_URL)
        await store.open()
        http_client = httpx.AsyncClient(timeout=config.LLM_TIMEOUT_SECONDS, transport=llm_transport)
        app.state.store = store
        app.state.estimator = EstimationGateway(ChatCompletionClient(http_client))
        try:
            yield
        finally:
            await http_client.aclose()
            await store.close()

    app = FastAPI(title="Calorie Tracker API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log incoming requests and their responses."""
        logger.info("%s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request error: %s %s", request.method, request.url.path)
            raise
        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        return response

    @app.get("/api/health")
    async def health():
        """Liveness probe with a server timestamp."""
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(meals_router)
    app.include_router(llm_router)
    return app


app = create_app()


if __name__ == "__main__":
    # Allow starting the app via `python ./main.py`
    try:
        import uvicorn
    except ImportError as exc:
        raise RuntimeError("uvicorn is required to run the app. Install with `pip install uvicorn[standard]`.") from exc

    uvicorn.run("main:app", host=config.HOST, port=config.PORT, reload=True)
