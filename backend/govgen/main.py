import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from govgen import __version__
from govgen.config import settings
from govgen.database import engine
from govgen.errors import GovGenError
from govgen.middleware.logging_config import configure_logging

configure_logging(settings.log_level, settings.log_format)

from govgen.api.documents import router as documents_router  # noqa: E402
from govgen.api.generations import router as generations_router  # noqa: E402
from govgen.api.health import router as health_router  # noqa: E402
from govgen.api.metrics import router as metrics_router  # noqa: E402
from govgen.middleware.metrics import PrometheusMiddleware  # noqa: E402
from govgen.middleware.request_context import RequestContextMiddleware  # noqa: E402

logger = logging.getLogger("govgen")


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info(
        "govgen %s up (%s, provider=%s model=%s)",
        __version__, settings.environment, settings.llm_provider, settings.llm_model,
    )
    yield
    await engine.dispose()


app = FastAPI(
    title="Governed Code Generation",
    description="Governance-grounded code, test and compliance generation pipeline",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(PrometheusMiddleware)


@app.exception_handler(GovGenError)
async def govgen_error_handler(request: Request, exc: GovGenError):
    logger.warning("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    content = {"detail": exc.message, "error": exc.kind}
    # Model output that broke its contract goes back to the caller verbatim.
    raw_text = getattr(exc, "raw_text", None)
    if raw_text is not None:
        content["raw_text"] = raw_text
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    content = {"detail": "Internal Server Error", "error": "internal_error"}
    if settings.environment == "development":
        content["detail"] = f"{type(exc).__name__}: {exc}"
        content["traceback"] = traceback.format_exc().splitlines()[-5:]
    return JSONResponse(status_code=500, content=content)


app.include_router(health_router)
app.include_router(documents_router)
app.include_router(generations_router)
app.include_router(metrics_router)
