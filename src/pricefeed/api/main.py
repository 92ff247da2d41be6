import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from pricefeed.api.jobs import router as jobs_router
from pricefeed.api.mappings import router as mappings_router
from pricefeed.api.prices import router as prices_router
from pricefeed.container import Container
from pricefeed.exceptions import (
    DuplicateMappingError,
    JobConflictError,
    NotFoundError,
    PriceFeedError,
    ValidationError,
)

logger = logging.getLogger("pricefeed.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = Container()
    app.state.container = container
    runner = container.job_runner()
    await runner.recover()
    yield
    await runner.shutdown()
    await container.http_client().close()
    engine = container.engine()
    await engine.dispose()


app = FastAPI(title="pricefeed", version="0.1.0", lifespan=lifespan)

_STATUS_BY_ERROR: list[tuple[type[PriceFeedError], int]] = [
    (DuplicateMappingError, 409),
    (JobConflictError, 409),
    (ValidationError, 422),
    (NotFoundError, 404),
]


@app.exception_handler(PriceFeedError)
async def price_feed_error_handler(request: Request, exc: PriceFeedError):
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    logger.warning("Engine error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled error on %s %s:\n%s", request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(mappings_router)
app.include_router(jobs_router)
app.include_router(prices_router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}
