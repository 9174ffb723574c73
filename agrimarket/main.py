# agrimarket/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
import uvicorn

from agrimarket.api.routers import auth, products, customer, farmer, health
from agrimarket.data.database import Base, engine
import agrimarket.data.models  # noqa: F401  (registers every model in Base.metadata)
from agrimarket.domain.errors import MarketError, Unavailable
from agrimarket.utils.settings import CORS_ORIGINS, BACKEND_RETRY_AFTER_SECONDS
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


async def market_error_handler(request: Request, exc: MarketError):
    body = {"error": exc.message}
    headers = None
    if isinstance(exc, Unavailable) and exc.retry_after is not None:
        body["retryAfter"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.details:
        body.update(exc.details)

    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def database_error_handler(request: Request, exc: OperationalError):
    # connection loss, connect or statement timeout
    logger.error(f"Database unavailable on {request.method} {request.url.path}: {exc.orig}")
    return await market_error_handler(
        request,
        Unavailable(
            "Service temporarily unavailable. Please try again later.",
            retry_after=BACKEND_RETRY_AFTER_SECONDS,
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def create_app() -> FastAPI:
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready, tables: {sorted(Base.metadata.tables)}")

    app = FastAPI(
        title="Agrimarket",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MarketError, market_error_handler)
    app.add_exception_handler(OperationalError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(customer.router)
    app.include_router(farmer.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
