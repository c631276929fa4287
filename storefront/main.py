# storefront/main.py
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from storefront.data.database import init_db
from storefront.api.routers import (
    health,
    users,
    cart,
    orders,
    checkout,
    webhooks,
    products,
    saved_lists,
)
from storefront.utils.logging import get_logger, REQUEST_ID_CTX

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    init_db()
    yield


def create_app(init_database: bool = True) -> FastAPI:
    app = FastAPI(
        title="Procurement Storefront",
        version="1.0.0",
        lifespan=lifespan if init_database else None,
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = REQUEST_ID_CTX.set(rid)
        try:
            response = await call_next(request)
        finally:
            logger.info("request handled", extra={"path": request.url.path, "method": request.method})
            REQUEST_ID_CTX.reset(token)
        response.headers["X-Request-ID"] = rid
        return response

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(cart.router)
    app.include_router(orders.router)
    app.include_router(checkout.router)
    app.include_router(webhooks.router)
    app.include_router(products.router)
    app.include_router(saved_lists.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
