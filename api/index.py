"""
GoMarket - Main FastAPI Application

Serves the process cart over HTTP. The cart is hydrated from durable
storage during startup and flushed on shutdown.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gomarket import __version__
from gomarket.cart import CartProvider, KeyValueStorage, get_storage
from gomarket.db import close_redis
from gomarket.logging import get_logger
from gomarket.routers import cart_router

logger = get_logger(__name__)


def create_app(storage: Optional[KeyValueStorage] = None) -> FastAPI:
    """Build the app. Storage defaults to the configured backend."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler"""
        provider = CartProvider(storage if storage is not None else get_storage())
        app.state.cart = await provider.start()
        await provider.wait_until_ready()
        logger.info("Cart ready")
        try:
            yield
        finally:
            await provider.stop()
            app.state.cart = None
            await close_redis()

    app = FastAPI(
        title="GoMarket Cart",
        description="Shopping cart state with durable write-back",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(cart_router)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        cart = getattr(app.state, "cart", None)
        return {
            "status": "ok",
            "service": "gomarket-cart",
            "cart_state": cart.state.value if cart is not None else "uninitialized",
        }

    return app


app = create_app()
