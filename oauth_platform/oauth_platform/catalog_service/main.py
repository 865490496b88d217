"""
Product catalog service - products, queries, ratings and reviews
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..common.config import Settings, settings as default_settings
from ..common.errors import register_exception_handlers
from ..common.health import build_health_router
from ..common.request_logger import RequestLoggingMiddleware, configure_logging
from .db import check_db_connection, init_db, make_engine, make_session_factory
from .routes import products, ratings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup"""
    init_db(app.state.engine)
    yield
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title="Product Catalog",
        description="Product catalog with embedded ratings and reviews",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.engine = make_engine(settings.CATALOG_DATABASE_URL)
    app.state.session_factory = make_session_factory(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware, trace_header=settings.TRACE_HEADER)
    register_exception_handlers(app)

    # ratings first: /products/top-rated must win over /products/{product_id}
    app.include_router(ratings.router)
    app.include_router(products.router)
    app.include_router(build_health_router("catalog-service", lambda: check_db_connection(app.state.engine)))
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3001)
