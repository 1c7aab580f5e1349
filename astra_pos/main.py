from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from astra_pos.config import get_settings
from astra_pos.database import Database
from astra_pos.api import advisor, health, products, reports, sales, terminals, users
from astra_pos.services.auth_service import TerminalRegistry
from astra_pos.services.product_service import ProductService
from astra_pos.utils.cache import CacheService, cache_service

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(database: Database = None, cache: CacheService = None) -> FastAPI:
    """
    Build the API around one ledger store.

    Args:
        database: The store to serve; a new one from DATABASE_URL by default
        cache: Cache for projections; the Redis-backed singleton by default
    """
    database = database or Database()
    cache = cache or cache_service

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup and shutdown events.
        """
        # Startup
        logger.info("Starting up application...")

        logger.info("Creating database tables...")
        database.create_all()
        logger.info("Database tables created successfully")

        if settings.SEED_DEMO_CATALOG:
            ProductService(database, cache=cache).seed_demo_catalog()

        yield

        # Shutdown
        logger.info("Shutting down application...")

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
        Point-of-sale backend with:

        - **Catalog**: Products with price and stock
        - **Directory**: Owner and cashier accounts with 4-digit PINs
        - **Terminals**: Per-terminal setup, PIN login and logout
        - **Sales**: All-or-nothing sale commits that never oversell
        - **Reports**: Dashboard and period summaries, cached in Redis
        - **Advisor**: AI business insights computed in a Celery worker

        ## Stock safety
        Every sale validates all of its lines, decrements stock and appends
        to the sale history as one serializable step. When two terminals
        race for the last unit, exactly one sale goes through.

        ## Terminals
        Mutating requests name their terminal in the `X-Terminal-Id` header;
        the user signed in at that terminal is the acting user.
        """,
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.database = database
    app.state.cache = cache
    app.state.terminals = TerminalRegistry(database)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(terminals.router, prefix="/api/v1")
    app.include_router(products.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(sales.router, prefix="/api/v1")
    app.include_router(reports.router, prefix="/api/v1")
    app.include_router(advisor.router, prefix="/api/v1")

    @app.get("/", tags=["Root"])
    def root():
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": "1.0.0",
            "docs": "/docs",
            "redoc": "/redoc",
            "health": "/api/v1/health"
        }

    return app


app = create_app()
