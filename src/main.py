import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import settings
from src.routers.health import router as health_router
from src.routers.reviews import REQUEST_ID_HEADER
from src.routers.reviews import router as reviews_router
from src.services.cache import ReviewCache

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.review_cache = ReviewCache(ttl_seconds=settings.cache_ttl_seconds)
    try:
        yield
    finally:
        app.state.review_cache.clear()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="API for scraping Google Maps reviews from a rendered browser session.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)

app.include_router(health_router)
app.include_router(reviews_router)
