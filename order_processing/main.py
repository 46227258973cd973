import sys
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from order_processing.config import settings
from order_processing.database import engine
from order_processing.infrastructure.db_schema import metadata
from order_processing.presentation.api import router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Tables created")

    yield

    await engine.dispose()
    logger.info("Application stopped")


app = FastAPI(
    title="Order Processing Service",
    description="Places orders against the product catalog and payment services",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/order")


@app.get("/health")
async def health():
    return {"status": "healthy"}
