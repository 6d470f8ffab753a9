from datetime import datetime
import logging

from fastapi import APIRouter, Depends
from pymongo.errors import PyMongoError

from coursehub.dependencies import get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(store=Depends(get_store)):
    """API is up if this runs; the database gets a ping"""
    record = {
        "timestamp": datetime.utcnow(),
        "status": {"api": "UP", "database": "UP"},
    }
    try:
        await store.ping()
    except PyMongoError as e:
        logger.warning(f"Database ping failed: {e}")
        record["status"]["database"] = "DOWN"
    return record
