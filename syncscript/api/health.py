"""
Health check endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import time
import psutil
from datetime import datetime
from typing import Dict, Any

from syncscript.api.deps import get_services
from syncscript.db.database import get_db
from syncscript.services.container import ServiceContainer

router = APIRouter(tags=["health"])


@router.get("/health", response_model=Dict[str, Any])
async def basic_health_check(services: ServiceContainer = Depends(get_services)):
    """
    Basic health check endpoint for load balancers
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": services.settings.app_name,
        "version": services.settings.app_version
    }


@router.get("/health/detailed", response_model=Dict[str, Any])
async def detailed_health_check(
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Detailed health check with the store, cache and channel
    """
    settings = services.settings
    health_status = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {}
    }
    
    # Database connectivity check
    try:
        start_time = time.time()
        db.execute(text("SELECT 1"))
        db_response_time = (time.time() - start_time) * 1000
        health_status["checks"]["database"] = {
            "status": "healthy",
            "response_time_ms": round(db_response_time, 2)
        }
    except SQLAlchemyError as e:
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "error": str(e)
        }
        health_status["status"] = "unhealthy"
    
    # The cache only affects latency, so a failure degrades rather than fails
    if services.cache is None:
        health_status["checks"]["cache"] = {"status": "disabled"}
    else:
        start_time = time.time()
        reachable = await services.cache.ping()
        health_status["checks"]["cache"] = {
            "status": "healthy" if reachable else "unhealthy",
            "response_time_ms": round((time.time() - start_time) * 1000, 2)
        }
        if not reachable and health_status["status"] == "healthy":
            health_status["status"] = "degraded"
    
    health_status["checks"]["storage"] = {
        "status": "configured" if services.storage.configured else "not_configured"
    }
    health_status["checks"]["channel"] = {"status": "healthy", **services.channel.get_statistics()}
    
    memory = psutil.virtual_memory()
    health_status["checks"]["system"] = {
        "memory_usage_percent": memory.percent,
        "cpu_count": psutil.cpu_count()
    }
    
    return health_status
