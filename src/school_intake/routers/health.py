import time

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, text

from school_intake.models.database import get_db

health = APIRouter()


@health.get("/api/health")
async def health_check():
    """Basic health check endpoint"""
    return {"status": "ok", "timestamp": int(time.time())}


@health.get("/api/health/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """Health check including database connectivity"""
    health_status = {
        "status": "ok",
        "timestamp": int(time.time()),
        "checks": {},
    }

    try:
        result = db.exec(text("SELECT 1")).first()
        health_status["checks"]["database"] = "ok" if result else "unhealthy"
    except Exception as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
