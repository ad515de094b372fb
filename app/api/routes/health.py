from fastapi import APIRouter, Depends

from app.api.deps import get_baseline_store
from app.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(store=Depends(get_baseline_store)):
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "Speech Biomarkers API",
        "version": "1.0.0",
        "timezone": settings.timezone or "local",
        "baselines": len(store.user_ids()),
    }
