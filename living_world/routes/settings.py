"""Health check, settings and notification endpoints."""

from fastapi import APIRouter, Depends

from .deps import services

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(svc=Depends(services)):
    """Get the living-world settings record (defaults backfilled)."""
    return svc.settings.get().to_record()


@router.patch("/settings")
async def update_settings(body: dict, svc=Depends(services)):
    """Update settings (shallow merge, values coerced). Persisted debounced."""
    return svc.settings.set(body).to_record()


@router.get("/notifications")
async def list_notifications(svc=Depends(services)):
    """Recent user notifications, oldest first."""
    return svc.notifier.recent()
