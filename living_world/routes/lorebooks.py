"""Lorebook and connection-profile listing endpoints (panel dropdown sources)."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from living_world.host import HostError

from .deps import services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/lorebooks")
async def list_lorebooks(svc=Depends(services)):
    """Names of the lorebooks available on the host."""
    try:
        names = await svc.lorebooks.list_resources()
    except HostError as e:
        logger.error("Error loading lorebooks: %s", e)
        svc.notifier.error("Failed to load lorebooks")
        raise HTTPException(502, str(e))
    logger.debug("Loaded %d lorebooks", len(names))
    return names


@router.get("/lorebooks/{name}/entries")
async def list_lorebook_entries(name: str, svc=Depends(services)):
    """Selectable entries (id + label) of one lorebook."""
    try:
        entries = await svc.lorebooks.load_resource(name)
    except HostError as e:
        logger.error("Error loading lorebook entries: %s", e)
        svc.notifier.error("Failed to load lorebook entries")
        raise HTTPException(502, str(e))
    logger.debug("Loaded %d entries", len(entries))
    return [{"id": e.id, "label": e.label} for e in entries.values()]


@router.get("/connection-profiles")
async def list_connection_profiles(svc=Depends(services)):
    """Connection profiles managed by the host."""
    try:
        profiles = await svc.profiles.list_connection_profiles()
    except HostError as e:
        logger.error("Error loading connection profiles: %s", e)
        svc.notifier.error("Failed to load connection profiles")
        raise HTTPException(502, str(e))
    logger.debug("Loaded %d connection profiles", len(profiles))
    return [p.model_dump() for p in profiles]
