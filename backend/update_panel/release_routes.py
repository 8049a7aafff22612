"""
Release routes: public version polling, artifact download and the
owner-only publish/revert/delete endpoints.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse

from update_panel.auth import get_identity, require_owner
from update_panel.errors import InvalidInput, NotFound, PanelError
from update_panel.release_models import ReleaseModel, RevertResponse, TrashEntry, VersionResponse
from update_panel.versioning import bump_version

logger = logging.getLogger(__name__)

router = APIRouter(tags=["releases"])


def _download_url(request: Request, filename: str) -> str:
    base_url = request.app.state.settings.public_base_url or str(request.base_url)
    return f"{base_url.rstrip('/')}/uploads/{quote(filename)}"


def _suggest_next(latest: Optional[str]) -> Optional[str]:
    try:
        return bump_version(latest)
    except InvalidInput:
        return None


# ---------- Public ----------

@router.get("/")
async def index(request: Request, identity: Optional[Dict[str, Any]] = Depends(get_identity)):
    """Landing info: advertised version and who is logged in."""
    registry = await request.app.state.registry.load()
    return {"version": registry.latest, "releases": len(registry.items), "user": identity}


@router.get("/api/version", response_model=VersionResponse)
async def get_version(request: Request, bot_id: Optional[str] = None, version: Optional[str] = None):
    """Latest version and download URL for polling bots.

    Every call counts as a poll and updates the caller's telemetry record.
    """
    state = request.app.state
    try:
        release = await state.registry.latest_release()
        latest = release.version if release else None

        outcome = await state.telemetry.record_poll(bot_id, version, latest)
        if outcome.notify_obsolete:
            state.notifier.dispatch(state.notifier.notify_obsolete(bot_id, outcome.reported_version, latest))

        if release is None:
            return VersionResponse(version=None, download=None, message="No release published yet")

        return VersionResponse(
            version=release.version,
            download=_download_url(request, release.filename),
            message="Latest version available",
        )

    except PanelError:
        raise
    except Exception as e:
        logger.error(f"Failed to answer version poll: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail=f"Release service unavailable: {e}")


@router.get("/api/releases", response_model=List[ReleaseModel])
async def list_releases(request: Request):
    """All releases in numeric-aware version order."""
    try:
        return await request.app.state.registry.list_releases(order="version")
    except PanelError:
        raise
    except Exception as e:
        logger.error(f"Failed to list releases: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail=f"Release service unavailable: {e}")


@router.get("/uploads/{filename}", name="download_artifact")
async def download_artifact(request: Request, filename: str):
    path = request.app.state.artifacts.path_for(filename)
    return FileResponse(path, media_type="application/zip", filename=filename)


@router.get("/api/health")
async def health(request: Request):
    """Check that the configured store is reachable."""
    if not await request.app.state.store.ping():
        raise HTTPException(status_code=503, detail="Store is not reachable")
    return {"status": "ok", "store": request.app.state.settings.store_backend}


# ---------- Owner only ----------

@router.post("/upload")
async def upload_release(
    request: Request,
    identity: Dict[str, Any] = Depends(require_owner),
    version: Optional[str] = Form(None),
    notes: str = Form(""),
    artifact: Optional[UploadFile] = File(None, alias="zip"),
):
    """Store a ZIP and publish it as the latest version."""
    try:
        release, replaced = await request.app.state.uploads.handle_upload(
            version,
            notes,
            artifact.filename if artifact else None,
            artifact.file if artifact else None,
        )
    finally:
        if artifact is not None:
            await artifact.close()

    logger.info(f"User {identity.get('id')} uploaded {release.version} (replaced={replaced})")
    return RedirectResponse("/dashboard", status_code=302)


@router.post("/releases/{version}/revert", response_model=RevertResponse)
async def revert_release(request: Request, version: str, identity: Dict[str, Any] = Depends(require_owner)):
    """Advertise an older release again without re-uploading it."""
    state = request.app.state
    try:
        release = await state.registry.revert(version)
    except NotFound as e:
        return JSONResponse(status_code=404, content=RevertResponse(ok=False, error=e.message).model_dump())

    state.notifier.dispatch(state.notifier.notify_revert(release))
    return RevertResponse(ok=True, latest=release.version)


@router.post("/delete/{version}")
async def delete_release(request: Request, version: str, identity: Dict[str, Any] = Depends(require_owner)):
    """Remove a release and its artifact; it is kept in the trash list."""
    state = request.app.state
    release = await state.registry.get(version)
    state.artifacts.delete(release.filename)
    await state.registry.delete(version)
    return RedirectResponse("/dashboard", status_code=302)


@router.get("/dashboard")
async def dashboard(request: Request, identity: Dict[str, Any] = Depends(require_owner)):
    """Owner overview: releases newest first, poll stats and bot records."""
    state = request.app.state
    registry = await state.registry.load()
    stats = await state.store.load_stats()
    summary = await state.telemetry.summary(registry.latest)

    return {
        "user": identity,
        "latest": registry.latest,
        "suggestedNext": _suggest_next(registry.latest),
        "releases": [
            release.model_dump(mode="json", by_alias=True)
            for release in await state.registry.list_releases(order="created")
        ],
        "stats": {
            "downloads": stats.downloads,
            **summary.model_dump(by_alias=True),
        },
        "bots": {
            bot_id: record.model_dump(mode="json", by_alias=True)
            for bot_id, record in sorted(stats.bots.items(), key=lambda kv: kv[1].last_check, reverse=True)
        },
    }


@router.get("/api/trash", response_model=List[TrashEntry])
async def list_trash(request: Request, identity: Dict[str, Any] = Depends(require_owner)):
    return await request.app.state.store.list_trash()
