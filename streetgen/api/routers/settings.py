"""Settings, custom style, fantasy map and place search endpoints."""

import logging

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile

from ...errors import GeocodingError
from ...models.settings import CustomStyle, FantasyMap
from ...services.settings_service import SettingsService
from ..schemas import (
    ActivateFantasyMap,
    CustomStyleCreate,
    FantasyMapUpdate,
    PlaceResult,
    SessionSnapshot,
    SettingsUpdate,
    SettingsView,
    SuccessResponse,
)
from .session import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


def get_settings_service(request: Request) -> SettingsService:
    session = get_session(request)
    return SettingsService(session.settings, session.fantasy_storage)


def _settings_view(request: Request) -> SettingsView:
    repo = get_session(request).settings
    return SettingsView(
        has_api_key=repo.has_api_key(),
        style=repo.get_style(),
        selected_custom_style_id=repo.get_selected_custom_style_id(),
        aspect_ratio=repo.get_aspect_ratio(),
        image_size=repo.get_image_size(),
        map_mode=repo.get_map_mode(),
        custom_styles=repo.get_custom_styles(),
        active_fantasy_map_id=repo.get_active_fantasy_map_id(),
    )


# =============================================================================
# Settings
# =============================================================================


@router.get("/settings", response_model=SettingsView)
async def get_settings(request: Request):
    """Get the current settings (without the API key)."""
    return _settings_view(request)


@router.put("/settings", response_model=SettingsView)
async def update_settings(request: Request, update: SettingsUpdate):
    """Save the settings form."""
    status = get_settings_service(request).save_settings(
        api_key=update.api_key,
        style=update.style,
        custom_style_id=update.selected_custom_style_id,
        aspect_ratio=update.aspect_ratio,
        image_size=update.image_size,
    )
    if not status.success:
        raise HTTPException(status_code=400, detail=status.message)

    get_session(request).refresh_can_generate()
    return _settings_view(request)


# =============================================================================
# Custom styles
# =============================================================================


@router.get("/styles", response_model=list[CustomStyle])
async def list_custom_styles(request: Request):
    """List user-defined styles."""
    return get_session(request).settings.get_custom_styles()


@router.post("/styles", response_model=CustomStyle, status_code=201)
async def create_custom_style(request: Request, body: CustomStyleCreate):
    """Create a custom style."""
    style = get_settings_service(request).save_custom_style(body.name, body.prompt)
    if style is None:
        raise HTTPException(status_code=400, detail="Name and prompt are required")
    return style


@router.put("/styles/{style_id}", response_model=CustomStyle)
async def update_custom_style(request: Request, style_id: str, body: CustomStyleCreate):
    """Update a custom style."""
    if get_session(request).settings.get_custom_style_by_id(style_id) is None:
        raise HTTPException(status_code=404, detail=f"Style '{style_id}' not found")
    style = get_settings_service(request).save_custom_style(body.name, body.prompt, existing_id=style_id)
    if style is None:
        raise HTTPException(status_code=400, detail="Name and prompt are required")
    return style


@router.delete("/styles/{style_id}", response_model=SuccessResponse)
async def delete_custom_style(request: Request, style_id: str):
    """Delete a custom style. A selected style falls back to Realistic."""
    session = get_session(request)
    if session.settings.get_custom_style_by_id(style_id) is None:
        raise HTTPException(status_code=404, detail=f"Style '{style_id}' not found")
    get_settings_service(request).delete_custom_style(style_id)
    return SuccessResponse(message=f"Style '{style_id}' deleted")


# =============================================================================
# Fantasy maps
# =============================================================================


@router.get("/maps", response_model=list[FantasyMap])
async def list_fantasy_maps(request: Request):
    """List imported fantasy maps."""
    return get_session(request).settings.get_fantasy_maps()


@router.post("/maps", response_model=FantasyMap, status_code=201)
async def create_fantasy_map(
    request: Request,
    name: str = Form(...),
    world_context: str = Form(""),
    file: UploadFile = File(...),
):
    """Import a fantasy map image."""
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")

    data = await file.read()
    fantasy_map = get_settings_service(request).save_fantasy_map(name, world_context, image_source=data)
    if fantasy_map is None:
        raise HTTPException(status_code=400, detail="A name and a readable image are required")
    return fantasy_map


@router.put("/maps/{map_id}", response_model=FantasyMap)
async def update_fantasy_map(request: Request, map_id: str, body: FantasyMapUpdate):
    """Rename a fantasy map or edit its world context."""
    session = get_session(request)
    if session.settings.get_fantasy_map_by_id(map_id) is None:
        raise HTTPException(status_code=404, detail=f"Map '{map_id}' not found")

    fantasy_map = get_settings_service(request).save_fantasy_map(
        body.name, body.world_context, existing_id=map_id
    )
    if fantasy_map is None:
        raise HTTPException(status_code=400, detail="Name is required")

    active = session.active_fantasy_map.value
    if active is not None and active.id == map_id:
        await session.reload_active_fantasy_map()
    return fantasy_map


@router.delete("/maps/{map_id}", response_model=SuccessResponse)
async def delete_fantasy_map(request: Request, map_id: str):
    """Delete a fantasy map and its stored image."""
    session = get_session(request)
    if session.settings.get_fantasy_map_by_id(map_id) is None:
        raise HTTPException(status_code=404, detail=f"Map '{map_id}' not found")

    get_settings_service(request).delete_fantasy_map(map_id)
    active = session.active_fantasy_map.value
    if active is not None and active.id == map_id:
        await session.activate_fantasy_map(None)
    return SuccessResponse(message=f"Map '{map_id}' deleted")


@router.post("/maps/activate", response_model=SessionSnapshot)
async def activate_fantasy_map(request: Request, body: ActivateFantasyMap):
    """Choose the fantasy map to explore (or none)."""
    session = get_session(request)
    try:
        await session.activate_fantasy_map(body.map_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Map '{body.map_id}' not found")
    return SessionSnapshot.from_session(session)


# =============================================================================
# Place search
# =============================================================================


@router.get("/search", response_model=PlaceResult)
async def search_place(request: Request, q: str = Query(..., description="Address or place name")):
    """Find a place to center the real-world map on."""
    geocoder = request.app.state.geocoder
    if geocoder is None:
        raise HTTPException(status_code=503, detail="Place search not available")

    try:
        location = await geocoder.search(q)
    except GeocodingError as e:
        raise HTTPException(status_code=502, detail=str(e))

    if location is not None:
        session = get_session(request)
        session.set_map_state(location, session.map_zoom)
    return PlaceResult(query=q, found=location is not None, location=location)
