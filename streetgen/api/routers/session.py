"""Map session endpoints: selection, gestures and generation."""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response

from ...errors import GenerationBusyError
from ...models.generation import RequirementHint
from ...models.settings import MapMode
from ...services.gesture_service import GestureController
from ...services.map_session import MapSession
from ...utils.surface import SurfaceProjection
from ..schemas import (
    DirectionUpdate,
    GenerationStarted,
    GestureEvent,
    GestureResult,
    ModeUpdate,
    PointUpdate,
    SaveImageResponse,
    SessionSnapshot,
    SuccessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_session(request: Request) -> MapSession:
    """Get the session served by this app."""
    session = request.app.state.session
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized")
    return session


def get_gestures(request: Request, projection: SurfaceProjection) -> GestureController:
    """Get the gesture controller, pointed at the client's current viewport."""
    session = get_session(request)
    gestures = getattr(request.app.state, "gestures", None)
    if gestures is None or gestures.session is not session:
        gestures = GestureController(session, projection)
        request.app.state.gestures = gestures
    gestures.projection = projection
    return gestures


def _projection_for(session: MapSession, event: GestureEvent) -> SurfaceProjection:
    if session.mode == MapMode.FANTASY:
        if event.image is None:
            raise HTTPException(status_code=422, detail="An image viewport is required in fantasy mode")
        return event.image
    if event.geo is None:
        raise HTTPException(status_code=422, detail="A map viewport is required in real-world mode")
    return event.geo


def _require_position(event: GestureEvent) -> tuple[float, float]:
    if event.x is None or event.y is None:
        raise HTTPException(status_code=422, detail="x and y are required")
    return event.x, event.y


@router.get("", response_model=SessionSnapshot)
async def get_snapshot(request: Request):
    """Get the current session state."""
    return SessionSnapshot.from_session(get_session(request))


@router.put("/mode", response_model=SessionSnapshot)
async def set_mode(request: Request, update: ModeUpdate):
    """Switch between the real-world and fantasy surfaces."""
    session = get_session(request)
    session.set_map_mode(update.mode)
    return SessionSnapshot.from_session(session)


# =============================================================================
# Gestures
# =============================================================================


@router.post("/gesture/press", response_model=GestureResult)
async def gesture_press(request: Request, event: GestureEvent):
    """Press on the surface: grab the marker or place a new point."""
    session = get_session(request)
    x, y = _require_position(event)
    gestures = get_gestures(request, _projection_for(session, event))
    handled = gestures.press(x, y)
    return GestureResult(handled=handled, snapshot=SessionSnapshot.from_session(session))


@router.post("/gesture/move", response_model=GestureResult)
async def gesture_move(request: Request, event: GestureEvent):
    """Drag: update the live direction."""
    session = get_session(request)
    x, y = _require_position(event)
    gestures = get_gestures(request, _projection_for(session, event))
    direction = gestures.move(x, y)
    return GestureResult(
        handled=direction is not None,
        direction=direction,
        snapshot=SessionSnapshot.from_session(session),
    )


@router.post("/gesture/release", response_model=GestureResult)
async def gesture_release(request: Request, event: GestureEvent):
    """Release: commit the direction."""
    session = get_session(request)
    gestures = get_gestures(request, _projection_for(session, event))
    direction = gestures.release(event.x, event.y)
    return GestureResult(
        handled=direction is not None,
        direction=direction,
        snapshot=SessionSnapshot.from_session(session),
    )


# =============================================================================
# Direct selection
# =============================================================================


@router.put("/point", response_model=SessionSnapshot)
async def set_point(request: Request, update: PointUpdate):
    """Place the viewer at a known position."""
    session = get_session(request)
    point = update.fantasy if session.mode == MapMode.FANTASY else update.geo
    if point is None:
        raise HTTPException(status_code=422, detail=f"A {session.mode.value} point is required")
    session.place_point(point)
    return SessionSnapshot.from_session(session)


@router.put("/direction", response_model=SessionSnapshot)
async def set_direction(request: Request, update: DirectionUpdate):
    """Set the viewing direction in degrees."""
    session = get_session(request)
    try:
        session.set_direction(update.degrees)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SessionSnapshot.from_session(session)


@router.post("/clear", response_model=SessionSnapshot)
async def clear_selection(request: Request):
    """Clear the selection of the active surface and reset generation."""
    session = get_session(request)
    session.clear_selection()
    return SessionSnapshot.from_session(session)


# =============================================================================
# Generation
# =============================================================================


@router.post("/generate", response_model=GenerationStarted, status_code=202)
async def start_generation(
    request: Request,
    file: Optional[UploadFile] = File(None),
    custom_prompt: Optional[str] = Form(None),
    satellite: bool = Form(False),
):
    """Start generating a street view.

    In real-world mode the client uploads a capture of the map around the
    selected point. In fantasy mode the active fantasy map is used.
    """
    session = get_session(request)

    source_image = None
    if file is not None:
        if file.content_type and not file.content_type.startswith("image/"):
            raise HTTPException(status_code=400, detail="File must be an image")
        source_image = await file.read()

    # A missing key is reported through the generation state
    hint = session.requirement_hint.value
    if hint not in (RequirementHint.API_KEY, RequirementHint.READY):
        raise HTTPException(status_code=409, detail=hint.message)

    try:
        job_id = session.start_generation(source_image, custom_prompt, satellite)
    except GenerationBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return GenerationStarted(job_id=job_id, snapshot=SessionSnapshot.from_session(session))


@router.post("/cancel", response_model=SuccessResponse)
async def cancel_generation(request: Request):
    """Cancel the generation in flight."""
    session = get_session(request)
    if not session.cancel_generation():
        return SuccessResponse(success=False, message="No generation in progress")
    return SuccessResponse(message="Generation cancelled")


@router.get("/image")
async def get_generated_image(request: Request):
    """Get the last generated image as PNG."""
    image = get_session(request).orchestrator.current_image
    if image is None:
        raise HTTPException(status_code=404, detail="No generated image")
    return Response(content=image, media_type="image/png")


@router.post("/save", response_model=SaveImageResponse)
async def save_image(request: Request):
    """Save the last generated image to the gallery."""
    session = get_session(request)
    result, path = await session.save_current_image()
    if result is None:
        raise HTTPException(status_code=404, detail="No generated image")
    return SaveImageResponse(result=result.value, path=str(path) if path else None)
