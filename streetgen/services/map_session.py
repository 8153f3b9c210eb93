"""Interactive session state: selection, mode, fantasy map and generation.

MapSession is the single owner of the selection states and the generation
state for one user session. Front ends (CLI, HTTP API, WebSocket) read its
observables and call its operations; nothing else mutates the state.
"""

import asyncio
import base64
import logging
from pathlib import Path
from typing import Any, Optional, Union

from ..config import AppConfig
from ..models.generation import (
    Error,
    FantasyLocation,
    GenerationRequest,
    GenerationState,
    Loading,
    RealWorldLocation,
    RequirementHint,
    SaveResult,
    Success,
)
from ..models.geo import FantasyPoint, GeoPoint
from ..models.settings import FantasyMap, MapMode
from ..utils.geo_utils import compass_name_16
from ..utils.observable import Observable
from .gemini_service import GeminiService
from .generation_service import GenerationOrchestrator
from .selection_service import AnySelection, fantasy_selection, real_world_selection, requirement_hint
from .settings_service import SettingsRepository, YamlFileStore
from .storage_service import FantasyMapStorage, GalleryService

logger = logging.getLogger(__name__)

Point = Union[GeoPoint, FantasyPoint]


class MapSession:
    """View-model for the map screen."""

    def __init__(
        self,
        settings: SettingsRepository,
        orchestrator: GenerationOrchestrator,
        fantasy_storage: FantasyMapStorage,
        gallery: GalleryService,
    ):
        self.settings = settings
        self.orchestrator = orchestrator
        self.fantasy_storage = fantasy_storage
        self.gallery = gallery

        self.selections: dict[MapMode, AnySelection] = {
            MapMode.REAL_WORLD: real_world_selection(),
            MapMode.FANTASY: fantasy_selection(),
        }
        self._fantasy_image: Optional[bytes] = None

        self.map_mode: Observable[MapMode] = Observable(settings.get_map_mode())
        self.active_fantasy_map: Observable[Optional[FantasyMap]] = Observable(None)
        self.selection_changed: Observable[int] = Observable(0)
        self.can_generate: Observable[bool] = Observable(False)
        self.requirement_hint: Observable[RequirementHint] = Observable(RequirementHint.LOCATION)
        self.save_result: Observable[Optional[SaveResult]] = Observable(None)

        # Center and zoom of the real-world map; clients recenter when it changes
        self.map_view: Observable[tuple[GeoPoint, float]] = Observable(
            (GeoPoint(latitude=37.7749, longitude=-122.4194), 15.0)
        )

        self.refresh_can_generate()

    @classmethod
    def from_config(cls, config: AppConfig) -> "MapSession":
        """Wire up a session backed by the files and endpoints in `config`."""
        gemini = GeminiService(model=config.gemini_model, base_url=config.gemini_base_url)
        return cls(
            settings=SettingsRepository(YamlFileStore(config.settings_file)),
            orchestrator=GenerationOrchestrator(gemini, max_source_size=config.max_source_size),
            fantasy_storage=FantasyMapStorage(config.fantasy_maps_dir),
            gallery=GalleryService(config.pictures_dir),
        )

    async def aclose(self) -> None:
        await self.orchestrator.aclose()

    # -- derived state --------------------------------------------------------

    @property
    def generation_state(self) -> Observable[GenerationState]:
        return self.orchestrator.state

    @property
    def mode(self) -> MapMode:
        return self.map_mode.value

    @property
    def selection(self) -> AnySelection:
        """Selection of the active mode."""
        return self.selections[self.mode]

    @property
    def map_center(self) -> GeoPoint:
        return self.map_view.value[0]

    @property
    def map_zoom(self) -> float:
        return self.map_view.value[1]

    @property
    def fantasy_image(self) -> Optional[bytes]:
        return self._fantasy_image

    @property
    def fantasy_map_ready(self) -> bool:
        return self.active_fantasy_map.value is not None and self._fantasy_image is not None

    def refresh_can_generate(self) -> None:
        """Recompute the gate; call after settings change."""
        hint = requirement_hint(
            self.mode,
            self.selection,
            has_credential=self.settings.has_api_key(),
            fantasy_map_ready=self.fantasy_map_ready,
        )
        self.requirement_hint.set(hint)
        self.can_generate.set(hint == RequirementHint.READY)

    def _selection_changed(self) -> None:
        self.selection_changed.set(self.selection_changed.value + 1)
        self.refresh_can_generate()

    # -- mode and fantasy map -------------------------------------------------

    def set_map_mode(self, mode: MapMode) -> None:
        """Switch surfaces. Both selections are kept."""
        self.settings.save_map_mode(mode)
        self.map_mode.set(mode)
        self.refresh_can_generate()

    def set_map_state(self, center: GeoPoint, zoom: float) -> None:
        self.map_view.set((center, zoom))

    async def reload_active_fantasy_map(self) -> Optional[FantasyMap]:
        """Restore the persisted active fantasy map and its image."""
        fantasy_map = self.settings.get_active_fantasy_map()
        image = None
        if fantasy_map is not None:
            image = await asyncio.to_thread(self.fantasy_storage.load_map_bytes, fantasy_map.image_path)
        self._fantasy_image = image
        self.active_fantasy_map.set(fantasy_map)
        self.refresh_can_generate()
        return fantasy_map

    async def activate_fantasy_map(self, map_id: Optional[str]) -> Optional[FantasyMap]:
        """
        Make a fantasy map active (or deactivate with None).

        Clears the fantasy selection, since positions refer to the old image.

        Raises:
            KeyError: If no map has this id
        """
        fantasy_map = None
        image = None
        if map_id is not None:
            fantasy_map = self.settings.get_fantasy_map_by_id(map_id)
            if fantasy_map is None:
                raise KeyError(map_id)
            image = await asyncio.to_thread(self.fantasy_storage.load_map_bytes, fantasy_map.image_path)

        self.settings.save_active_fantasy_map_id(map_id)
        self._fantasy_image = image
        self.active_fantasy_map.set(fantasy_map, force=True)
        self.selections[MapMode.FANTASY].clear()
        self._selection_changed()
        logger.info("Active fantasy map: %s", fantasy_map.name if fantasy_map else None)
        return fantasy_map

    # -- selection ------------------------------------------------------------

    def _selection_for(self, point: Point) -> AnySelection:
        expected = FantasyPoint if self.mode == MapMode.FANTASY else GeoPoint
        if not isinstance(point, expected):
            raise ValueError(f"{type(point).__name__} cannot be used in {self.mode.value} mode")
        return self.selection

    def place_point(self, point: Point) -> None:
        self._selection_for(point).place_point(point)
        self._selection_changed()

    def begin_drag(self) -> None:
        self.selection.begin_drag()

    def drag_to(self, point: Point) -> Optional[int]:
        """Live direction while aiming; does not change the gate."""
        return self._selection_for(point).drag_to(point)

    def end_drag(self, point: Optional[Point] = None) -> Optional[int]:
        if point is not None:
            self._selection_for(point)
        direction = self.selection.end_drag(point)
        self._selection_changed()
        return direction

    def cancel_drag(self) -> None:
        self.selection.cancel_drag()

    def set_direction(self, degrees: float) -> int:
        direction = self.selection.set_direction(degrees)
        self._selection_changed()
        return direction

    def aim_at(self, point: Point) -> int:
        direction = self._selection_for(point).aim_at(point)
        self._selection_changed()
        return direction

    def clear_selection(self) -> None:
        """Remove point and direction of the active mode and reset generation."""
        self.selection.clear()
        self.orchestrator.reset()
        self._selection_changed()

    # -- generation -----------------------------------------------------------

    def build_request(
        self,
        source_image: Optional[bytes] = None,
        custom_prompt: Optional[str] = None,
        satellite: bool = False,
    ) -> Optional[GenerationRequest]:
        """
        Assemble a request from the current selection and settings.

        Args:
            source_image: Capture of the real-world map (ignored in fantasy mode)
            custom_prompt: Free-text instruction from the user
            satellite: Whether the capture shows satellite imagery

        Returns:
            The request, or None if the selection is incomplete

        Raises:
            ValueError: If no map capture is given in real-world mode
        """
        selection = self.selection
        if not selection.is_complete:
            return None

        if self.mode == MapMode.FANTASY:
            fantasy_map = self.active_fantasy_map.value
            if fantasy_map is None or self._fantasy_image is None:
                return None
            location = FantasyLocation(
                map_name=fantasy_map.name,
                world_context=fantasy_map.world_context,
                point=selection.point,
            )
            source = self._fantasy_image
        else:
            if source_image is None:
                raise ValueError("A capture of the map is required in real-world mode")
            location = RealWorldLocation(point=selection.point, satellite=satellite)
            source = source_image

        return GenerationRequest(
            location=location,
            direction=selection.direction,
            source_image=source,
            style=self.settings.get_style(),
            custom_style_text=self.settings.get_selected_custom_style_text(),
            custom_prompt=custom_prompt.strip() if custom_prompt else None,
            aspect_ratio=self.settings.get_aspect_ratio(),
            image_size=self.settings.get_image_size(),
        )

    def start_generation(
        self,
        source_image: Optional[bytes] = None,
        custom_prompt: Optional[str] = None,
        satellite: bool = False,
    ) -> Optional[int]:
        """Start generating in the background; returns the job id if issued."""
        request = self.build_request(source_image, custom_prompt, satellite)
        if request is None:
            logger.info("Generate ignored: %s", self.requirement_hint.value.message)
            return None
        return self.orchestrator.start(request, self.settings.get_api_key())

    async def generate(
        self,
        source_image: Optional[bytes] = None,
        custom_prompt: Optional[str] = None,
        satellite: bool = False,
    ) -> GenerationState:
        """Generate and wait for the outcome."""
        request = self.build_request(source_image, custom_prompt, satellite)
        if request is None:
            return self.generation_state.value
        return await self.orchestrator.generate(request, self.settings.get_api_key())

    def cancel_generation(self) -> bool:
        return self.orchestrator.cancel()

    async def save_current_image(self) -> tuple[Optional[SaveResult], Optional[Path]]:
        """Save the last generated image to the gallery."""
        image = self.orchestrator.current_image
        if image is None:
            return None, None
        result, path = await asyncio.to_thread(self.gallery.save, image)
        self.save_result.set(result, force=True)
        return result, path

    def clear_save_result(self) -> None:
        self.save_result.set(None)

    # -- snapshot -------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the session for front ends."""
        selection = self.selection
        direction = selection.direction
        fantasy_map = self.active_fantasy_map.value
        state = self.generation_state.value

        generation: dict[str, Any] = {"status": state.name}
        if isinstance(state, Loading):
            generation["job_id"] = state.job_id
        elif isinstance(state, Success):
            generation["model"] = state.model
            generation["generation_time"] = state.generation_time
            generation["image_base64"] = base64.b64encode(state.image_bytes).decode("ascii")
        elif isinstance(state, Error):
            generation["error_kind"] = state.kind.value
            generation["message"] = state.message

        return {
            "mode": self.mode.value,
            "point": selection.point.model_dump() if selection.point is not None else None,
            "direction": direction,
            "direction_name": compass_name_16(direction) if direction is not None else None,
            "preview_direction": selection.preview_direction,
            "phase": selection.phase.value,
            "active_fantasy_map": fantasy_map.model_dump() if fantasy_map else None,
            "fantasy_map_ready": self.fantasy_map_ready,
            "can_generate": self.can_generate.value,
            "requirement_hint": self.requirement_hint.value.value,
            "requirement_message": self.requirement_hint.value.message,
            "map_center": self.map_center.model_dump(),
            "map_zoom": self.map_zoom,
            "generation": generation,
        }
