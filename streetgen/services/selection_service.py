"""Location/direction selection state machine.

Each map mode owns one SelectionState. A selection moves through

    EMPTY --place_point--> POINT_SET --end_drag / set_direction--> DIRECTION_SET

and back to EMPTY on clear(). Placing a new point always discards the
previous direction, so a direction can never refer to an old point.
"""

from enum import Enum
from typing import Callable, Generic, Optional, TypeVar, Union

from ..models.generation import RequirementHint
from ..models.geo import FantasyPoint, GeoPoint
from ..models.settings import MapMode
from ..utils.geo_utils import bearing_degrees, fantasy_bearing_degrees, normalize_degrees

P = TypeVar("P", GeoPoint, FantasyPoint)


class SelectionPhase(str, Enum):
    EMPTY = "empty"
    POINT_SET = "point_set"
    DIRECTION_SET = "direction_set"


class SelectionState(Generic[P]):
    """Point and viewing direction picked on one surface."""

    def __init__(self, bearing: Callable[[P, P], int]):
        """
        Args:
            bearing: Bearing function for this surface's point type
        """
        self._bearing = bearing
        self.point: Optional[P] = None
        self.direction: Optional[int] = None
        self.drag_origin: Optional[P] = None
        self.preview_direction: Optional[int] = None

    @property
    def phase(self) -> SelectionPhase:
        if self.point is None:
            return SelectionPhase.EMPTY
        if self.direction is None:
            return SelectionPhase.POINT_SET
        return SelectionPhase.DIRECTION_SET

    @property
    def is_dragging(self) -> bool:
        return self.drag_origin is not None

    @property
    def is_complete(self) -> bool:
        return self.point is not None and self.direction is not None

    def place_point(self, point: P) -> None:
        """Set the viewer position; clears any previous direction."""
        self.point = point
        self.direction = None
        self.drag_origin = None
        self.preview_direction = None

    def begin_drag(self) -> None:
        """Start aiming from the current point.

        Raises:
            ValueError: If no point has been placed
        """
        if self.point is None:
            raise ValueError("Cannot aim before a point is placed")
        self.drag_origin = self.point
        self.preview_direction = None

    def drag_to(self, target: P) -> Optional[int]:
        """Update the live direction while dragging. Nothing is committed."""
        if self.drag_origin is None:
            return None
        self.preview_direction = self._bearing(self.drag_origin, target)
        return self.preview_direction

    def end_drag(self, target: Optional[P] = None) -> Optional[int]:
        """Finish the drag and commit the direction toward `target`.

        Releasing without a target (e.g. off the surface) keeps the last
        preview, if any.
        """
        if self.drag_origin is None:
            return None
        direction = self._bearing(self.drag_origin, target) if target is not None else self.preview_direction
        self.drag_origin = None
        self.preview_direction = None
        if direction is not None:
            self.direction = direction
        return direction

    def cancel_drag(self) -> None:
        """Stop aiming without committing anything."""
        self.drag_origin = None
        self.preview_direction = None

    def set_direction(self, degrees: float) -> int:
        """Commit a direction directly.

        Raises:
            ValueError: If no point has been placed
        """
        if self.point is None:
            raise ValueError("Cannot set a direction before a point is placed")
        self.direction = normalize_degrees(degrees)
        return self.direction

    def aim_at(self, target: P) -> int:
        """Commit the bearing from the current point toward `target`."""
        self.begin_drag()
        return self.end_drag(target)

    def clear(self) -> None:
        self.point = None
        self.direction = None
        self.drag_origin = None
        self.preview_direction = None


def real_world_selection() -> SelectionState[GeoPoint]:
    return SelectionState(bearing_degrees)


def fantasy_selection() -> SelectionState[FantasyPoint]:
    return SelectionState(fantasy_bearing_degrees)


AnySelection = Union[SelectionState[GeoPoint], SelectionState[FantasyPoint]]


def requirement_hint(
    mode: MapMode,
    selection: AnySelection,
    has_credential: bool,
    fantasy_map_ready: bool = False,
) -> RequirementHint:
    """
    The single most important missing requirement.

    Priority in FANTASY mode: map > location > direction > credential.
    Priority in REAL_WORLD mode: location > direction > credential.
    """
    if mode == MapMode.FANTASY:
        if not fantasy_map_ready:
            return RequirementHint.SELECT_FANTASY_MAP
        if selection.point is None:
            return RequirementHint.FANTASY_LOCATION
        if selection.direction is None:
            return RequirementHint.FANTASY_DIRECTION
    else:
        if selection.point is None:
            return RequirementHint.LOCATION
        if selection.direction is None:
            return RequirementHint.DIRECTION

    if not has_credential:
        return RequirementHint.API_KEY
    return RequirementHint.READY


def can_generate(
    mode: MapMode,
    selection: AnySelection,
    has_credential: bool,
    fantasy_map_ready: bool = False,
) -> bool:
    """True only when nothing is missing for the active mode."""
    return requirement_hint(mode, selection, has_credential, fantasy_map_ready) == RequirementHint.READY
