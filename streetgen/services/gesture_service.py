"""Press/move/release handling for the selection surfaces."""

import logging
from typing import Optional

from ..utils.surface import SurfaceProjection
from .map_session import MapSession

logger = logging.getLogger(__name__)


class GestureController:
    """
    Turns pointer events on a rendered surface into selection operations.

    A press near the current marker starts aiming from it. A press anywhere
    else places a new point and starts aiming at once, so one continuous
    press-drag-release picks both position and direction. A tap without
    movement only places the point.
    """

    def __init__(self, session: MapSession, projection: SurfaceProjection):
        self.session = session
        self.projection = projection
        self._moved = False

    def press(self, x: float, y: float) -> bool:
        """
        Handle a press at screen position (x, y).

        Returns:
            True if a drag started, False if the press was off the surface
        """
        self._moved = False
        marker = self.session.selection.point
        if marker is not None and self.projection.is_near(marker, x, y):
            self.session.begin_drag()
            return True

        point = self.projection.to_point(x, y)
        if point is None:
            return False

        self.session.place_point(point)
        self.session.begin_drag()
        return True

    def move(self, x: float, y: float) -> Optional[int]:
        """Live direction toward (x, y); None if not dragging."""
        if not self.session.selection.is_dragging:
            return None
        point = self.projection.to_point(x, y)
        if point is None:
            return self.session.selection.preview_direction
        self._moved = True
        return self.session.drag_to(point)

    def release(self, x: Optional[float] = None, y: Optional[float] = None) -> Optional[int]:
        """
        Finish the drag.

        A release off the surface (or without a position) keeps the last
        live direction.

        Returns:
            The committed direction, or None if nothing was committed
        """
        if not self.session.selection.is_dragging:
            return None
        if not self._moved:
            self.session.cancel_drag()
            return None

        target = None
        if x is not None and y is not None:
            target = self.projection.to_point(x, y)
        self._moved = False
        direction = self.session.end_drag(target)
        logger.debug("Gesture committed direction %s", direction)
        return direction

    def long_press(self) -> None:
        """Clear the selection of the active surface."""
        self._moved = False
        self.session.clear_selection()
