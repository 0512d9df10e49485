"""
Drag tracking for a single card.

Idle -> Dragging -> (release) Dismissing when the horizontal offset passes
the threshold, otherwise back to Idle with the offset reset.
"""

from dataclasses import dataclass
from enum import Enum

DISMISS_THRESHOLD = 150.0
ROTATION_DIVISOR = 20.0


class DragPhase(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DISMISSING = "dismissing"


@dataclass(frozen=True)
class Offset:
    x: float = 0.0
    y: float = 0.0


ZERO_OFFSET = Offset()


def should_dismiss(dx: float) -> bool:
    """True when a horizontal drag distance is past the dismiss threshold."""
    return abs(dx) > DISMISS_THRESHOLD


class CardDrag:
    """Transient drag state owned by one card."""

    def __init__(self):
        self.phase = DragPhase.IDLE
        self.offset = ZERO_OFFSET

    @property
    def rotation_degrees(self) -> float:
        return self.offset.x / ROTATION_DIVISOR

    def begin(self) -> None:
        if self.phase is DragPhase.IDLE:
            self.phase = DragPhase.DRAGGING

    def move(self, dx: float, dy: float) -> None:
        """Track the pointer delta since the drag began."""
        if self.phase is DragPhase.DISMISSING:
            return
        self.begin()
        self.offset = Offset(float(dx), float(dy))

    def end(self) -> bool:
        """
        Finish the drag.

        Returns:
            True if the card should be dismissed, False if it snaps back
        """
        if self.phase is DragPhase.DISMISSING:
            return False
        if should_dismiss(self.offset.x):
            self.phase = DragPhase.DISMISSING
            return True
        self.phase = DragPhase.IDLE
        self.offset = ZERO_OFFSET
        return False
