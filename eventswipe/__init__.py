"""EventSwipe: a stack of swipeable event cards with add-to-calendar."""

__version__ = "0.1.0"
