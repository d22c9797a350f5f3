"""
overlay.py: Pixel geometry and label layout for chart overlays.

Crosshair value labels and peak marker labels share one layout routine:
labels are centred on their anchor x, clamped inside the plot area, and
pushed down one row when their horizontal extent would collide with a label
already placed in that row.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import pandas as pd

from kitracker import config as cfg
from kitracker.models.occupancy import InterpolatedValues

# Rough width of one glyph relative to the font size, for backends that
# cannot measure text before drawing.
CHAR_WIDTH_RATIO = 0.6
LABEL_PADDING = 4

TextMeasure = Callable[[str], float]


def estimate_text_width(text: str, font_size: int = cfg.LABEL_FONT_SIZE) -> float:
    return len(text) * font_size * CHAR_WIDTH_RATIO


@dataclass(frozen=True)
class PlotArea:
    """Plotting rectangle in pixels, origin at the top left of the chart."""

    left: float
    right: float
    top: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    def contains(self, x: float, y: Optional[float] = None) -> bool:
        if not self.left <= x <= self.right:
            return False
        return y is None or self.top <= y <= self.bottom

    @classmethod
    def from_margins(
        cls, width: float, height: float, margins: dict
    ) -> "PlotArea":
        """Plot area of a figure given its size and l/r/t/b margins."""
        return cls(
            left=margins["l"],
            right=width - margins["r"],
            top=margins["t"],
            bottom=height - margins["b"],
        )


def pixel_to_time(
    x: float, area: PlotArea, min_time: pd.Timestamp, max_time: pd.Timestamp
) -> pd.Timestamp:
    """Map a pixel column inside the plot area onto the time axis."""
    if area.width <= 0:
        return min_time
    fraction = (x - area.left) / area.width
    return min_time + (max_time - min_time) * fraction


def time_to_pixel(
    ts: pd.Timestamp, area: PlotArea, min_time: pd.Timestamp, max_time: pd.Timestamp
) -> float:
    span = (max_time - min_time).total_seconds()
    if span <= 0:
        return area.left
    fraction = (ts - min_time).total_seconds() / span
    return area.left + area.width * fraction


@dataclass(frozen=True)
class LabelRequest:
    key: str
    text: str
    anchor_x: float


@dataclass(frozen=True)
class LabelPlacement:
    key: str
    text: str
    anchor_x: float
    left: float
    width: float
    row: int
    y_offset: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def center(self) -> float:
        return self.left + self.width / 2


def clamp_label(anchor_x: float, width: float, area: PlotArea) -> float:
    """Left edge of a label centred on anchor_x but kept inside the area."""
    left = anchor_x - width / 2
    left = min(left, area.right - width)
    return max(left, area.left)


def _collides(a_left: float, a_right: float, b: LabelPlacement) -> bool:
    return a_left < b.right + LABEL_PADDING and b.left < a_right + LABEL_PADDING


def layout_labels(
    requests: Sequence[LabelRequest],
    area: PlotArea,
    measure: TextMeasure = estimate_text_width,
    line_height: float = cfg.LABEL_FONT_SIZE + 6,
) -> List[LabelPlacement]:
    """
    Place labels so none overlap and none leave the plot area horizontally.

    Labels are handled in request order; each goes into the first row where
    it does not collide with an earlier label.

    :param requests: Labels with their anchor x in pixels.
    :param area: Plot area for clamping.
    :param measure: Text width function in pixels.
    :param line_height: Vertical distance between rows in pixels.
    :return: One placement per request, same order.
    """
    placed: List[LabelPlacement] = []
    for request in requests:
        width = measure(request.text)
        left = clamp_label(request.anchor_x, width, area)
        right = left + width

        row = 0
        while any(p.row == row and _collides(left, right, p) for p in placed):
            row += 1

        placed.append(
            LabelPlacement(
                key=request.key,
                text=request.text,
                anchor_x=request.anchor_x,
                left=left,
                width=width,
                row=row,
                y_offset=row * line_height,
            )
        )
    return placed


@dataclass(frozen=True)
class PeakMarker:
    series: str
    value: int
    time: pd.Timestamp
    x: float


@dataclass
class OverlayState:
    """Everything a backend needs to draw a chart's overlay for one frame."""

    cursor_time: Optional[pd.Timestamp] = None
    cursor_x: Optional[float] = None
    values: Optional[InterpolatedValues] = None
    time_label: Optional[LabelPlacement] = None
    cursor_labels: List[LabelPlacement] = field(default_factory=list)
    peak_markers: List[PeakMarker] = field(default_factory=list)
    peak_labels: List[LabelPlacement] = field(default_factory=list)

    @property
    def cursor_active(self) -> bool:
        return self.cursor_time is not None

    @property
    def is_empty(self) -> bool:
        return not self.cursor_active and not self.peak_markers
