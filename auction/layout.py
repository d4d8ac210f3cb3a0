"""
layout.py - Treemap layout for catalog snapshots

Partitions a rectangle into one sub-rectangle per item, with area
proportional to the item's weight. The engine does not depend on this
module; hosts use it to draw the catalog.

Algorithm (balanced binary split):
1. Drop items with weight <= min_value, sort the rest by weight descending
2. Split the list where the running weight is closest to half the total
3. Cut the rectangle in the current direction in proportion to the two halves
4. Recurse into each half with the direction flipped
5. Shrink each leaf rectangle by `padding` on every side

Items with equal weight keep their input order.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Sequence, TypeVar

from .core import LotView

T = TypeVar("T")

HORIZONTAL = "horizontal"
VERTICAL = "vertical"


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle; (x, y) is the top-left corner."""
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class Positioned(Generic[T]):
    """An item and the rectangle assigned to it."""
    source: T
    rect: Rect


def apply_padding(rect: Rect, padding: float) -> Rect:
    """Inset a rectangle on all four sides; width/height never go below 0."""
    return Rect(
        x=rect.x + padding,
        y=rect.y + padding,
        width=max(0.0, rect.width - padding * 2),
        height=max(0.0, rect.height - padding * 2),
    )


def _split_index(weights: Sequence[float], total: float) -> int:
    """Index splitting weights into two non-empty halves nearest to 50/50."""
    half = total / 2
    best_index = 1
    best_gap = None
    running = 0.0
    for i in range(len(weights) - 1):
        running += weights[i]
        gap = abs(running - half)
        if best_gap is None or gap < best_gap:
            best_gap = gap
            best_index = i + 1
        if running >= half:
            break
    return best_index


def _layout(
    items: Sequence[T],
    weights: Sequence[float],
    rect: Rect,
    direction: str,
    padding: float,
    output: List[Positioned[T]],
) -> None:
    if not items or rect.width <= 0 or rect.height <= 0:
        return
    if len(items) == 1:
        output.append(Positioned(items[0], apply_padding(rect, padding)))
        return

    total = sum(weights)
    split = _split_index(weights, total)
    ratio = sum(weights[:split]) / total if total > 0 else split / len(items)
    next_direction = VERTICAL if direction == HORIZONTAL else HORIZONTAL

    if direction == HORIZONTAL:
        left_width = rect.width * ratio
        first = Rect(rect.x, rect.y, left_width, rect.height)
        second = Rect(rect.x + left_width, rect.y, rect.width - left_width, rect.height)
    else:
        top_height = rect.height * ratio
        first = Rect(rect.x, rect.y, rect.width, top_height)
        second = Rect(rect.x, rect.y + top_height, rect.width, rect.height - top_height)

    _layout(items[:split], weights[:split], first, next_direction, padding, output)
    _layout(items[split:], weights[split:], second, next_direction, padding, output)


def tree_map(
    items: Iterable[T],
    get_value: Callable[[T], float],
    width: float,
    height: float,
    direction: str = HORIZONTAL,
    padding: float = 0.0,
    min_value: float = 0.0,
) -> List[Positioned[T]]:
    """
    Lay items out inside [0, width] x [0, height].

    Args:
        items: Items to place
        get_value: Weight of an item (>= 0)
        width, height: Target rectangle size
        direction: First cut, "horizontal" (side by side) or "vertical" (stacked)
        padding: Inset applied to every leaf rectangle
        min_value: Items with weight <= min_value are left out

    Returns:
        One Positioned per kept item, heaviest first

    Raises:
        ValueError: On an unknown direction or a negative weight
    """
    if direction not in (HORIZONTAL, VERTICAL):
        raise ValueError(f"direction must be '{HORIZONTAL}' or '{VERTICAL}', got {direction!r}")

    weighted = []
    for item in items:
        weight = float(get_value(item))
        if weight < 0:
            raise ValueError(f"Negative weight {weight} for {item!r}")
        if weight > min_value:
            weighted.append((item, weight))
    weighted.sort(key=lambda pair: pair[1], reverse=True)

    output: List[Positioned[T]] = []
    _layout(
        [item for item, _ in weighted],
        [weight for _, weight in weighted],
        Rect(0.0, 0.0, float(width), float(height)),
        direction,
        padding,
        output,
    )
    return output


def catalog_layout(
    lots: Iterable[LotView],
    width: float,
    height: float,
    direction: str = HORIZONTAL,
    padding: float = 0.0,
    min_value: float = 0.0,
) -> List[Positioned[LotView]]:
    """Treemap of catalog rows weighted by current price."""
    return tree_map(
        lots,
        lambda lot: lot.current_price,
        width,
        height,
        direction=direction,
        padding=padding,
        min_value=min_value,
    )
