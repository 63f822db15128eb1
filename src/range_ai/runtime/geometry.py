"""Generic 2D geometry helpers for top-left game spaces."""

from __future__ import annotations

import math
from dataclasses import dataclass

from pyglet.math import Vec2


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in top-left coordinate space."""

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Vec2:
        return Vec2(self.left + self.width / 2.0, self.top + self.height / 2.0)

    def contains(self, point: Vec2) -> bool:
        """Half-open: the right and bottom edges belong to the neighbouring rectangle."""

        return self.left <= point.x < self.right and self.top <= point.y < self.bottom

    def inset(self, margin: float) -> "Rect":
        """Shrink by ``margin`` on every side, never below zero size."""

        margin_x = min(margin, self.width / 2.0)
        margin_y = min(margin, self.height / 2.0)
        return Rect(
            self.left + margin_x,
            self.top + margin_y,
            self.width - 2.0 * margin_x,
            self.height - 2.0 * margin_y,
        )


def vector_length(vector: Vec2) -> float:
    return math.hypot(vector.x, vector.y)


def distance(point_a: Vec2, point_b: Vec2) -> float:
    return math.hypot(point_a.x - point_b.x, point_a.y - point_b.y)


def direction_to(origin: Vec2, target: Vec2) -> Vec2:
    """Unit vector from origin to target, zero when they coincide."""

    delta = target - origin
    length = vector_length(delta)
    if length <= 1e-9:
        return Vec2(0.0, 0.0)
    return Vec2(delta.x / length, delta.y / length)


def rotate(vector: Vec2, radians: float) -> Vec2:
    cos_a = math.cos(radians)
    sin_a = math.sin(radians)
    return Vec2(vector.x * cos_a - vector.y * sin_a, vector.x * sin_a + vector.y * cos_a)


def clamp_to_rect(point: Vec2, rect: Rect, margin: float = 0.0) -> Vec2:
    inner = rect.inset(margin)
    return Vec2(
        min(max(point.x, inner.left), inner.right),
        min(max(point.y, inner.top), inner.bottom),
    )
