"""3x3 partition of the play area into isolated training ranges."""

from __future__ import annotations

import random

from range_ai.config import (
    RANGE_GRID_ROLES,
    RANGE_SPAWN_INSET,
    SHARED_RANGE_ROLES,
    WINDOW,
)
from range_ai.errors import UnknownRoleError
from range_ai.runtime.geometry import Rect, Vec2


class TrainingRangeSystem:
    """Maps each role to its own rectangle of the window."""

    def __init__(self, width: int = WINDOW.width_px, height: int = WINDOW.height_px):
        self.window_size = (int(width), int(height))
        cell_width = int(width) // 3
        cell_height = int(height) // 3
        self._ranges: dict[str, Rect] = {}
        for index, role in enumerate(RANGE_GRID_ROLES):
            row, column = divmod(index, 3)
            self._ranges[role] = Rect(column * cell_width, row * cell_height, cell_width, cell_height)
        for role, owner in SHARED_RANGE_ROLES.items():
            self._ranges[role] = self._ranges[owner]

    def ranges(self) -> dict[str, Rect]:
        return dict(self._ranges)

    def get_range(self, role: str) -> Rect:
        try:
            return self._ranges[role]
        except KeyError:
            raise UnknownRoleError(role) from None

    def random_position_in_range(self, role: str, rng: random.Random) -> Vec2:
        return random_position(self.get_range(role), rng)

    def is_in_range(self, role: str, position: Vec2) -> bool:
        return self.get_range(role).contains(position)


def random_position(bounds: Rect, rng: random.Random, inset: float = RANGE_SPAWN_INSET) -> Vec2:
    """Uniform point at least ``inset`` px from the edges, or the center band of small ranges."""

    inner = bounds.inset(inset)
    return Vec2(
        inner.left + rng.random() * inner.width,
        inner.top + rng.random() * inner.height,
    )
