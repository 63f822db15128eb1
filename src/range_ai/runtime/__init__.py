"""Runtime helpers for Range AI."""

from .geometry import (
    Rect,
    Vec2,
    clamp_to_rect,
    direction_to,
    distance,
    rotate,
    vector_length,
)
from .helpers import get_torch_device, make_rng, seed_everything

__all__ = [
    "Rect",
    "Vec2",
    "clamp_to_rect",
    "direction_to",
    "distance",
    "rotate",
    "vector_length",
    "get_torch_device",
    "make_rng",
    "seed_everything",
]
