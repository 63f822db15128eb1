"""Discrete action tables: movement velocities and shot directions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from range_ai.config import (
    BOSS_BURST_SPREAD,
    BOSS_DASH_MULTIPLIER,
    BOSS_SPREAD_STEP_RADIANS,
)
from range_ai.core.experience import MOVEMENT_ACTION_NAMES
from range_ai.runtime.geometry import Vec2, direction_to, distance, rotate

# Unit steps for N, NE, E, SE, S, SW, W, NW in screen space (y grows downward).
COMPASS_STEPS = (
    (0.0, -1.0),
    (1.0, -1.0),
    (1.0, 0.0),
    (1.0, 1.0),
    (0.0, 1.0),
    (-1.0, 1.0),
    (-1.0, 0.0),
    (-1.0, -1.0),
)
STOP = 8
DASH_RIGHT = 9
DASH_LEFT = 10
DASH_DOWN = 11
DASH_STEPS = {
    DASH_RIGHT: (1.0, 0.0),
    DASH_LEFT: (-1.0, 0.0),
    DASH_DOWN: (0.0, 1.0),
}

NO_SHOT = 0
SHOOT_NEAREST = 9
AIM_AT_PLAYER = 9
PREDICTIVE_AIM = 10
BURST = 11
SPREAD = 12

BOSS_MOVEMENT_ACTION_NAMES = MOVEMENT_ACTION_NAMES + ("DASH_RIGHT", "DASH_LEFT", "DASH_DOWN")
_DIRECTIONAL_SHOT_NAMES = tuple(f"SHOOT_{name}" for name in MOVEMENT_ACTION_NAMES[:8])
TARGETED_SHOOTING_ACTION_NAMES = ("NO_SHOT",) + _DIRECTIONAL_SHOT_NAMES + ("SHOOT_NEAREST",)
ENEMY_SHOOTING_ACTION_NAMES = ("NO_SHOT",) + _DIRECTIONAL_SHOT_NAMES + ("AIM_PLAYER", "PREDICTIVE")
BOSS_SHOOTING_ACTION_NAMES = ENEMY_SHOOTING_ACTION_NAMES + ("BURST", "SPREAD")


@dataclass(frozen=True)
class AimContext:
    """What a shooter can see when turning an action into shots."""

    shooter: Vec2
    player: Vec2 | None = None
    player_velocity: Vec2 = field(default_factory=lambda: Vec2(0.0, 0.0))
    targets: tuple[Vec2, ...] = ()


def compass_velocity(direction_index: int, speed: float) -> Vec2:
    step_x, step_y = COMPASS_STEPS[direction_index]
    return Vec2(step_x * speed, step_y * speed)


def movement_velocity(action: int, speed: float, allow_dash: bool = False) -> Vec2:
    """Velocity for a movement action; unknown indices stop."""

    if 0 <= action < STOP:
        return compass_velocity(action, speed)
    if allow_dash and action in DASH_STEPS:
        step_x, step_y = DASH_STEPS[action]
        dash_speed = speed * BOSS_DASH_MULTIPLIER
        return Vec2(step_x * dash_speed, step_y * dash_speed)
    return Vec2(0.0, 0.0)


def aimed_shot(origin: Vec2, target: Vec2, speed: float) -> Vec2 | None:
    heading = direction_to(origin, target)
    if heading.x == 0.0 and heading.y == 0.0:
        return None
    return heading * speed


def nearest_point(origin: Vec2, points: Sequence[Vec2]) -> Vec2 | None:
    if not points:
        return None
    return min(points, key=lambda point: distance(origin, point))


def _directional_shot(action: int, speed: float) -> Vec2 | None:
    if 1 <= action <= 8:
        return compass_velocity(action - 1, speed)
    return None


def targeted_shot(action: int, context: AimContext | None, speed: float) -> Vec2 | None:
    """Player and companion shooting: none, eight directions, nearest target."""

    if action == NO_SHOT:
        return None
    if action == SHOOT_NEAREST:
        if context is None:
            return None
        target = nearest_point(context.shooter, context.targets)
        if target is None:
            return None
        return aimed_shot(context.shooter, target, speed)
    return _directional_shot(action, speed)


def _player_aim(context: AimContext | None, speed: float, lead_frames: int = 0) -> Vec2 | None:
    if context is None or context.player is None:
        return None
    aim_point = context.player + context.player_velocity * lead_frames
    return aimed_shot(context.shooter, aim_point, speed)


def enemy_shot(action: int, context: AimContext | None, speed: float, lead_frames: int) -> Vec2 | None:
    if action == NO_SHOT:
        return None
    if action == AIM_AT_PLAYER:
        return _player_aim(context, speed)
    if action == PREDICTIVE_AIM:
        return _player_aim(context, speed, lead_frames)
    return _directional_shot(action, speed)


def boss_volley(
    action: int,
    context: AimContext | None,
    speed: float,
    lead_frames: int,
) -> tuple[Vec2, ...] | None:
    """Boss shooting; burst and spread fire several bullets at once."""

    if action in (BURST, SPREAD):
        base = _player_aim(context, speed)
        if base is None:
            return None
        if action == BURST:
            perpendicular = Vec2(base.y, -base.x)
            return (
                base,
                base * (1.0 - BOSS_BURST_SPREAD) + perpendicular * BOSS_BURST_SPREAD,
                base * (1.0 - BOSS_BURST_SPREAD) - perpendicular * BOSS_BURST_SPREAD,
            )
        return tuple(rotate(base, step * BOSS_SPREAD_STEP_RADIANS) for step in range(-2, 3))

    shot = enemy_shot(action, context, speed, lead_frames)
    if shot is None:
        return None
    return (shot,)

