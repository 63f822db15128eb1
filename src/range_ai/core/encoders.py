"""Per-role state encoders.

Every encoder is a pure function of a read-only world snapshot. Positions are
normalized by the window size, velocities by a fixed per-role divisor, and
top-K blocks are sorted by pixel distance with missing slots padded by the
sentinels in ``range_ai.config``.
"""

from __future__ import annotations

from collections import Counter
import logging
import math
import threading
from typing import Iterable, Sequence

from range_ai.config import (
    ENEMY_DETECTION_RANGE,
    HEALTH_NORMALIZATION,
    OBSTACLE_SIZE_NORMALIZATION,
    PAD_ACTOR,
    PAD_FAR_OBSTACLE,
    PAD_NEAR_OBSTACLE,
    PAD_PROJECTILE,
    PAD_PROJECTILE_POSITION,
    PAD_STEALTH_ENEMY,
    PAD_TARGET_WITH_HEALTH,
    PATROL_SPEED,
    VELOCITY_NORMALIZATION,
    WALL_DISTANCE_NORMALIZATION,
)
from range_ai.core.entities import Combatant, Obstacle, Projectile
from range_ai.runtime.geometry import Vec2, distance

LOGGER = logging.getLogger("range_ai.encoders")

WindowSize = tuple[int, int]

PADDING_EVENTS: Counter[str] = Counter()
_PADDING_LOCK = threading.Lock()


def fit_to_size(role: str, features: Sequence[float], size: int) -> list[float]:
    """Pad with zeros or truncate to ``size``; every adjustment is logged and counted."""

    values = [float(value) for value in features]
    if len(values) == size:
        return values
    with _PADDING_LOCK:
        PADDING_EVENTS[role] += 1
    LOGGER.warning("state size drift\trole=%s\tgot=%d\texpected=%d", role, len(values), size)
    if len(values) > size:
        return values[:size]
    return values + [0.0] * (size - len(values))


def padding_event_count(role: str) -> int:
    with _PADDING_LOCK:
        return PADDING_EVENTS[role]


def _nearest(origin: Vec2, items: Iterable, count: int, key=lambda item: item) -> list:
    return sorted(items, key=lambda item: distance(origin, key(item)))[:count]


def _relative(origin: Vec2, point: Vec2, window_size: WindowSize) -> list[float]:
    width, height = window_size
    dx = (point.x - origin.x) / width
    dy = (point.y - origin.y) / height
    return [dx, dy, math.sqrt(dx * dx + dy * dy)]


def _position(point: Vec2, window_size: WindowSize) -> list[float]:
    width, height = window_size
    return [point.x / width, point.y / height]


def _wall_distances(point: Vec2, window_size: WindowSize) -> list[float]:
    width, height = window_size
    scale = WALL_DISTANCE_NORMALIZATION
    return [point.x / scale, point.y / scale, (width - point.x) / scale, (height - point.y) / scale]


def _window_wall_distances(point: Vec2, window_size: WindowSize) -> list[float]:
    width, height = window_size
    return [point.x / width, (width - point.x) / width, point.y / height, (height - point.y) / height]


def _projectile_block(
    origin: Vec2,
    projectiles: Sequence[Projectile],
    count: int,
    window_size: WindowSize,
    with_velocity: bool = True,
) -> list[float]:
    features: list[float] = []
    nearest = _nearest(origin, projectiles, count, key=lambda projectile: projectile.position)
    for projectile in nearest:
        features.extend(_relative(origin, projectile.position, window_size))
        if with_velocity:
            features.append(projectile.velocity.x / VELOCITY_NORMALIZATION)
            features.append(projectile.velocity.y / VELOCITY_NORMALIZATION)
    pad = PAD_PROJECTILE if with_velocity else PAD_PROJECTILE_POSITION
    for _ in range(count - len(nearest)):
        features.extend(pad)
    return features


def _actor_block(origin: Vec2, actors: Sequence[Vec2], count: int, window_size: WindowSize) -> list[float]:
    features: list[float] = []
    nearest = _nearest(origin, actors, count)
    for actor in nearest:
        features.extend(_relative(origin, actor, window_size))
    for _ in range(count - len(nearest)):
        features.extend(PAD_ACTOR)
    return features


def _target_block(origin: Vec2, targets: Sequence[Combatant], count: int, window_size: WindowSize) -> list[float]:
    features: list[float] = []
    nearest = _nearest(origin, targets, count, key=lambda target: target.position)
    for target in nearest:
        features.extend(_relative(origin, target.position, window_size))
        features.append(target.health / HEALTH_NORMALIZATION)
    for _ in range(count - len(nearest)):
        features.extend(PAD_TARGET_WITH_HEALTH)
    return features


def encode_player_movement(
    *,
    player: Vec2,
    bullets: Sequence[Projectile] = (),
    window_size: WindowSize,
) -> list[float]:
    return (
        _position(player, window_size)
        + _projectile_block(player, bullets, 3, window_size)
        + _wall_distances(player, window_size)
    )


def encode_targeted_shooting(
    *,
    shooter: Vec2,
    targets: Sequence[Combatant] = (),
    window_size: WindowSize,
) -> list[float]:
    """Shared by player and companion shooting: three nearest enemies or bosses."""

    return _position(shooter, window_size) + _target_block(shooter, targets, 3, window_size)


def encode_companion_movement(
    *,
    companion: Vec2,
    player: Vec2,
    bullets: Sequence[Projectile] = (),
    obstacles: Sequence[Obstacle] = (),
    window_size: WindowSize,
) -> list[float]:
    width, height = window_size
    features = (
        _position(companion, window_size)
        + _relative(companion, player, window_size)
        + _projectile_block(companion, bullets, 3, window_size)
        + _wall_distances(companion, window_size)
    )
    # Obstacles are measured to their top-left corner.
    nearest = _nearest(companion, obstacles, 2, key=lambda obstacle: obstacle.position)
    for obstacle in nearest:
        features.extend(_relative(companion, obstacle.position, window_size))
        features.append((obstacle.width + obstacle.height) / (width + height))
    for _ in range(2 - len(nearest)):
        features.extend(PAD_NEAR_OBSTACLE)
    return features


def encode_companion_solo_movement(
    *,
    companion: Vec2,
    bullets: Sequence[Projectile] = (),
    enemies: Sequence[Vec2] = (),
    window_size: WindowSize,
) -> list[float]:
    return (
        _position(companion, window_size)
        + _projectile_block(companion, bullets, 3, window_size)
        + _actor_block(companion, enemies, 2, window_size)
        + _wall_distances(companion, window_size)
    )


def encode_enemy_movement(
    *,
    enemy: Vec2,
    player: Vec2,
    companions: Sequence[Vec2] = (),
    lasers: Sequence[Projectile] = (),
    window_size: WindowSize,
) -> list[float]:
    return (
        _position(enemy, window_size)
        + _relative(enemy, player, window_size)
        + _actor_block(enemy, companions, 1, window_size)
        + _projectile_block(enemy, lasers, 2, window_size)
        + [enemy.x / WALL_DISTANCE_NORMALIZATION, enemy.y / WALL_DISTANCE_NORMALIZATION]
    )


def _player_aim_features(
    shooter: Vec2,
    player: Vec2,
    player_velocity: Vec2,
    window_size: WindowSize,
) -> list[float]:
    return _relative(shooter, player, window_size) + [
        player_velocity.x / VELOCITY_NORMALIZATION,
        player_velocity.y / VELOCITY_NORMALIZATION,
    ]


def encode_enemy_shooting(
    *,
    enemy: Vec2,
    player: Vec2,
    player_velocity: Vec2 = Vec2(0.0, 0.0),
    companions: Sequence[Vec2] = (),
    window_size: WindowSize,
) -> list[float]:
    return (
        _position(enemy, window_size)
        + _player_aim_features(enemy, player, player_velocity, window_size)
        + _actor_block(enemy, companions, 2, window_size)
    )


def encode_boss_movement(
    *,
    boss: Vec2,
    player: Vec2,
    companions: Sequence[Vec2] = (),
    lasers: Sequence[Projectile] = (),
    obstacles: Sequence[Obstacle] = (),
    window_size: WindowSize,
) -> list[float]:
    features = (
        _position(boss, window_size)
        + _relative(boss, player, window_size)
        + _actor_block(boss, companions, 2, window_size)
        + _projectile_block(boss, lasers, 3, window_size, with_velocity=False)
        + _wall_distances(boss, window_size)
    )
    # Obstacles are measured to their center.
    nearest = _nearest(boss, obstacles, 2, key=lambda obstacle: obstacle.center)
    for obstacle in nearest:
        features.extend(_relative(boss, obstacle.center, window_size))
        features.append(max(obstacle.width, obstacle.height) / OBSTACLE_SIZE_NORMALIZATION)
    for _ in range(2 - len(nearest)):
        features.extend(PAD_FAR_OBSTACLE)
    return features


def encode_boss_shooting(
    *,
    boss: Vec2,
    player: Vec2,
    player_velocity: Vec2 = Vec2(0.0, 0.0),
    companions: Sequence[Vec2] = (),
    window_size: WindowSize,
) -> list[float]:
    return (
        _position(boss, window_size)
        + _player_aim_features(boss, player, player_velocity, window_size)
        + _actor_block(boss, companions, 3, window_size)
    )


def encode_player_stealth_movement(
    *,
    player: Vec2,
    enemies: Sequence[Vec2] = (),
    window_size: WindowSize,
) -> list[float]:
    """Enemies are absolute positions plus a detected flag."""

    features = _position(player, window_size)
    nearest = _nearest(player, enemies, 5)
    for enemy in nearest:
        features.extend(_position(enemy, window_size))
        features.append(1.0 if distance(player, enemy) < ENEMY_DETECTION_RANGE else 0.0)
    for _ in range(5 - len(nearest)):
        features.extend(PAD_STEALTH_ENEMY)
    return features + _window_wall_distances(player, window_size)


def encode_enemy_patrol(
    *,
    enemy: Vec2,
    velocity: Vec2,
    coverage: Sequence[Sequence[float]],
    window_size: WindowSize,
) -> list[float]:
    features = _position(enemy, window_size)
    features.extend([velocity.x / PATROL_SPEED, velocity.y / PATROL_SPEED])
    features.extend(_window_wall_distances(enemy, window_size))
    for row in coverage:
        features.extend(float(cell) for cell in row)
    return features
