"""Reward shaping for training-range episodes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from range_ai.config import (
    CLUSTER_CLOSE_DISTANCE,
    CLUSTER_CLOSE_PENALTY,
    CLUSTER_SEVERE_DISTANCE,
    CLUSTER_SEVERE_PENALTY,
    COMPANION_NEAR_MISS_BAND,
    COMPANION_NEAR_MISS_REWARD,
    COMPANION_PLAYER_DISTANCE_REWARDS,
    COMPANION_TOO_FAR_DISTANCE,
    COMPANION_TOO_FAR_PENALTY,
    GOOD_SPACING_BAND,
    GOOD_SPACING_REWARD,
    MOVEMENT_REWARDS,
    PATROL_COVERAGE_DECAY,
    PATROL_COVERAGE_STEP,
    PATROL_EVEN_COVERAGE_REWARD,
    PATROL_GRID_SIZE,
    PATROL_LESS_VISITED_REWARD,
    PATROL_NEW_AREA_REWARD,
    PATROL_OVERVISIT_PENALTY,
    PATROL_STOP_PENALTY,
    PATROL_WALL_MARGIN,
    PATROL_WALL_SCALE,
    REWARD_SHOT_HIT,
    REWARD_SHOT_KILL,
    SHOOTING_TIME_PENALTY,
    SOLO_ENEMY_DISTANCE_BAND,
    SOLO_ENEMY_DISTANCE_REWARD,
    SOLO_NEAR_MISS_BANDS,
    SOLO_NO_ENEMY_DISTANCE,
    STATIONARY_DISPLACEMENT_PX,
    STEALTH_DISTANCE_REWARDS,
)
from range_ai.errors import UnknownRoleError
from range_ai.runtime.geometry import Rect, Vec2


@dataclass(frozen=True)
class MovementRewardProfile:
    survival: float
    hit: float
    stationary_frames: int
    stationary: float
    movement_threshold: float
    movement: float
    wall_margin: float
    wall_scale: float

    @classmethod
    def for_role(cls, role: str) -> "MovementRewardProfile":
        try:
            values = MOVEMENT_REWARDS[role]
        except KeyError:
            raise UnknownRoleError(role) from None
        return cls(
            survival=float(values["survival"]),
            hit=float(values["hit"]),
            stationary_frames=int(values["stationary_frames"]),
            stationary=float(values["stationary"]),
            movement_threshold=float(values["movement_threshold"]),
            movement=float(values["movement"]),
            wall_margin=float(values["wall_margin"]),
            wall_scale=float(values["wall_scale"]),
        )


def wall_penalty(distance: float, margin: float, scale: float) -> float:
    """Quadratic falloff: ``-scale`` at the wall, zero from ``margin`` outward."""

    if distance >= margin:
        return 0.0
    closeness = 1.0 - max(0.0, distance) / margin
    return -scale * closeness * closeness


def distance_to_edges(position: Vec2, bounds: Rect) -> float:
    return min(
        position.x - bounds.left,
        bounds.right - position.x,
        position.y - bounds.top,
        bounds.bottom - position.y,
    )


class StationaryTracker:
    """Counts consecutive frames with sub-pixel displacement."""

    def __init__(self):
        self.frames = 0

    def update(self, displacement: float) -> int:
        if displacement < STATIONARY_DISPLACEMENT_PX:
            self.frames += 1
        else:
            self.frames = 0
        return self.frames


def movement_reward(
    profile: MovementRewardProfile,
    *,
    hit: bool,
    displacement: float,
    stationary_frames: int,
    wall_distance: float,
    hit_penalty: float | None = None,
) -> float:
    reward = (profile.hit if hit_penalty is None else hit_penalty) if hit else profile.survival
    if stationary_frames > profile.stationary_frames:
        reward += profile.stationary
    if displacement > profile.movement_threshold:
        reward += profile.movement
    reward += wall_penalty(wall_distance, profile.wall_margin, profile.wall_scale)
    return reward


def near_miss_reward(closest_distance: float | None, bands: Sequence[tuple[float, float, float]]) -> float:
    if closest_distance is None:
        return 0.0
    for low, high, reward in bands:
        if low <= closest_distance < high:
            return reward
    return 0.0


def companion_near_miss_reward(closest_bullet_distance: float | None) -> float:
    low, high = COMPANION_NEAR_MISS_BAND
    return near_miss_reward(closest_bullet_distance, ((low, high, COMPANION_NEAR_MISS_REWARD),))


def solo_near_miss_reward(closest_bullet_distance: float | None) -> float:
    return near_miss_reward(closest_bullet_distance, SOLO_NEAR_MISS_BANDS)


def companion_player_distance_reward(player_distance: float) -> float:
    if player_distance > COMPANION_TOO_FAR_DISTANCE:
        return COMPANION_TOO_FAR_PENALTY
    for limit, reward in COMPANION_PLAYER_DISTANCE_REWARDS:
        if player_distance < limit:
            return reward
    return 0.0


def enemy_distance_reward(enemy_distances: Sequence[float]) -> float:
    average = sum(enemy_distances) / len(enemy_distances) if enemy_distances else SOLO_NO_ENEMY_DISTANCE
    low, high = SOLO_ENEMY_DISTANCE_BAND
    if low < average < high:
        return SOLO_ENEMY_DISTANCE_REWARD
    return 0.0


def clustering_reward(nearest_companion_distance: float | None) -> float:
    """Spacing term between companions; inactive when training alone."""

    if nearest_companion_distance is None:
        return 0.0
    if nearest_companion_distance < CLUSTER_SEVERE_DISTANCE:
        return CLUSTER_SEVERE_PENALTY
    if nearest_companion_distance < CLUSTER_CLOSE_DISTANCE:
        return CLUSTER_CLOSE_PENALTY
    low, high = GOOD_SPACING_BAND
    if low <= nearest_companion_distance <= high:
        return GOOD_SPACING_REWARD
    return 0.0


def stealth_distance_reward(nearest_enemy_distance: float | None) -> float:
    if nearest_enemy_distance is None:
        return 0.0
    first, second = STEALTH_DISTANCE_REWARDS
    if first[0] <= nearest_enemy_distance <= first[1]:
        return first[2]
    if second[0] < nearest_enemy_distance <= second[1]:
        return second[2]
    return 0.0


def shooter_reward(hits: int, kills: int) -> float:
    return SHOOTING_TIME_PENALTY + REWARD_SHOT_HIT * hits + REWARD_SHOT_KILL * kills


def target_hit_reward(player_hits: int, companion_hits: int, player_value: float, companion_value: float) -> float:
    return SHOOTING_TIME_PENALTY + player_value * player_hits + companion_value * companion_hits


class CoverageGrid:
    """Decaying visit map over a 3x3 split of a range, indexed ``cells[x][y]``."""

    def __init__(self, bounds: Rect, size: int = PATROL_GRID_SIZE):
        self.bounds = bounds
        self.size = size
        self.cells = [[0.0] * size for _ in range(size)]

    def cell_of(self, position: Vec2) -> tuple[int, int]:
        cell_width = self.bounds.width / self.size
        cell_height = self.bounds.height / self.size
        grid_x = int((position.x - self.bounds.left) // cell_width)
        grid_y = int((position.y - self.bounds.top) // cell_height)
        return (
            min(max(grid_x, 0), self.size - 1),
            min(max(grid_y, 0), self.size - 1),
        )

    def visit(self, position: Vec2) -> float:
        """Decay every cell, mark the visited one, return its previous value."""

        for column in self.cells:
            for index in range(self.size):
                column[index] *= PATROL_COVERAGE_DECAY
        grid_x, grid_y = self.cell_of(position)
        previous = self.cells[grid_x][grid_y]
        self.cells[grid_x][grid_y] = min(1.0, previous + PATROL_COVERAGE_STEP)
        return previous

    def values(self) -> list[float]:
        return [value for column in self.cells for value in column]

    def average(self) -> float:
        values = self.values()
        return sum(values) / len(values)

    def variance(self) -> float:
        values = self.values()
        mean = sum(values) / len(values)
        return sum((value - mean) ** 2 for value in values) / len(values)


def patrol_reward(previous_coverage: float, grid: CoverageGrid, stopped: bool, wall_distance: float) -> float:
    if previous_coverage < 0.5:
        reward = PATROL_NEW_AREA_REWARD
    elif previous_coverage < 0.8:
        reward = PATROL_LESS_VISITED_REWARD
    else:
        reward = PATROL_OVERVISIT_PENALTY
    if grid.variance() < 0.1 and grid.average() > 0.3:
        reward += PATROL_EVEN_COVERAGE_REWARD
    if stopped:
        reward += PATROL_STOP_PENALTY
    reward += wall_penalty(wall_distance, PATROL_WALL_MARGIN, PATROL_WALL_SCALE)
    return reward
