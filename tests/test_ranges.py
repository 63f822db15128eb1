import random

import pytest

from range_ai.config import (
    RANGE_GRID_ROLES,
    ROLE_ENEMY_MOVEMENT,
    ROLE_ENEMY_PATROL,
    ROLE_PLAYER_MOVEMENT,
    ROLE_PLAYER_SHOOTING,
    ROLE_PLAYER_STEALTH_MOVEMENT,
    TRAINING_ORDER,
)
from range_ai.errors import UnknownRoleError
from range_ai.runtime.geometry import Rect, Vec2
from range_ai.train.ranges import TrainingRangeSystem, random_position


def overlaps(a, b):
    return a.left < b.right and b.left < a.right and a.top < b.bottom and b.top < a.bottom


def test_grid_ranges_do_not_overlap():
    system = TrainingRangeSystem(1200, 900)
    rects = [system.get_range(role) for role in RANGE_GRID_ROLES]

    assert len(set(rects)) == 9
    for index, a in enumerate(rects):
        for b in rects[index + 1:]:
            assert not overlaps(a, b)
    assert rects[0] == Rect(0, 0, 400, 300)
    assert rects[8] == Rect(800, 600, 400, 300)


def test_shared_ranges():
    system = TrainingRangeSystem()

    assert system.get_range(ROLE_PLAYER_STEALTH_MOVEMENT) == system.get_range(ROLE_PLAYER_MOVEMENT)
    assert system.get_range(ROLE_ENEMY_PATROL) == system.get_range(ROLE_ENEMY_MOVEMENT)
    assert set(system.ranges()) == set(TRAINING_ORDER)


def test_random_positions_stay_inside():
    system = TrainingRangeSystem()
    rng = random.Random(7)

    for role in TRAINING_ORDER:
        bounds = system.get_range(role).inset(100)
        for _ in range(50):
            position = system.random_position_in_range(role, rng)
            assert bounds.contains(position)
            assert system.is_in_range(role, position)


def test_random_position_on_small_range_uses_center():
    bounds = Rect(0.0, 0.0, 150.0, 150.0)

    position = random_position(bounds, random.Random(0))

    assert (position.x, position.y) == (75.0, 75.0)


def test_unknown_role():
    with pytest.raises(UnknownRoleError):
        TrainingRangeSystem().get_range("spectator")
    assert not TrainingRangeSystem().is_in_range(ROLE_PLAYER_MOVEMENT, Vec2(500.0, 500.0))


def test_shared_edge_belongs_to_one_range():
    system = TrainingRangeSystem()
    left = system.get_range(ROLE_PLAYER_MOVEMENT)
    edge = Vec2(left.right, left.top + 10.0)

    owners = [role for role in RANGE_GRID_ROLES if system.is_in_range(role, edge)]

    assert owners == [ROLE_PLAYER_SHOOTING]
    assert system.get_range(ROLE_PLAYER_MOVEMENT).contains(Vec2(left.left, left.top))
    assert not left.contains(Vec2(left.left, left.bottom))
