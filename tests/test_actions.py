import math

import pytest

from range_ai.config import (
    BOSS_BULLET_SPEED,
    BOSS_SPEED,
    ENEMY_BULLET_SPEED,
    LASER_SPEED,
    PLAYER_SPEED,
    ROLE_BOSS_MOVEMENT,
    ROLE_BOSS_SHOOTING,
    ROLE_COMPANION_SHOOTING,
    ROLE_ENEMY_SHOOTING,
    ROLE_PLAYER_MOVEMENT,
    ROLE_PLAYER_SHOOTING,
)
from range_ai.core.actions import (
    BURST,
    DASH_RIGHT,
    NO_SHOT,
    PREDICTIVE_AIM,
    SHOOT_NEAREST,
    SPREAD,
    STOP,
    AimContext,
    aimed_shot,
    boss_volley,
    movement_velocity,
    targeted_shot,
)
from range_ai.core.experience import MOVEMENT_ACTION_NAMES, action_to_name, name_to_action
from range_ai.core.roles import get_role_spec
from range_ai.errors import UnknownRoleError
from range_ai.runtime.geometry import Vec2, vector_length

CONTEXT = AimContext(
    shooter=Vec2(100.0, 100.0),
    player=Vec2(200.0, 100.0),
    player_velocity=Vec2(0.0, 2.0),
    targets=(Vec2(300.0, 100.0), Vec2(100.0, 150.0)),
)


@pytest.mark.parametrize(
    "role",
    [ROLE_PLAYER_SHOOTING, ROLE_COMPANION_SHOOTING, ROLE_ENEMY_SHOOTING, ROLE_BOSS_SHOOTING],
)
def test_action_zero_never_fires(role):
    assert get_role_spec(role).effect(NO_SHOT, CONTEXT) is None


def test_movement_actions():
    north = movement_velocity(0, PLAYER_SPEED)
    southwest = movement_velocity(5, PLAYER_SPEED)

    assert (north.x, north.y) == (0.0, -PLAYER_SPEED)
    assert (southwest.x, southwest.y) == (-PLAYER_SPEED, PLAYER_SPEED)
    assert vector_length(movement_velocity(STOP, PLAYER_SPEED)) == 0.0
    assert vector_length(movement_velocity(42, PLAYER_SPEED)) == 0.0


def test_dash_only_for_boss_movement():
    boss_dash = get_role_spec(ROLE_BOSS_MOVEMENT).effect(DASH_RIGHT)
    player_dash = get_role_spec(ROLE_PLAYER_MOVEMENT).effect(DASH_RIGHT)

    assert boss_dash.x == pytest.approx(BOSS_SPEED * 1.5)
    assert boss_dash.y == 0.0
    assert vector_length(player_dash) == 0.0


def test_shoot_nearest_targets_closest_point():
    shot = targeted_shot(SHOOT_NEAREST, CONTEXT, LASER_SPEED)

    assert shot.x == pytest.approx(0.0)
    assert shot.y == pytest.approx(LASER_SPEED)


def test_shoot_nearest_without_targets_does_nothing():
    context = AimContext(shooter=Vec2(100.0, 100.0))

    assert targeted_shot(SHOOT_NEAREST, context, LASER_SPEED) is None
    assert targeted_shot(SHOOT_NEAREST, None, LASER_SPEED) is None


def test_zero_length_aim_does_nothing():
    assert aimed_shot(Vec2(5.0, 5.0), Vec2(5.0, 5.0), LASER_SPEED) is None


def test_predictive_aim_leads_the_player():
    shot = get_role_spec(ROLE_ENEMY_SHOOTING).effect(PREDICTIVE_AIM, CONTEXT)

    assert shot.y > 0.0
    assert vector_length(shot) == pytest.approx(ENEMY_BULLET_SPEED)


def test_boss_volleys():
    single = boss_volley(1, CONTEXT, BOSS_BULLET_SPEED, 10)
    burst = boss_volley(BURST, CONTEXT, BOSS_BULLET_SPEED, 10)
    spread = boss_volley(SPREAD, CONTEXT, BOSS_BULLET_SPEED, 10)

    assert len(single) == 1
    assert len(burst) == 3
    assert burst[1].y == pytest.approx(-burst[2].y)
    assert len(spread) == 5
    assert all(vector_length(shot) == pytest.approx(BOSS_BULLET_SPEED) for shot in spread)
    assert math.atan2(spread[0].y, spread[0].x) == pytest.approx(-0.4)
    assert boss_volley(BURST, AimContext(shooter=Vec2(0.0, 0.0)), BOSS_BULLET_SPEED, 10) is None


def test_action_names():
    assert action_to_name(8) == "STOP"
    assert action_to_name(99) == "UNKNOWN"
    assert name_to_action("northeast") == 1
    assert name_to_action("sideways") == 8
    assert MOVEMENT_ACTION_NAMES[name_to_action("WEST")] == "WEST"
    assert get_role_spec(ROLE_BOSS_SHOOTING).action_names[SPREAD] == "SPREAD"


def test_unknown_role():
    with pytest.raises(UnknownRoleError):
        get_role_spec("referee")
