import pytest

from range_ai.config import (
    PAD_ACTOR,
    PAD_FAR_OBSTACLE,
    PAD_NEAR_OBSTACLE,
    PAD_PROJECTILE,
    PAD_PROJECTILE_POSITION,
    PAD_STEALTH_ENEMY,
    PAD_TARGET_WITH_HEALTH,
)
from range_ai.core import encoders
from range_ai.core.entities import Combatant, Obstacle, Projectile
from range_ai.runtime.geometry import Vec2

WINDOW = (1200, 900)


def bullets(count, origin=Vec2(200.0, 200.0)):
    return [
        Projectile(Vec2(origin.x + 10.0 * (index + 1), origin.y), Vec2(-5.0, 0.0))
        for index in range(count)
    ]


@pytest.mark.parametrize("count", [0, 1, 3, 7])
def test_player_movement_size_is_fixed(count):
    features = encoders.encode_player_movement(
        player=Vec2(200.0, 200.0),
        bullets=bullets(count),
        window_size=WINDOW,
    )

    assert len(features) == 21


def test_player_movement_pads_missing_bullets_with_sentinel():
    features = encoders.encode_player_movement(player=Vec2(200.0, 200.0), window_size=WINDOW)

    assert features[2:17] == list(PAD_PROJECTILE) * 3


def test_player_movement_keeps_nearest_bullets_first():
    far = Projectile(Vec2(500.0, 200.0), Vec2(-5.0, 0.0))
    near = Projectile(Vec2(210.0, 200.0), Vec2(-5.0, 0.0))
    features = encoders.encode_player_movement(
        player=Vec2(200.0, 200.0),
        bullets=[far, near],
        window_size=WINDOW,
    )

    assert features[2] == pytest.approx(10.0 / 1200)
    assert features[4] == pytest.approx(10.0 / 1200)
    assert features[5] == pytest.approx(-0.5)
    assert features[12:17] == list(PAD_PROJECTILE)


def test_player_movement_wall_distances():
    features = encoders.encode_player_movement(player=Vec2(200.0, 300.0), window_size=WINDOW)

    assert features[-4:] == pytest.approx([2.0, 3.0, 10.0, 6.0])


@pytest.mark.parametrize("count", [0, 2, 5])
def test_targeted_shooting_pads_targets(count):
    targets = [Combatant(Vec2(300.0 + 20.0 * index, 300.0), health=3) for index in range(count)]
    features = encoders.encode_targeted_shooting(shooter=Vec2(100.0, 100.0), targets=targets, window_size=WINDOW)

    assert len(features) == 14
    if count < 3:
        assert features[2 + 4 * count:] == list(PAD_TARGET_WITH_HEALTH) * (3 - count)
    if count:
        assert features[5] == pytest.approx(0.03)


def test_companion_movement_obstacle_features():
    obstacle = Obstacle(Vec2(260.0, 200.0), 40.0, 60.0)
    features = encoders.encode_companion_movement(
        companion=Vec2(200.0, 200.0),
        player=Vec2(250.0, 200.0),
        obstacles=[obstacle],
        window_size=WINDOW,
    )

    assert len(features) == 32
    assert features[24:28] == pytest.approx([60.0 / 1200, 0.0, 60.0 / 1200, 100.0 / 2100])
    assert features[28:32] == list(PAD_NEAR_OBSTACLE)


def test_boss_movement_pads_lasers_and_obstacles():
    features = encoders.encode_boss_movement(boss=Vec2(600.0, 450.0), player=Vec2(500.0, 450.0), window_size=WINDOW)

    assert len(features) == 32
    assert features[5:11] == list(PAD_ACTOR) * 2
    assert features[11:20] == list(PAD_PROJECTILE_POSITION) * 3
    assert features[24:32] == list(PAD_FAR_OBSTACLE) * 2


def test_boss_movement_measures_obstacles_to_center():
    obstacle = Obstacle(Vec2(600.0, 450.0), 100.0, 40.0)
    features = encoders.encode_boss_movement(
        boss=Vec2(600.0, 450.0),
        player=Vec2(500.0, 450.0),
        obstacles=[obstacle],
        window_size=WINDOW,
    )

    assert features[24:28] == pytest.approx([50.0 / 1200, 20.0 / 900, ((50.0 / 1200) ** 2 + (20.0 / 900) ** 2) ** 0.5, 1.0])


def test_stealth_flags_detected_enemies():
    enemies = [Vec2(220.0, 200.0), Vec2(400.0, 200.0)]
    features = encoders.encode_player_stealth_movement(player=Vec2(200.0, 200.0), enemies=enemies, window_size=WINDOW)

    assert len(features) == 21
    assert features[4] == 1.0
    assert features[7] == 0.0
    assert features[8:17] == list(PAD_STEALTH_ENEMY) * 3


def test_patrol_flattens_coverage_grid():
    coverage = [[0.1 * (3 * x + y) for y in range(3)] for x in range(3)]
    features = encoders.encode_enemy_patrol(
        enemy=Vec2(600.0, 450.0),
        velocity=Vec2(2.0, 0.0),
        coverage=coverage,
        window_size=WINDOW,
    )

    assert len(features) == 17
    assert features[2:4] == [1.0, 0.0]
    assert features[8:] == pytest.approx([0.1 * index for index in range(9)])


def test_remaining_encoders_have_fixed_sizes():
    enemy = encoders.encode_enemy_movement(enemy=Vec2(500.0, 400.0), player=Vec2(600.0, 450.0), window_size=WINDOW)
    enemy_shooting = encoders.encode_enemy_shooting(enemy=Vec2(500.0, 400.0), player=Vec2(600.0, 450.0), window_size=WINDOW)
    boss_shooting = encoders.encode_boss_shooting(
        boss=Vec2(500.0, 400.0),
        player=Vec2(600.0, 450.0),
        companions=[Vec2(0.0, 0.0)] * 6,
        window_size=WINDOW,
    )
    solo = encoders.encode_companion_solo_movement(
        companion=Vec2(500.0, 400.0),
        bullets=bullets(5),
        enemies=[Vec2(510.0, 400.0)],
        window_size=WINDOW,
    )

    assert (len(enemy), len(enemy_shooting), len(boss_shooting), len(solo)) == (20, 13, 16, 27)
    assert solo[20:23] == list(PAD_ACTOR)


def test_fit_to_size_pads_truncates_and_counts():
    role = "fit_to_size_test_role"
    before = encoders.padding_event_count(role)

    assert encoders.fit_to_size(role, [1.0, 2.0], 2) == [1.0, 2.0]
    assert encoders.padding_event_count(role) == before
    assert encoders.fit_to_size(role, [1.0], 3) == [1.0, 0.0, 0.0]
    assert encoders.fit_to_size(role, [1.0, 2.0, 3.0], 2) == [1.0, 2.0]
    assert encoders.padding_event_count(role) == before + 2
