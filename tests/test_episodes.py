import random

import pytest

from range_ai.config import (
    ROLE_COMPANION_SOLO_MOVEMENT,
    ROLE_ENEMY_SHOOTING,
    ROLE_PLAYER_MOVEMENT,
    ROLE_PLAYER_SHOOTING,
    TRAINING_ORDER,
)
from range_ai.core.agent import RoleAgent
from range_ai.core.entities import Combatant, Obstacle, Projectile
from range_ai.core.experience import EpisodeRecorder
from range_ai.runtime.geometry import Rect, Vec2
from range_ai.train.episodes import (
    PlayerMovementDriver,
    advance_projectiles,
    build_driver,
    fit_obstacle,
)
from range_ai.train.ranges import TrainingRangeSystem

SYSTEM = TrainingRangeSystem()


def make_driver(role, seed=0, learn=True):
    agent = RoleAgent(role, rng=random.Random(seed))
    return build_driver(agent, rng=random.Random(seed + 1), learn=learn)


@pytest.mark.parametrize("role", TRAINING_ORDER)
def test_every_role_runs_a_short_episode(role):
    driver = make_driver(role)
    bounds = SYSTEM.get_range(role)

    result = driver.run_episode(bounds, SYSTEM.window_size, episode_length=40)

    assert result.role == role
    assert 1 <= result.frames <= 40
    assert result.transitions >= result.frames
    assert driver.agent.episodes_completed == 1
    assert driver.agent.trainer.training_steps == result.transitions
    assert all(bounds.contains(projectile.position) for projectile in driver.projectiles())


def test_evaluation_episodes_do_not_learn():
    driver = make_driver(ROLE_PLAYER_MOVEMENT, learn=False)

    result = driver.run_episode(SYSTEM.get_range(ROLE_PLAYER_MOVEMENT), SYSTEM.window_size, episode_length=20)

    assert result.transitions == result.frames
    assert driver.agent.trainer.training_steps == 0
    assert driver.agent.episodes_completed == 0


def test_driver_rejects_foreign_agent():
    with pytest.raises(ValueError):
        PlayerMovementDriver(RoleAgent(ROLE_PLAYER_SHOOTING))


def test_projectiles_leaving_the_range_despawn():
    bounds = Rect(0.0, 0.0, 100.0, 100.0)
    inside = Projectile(Vec2(50.0, 50.0), Vec2(5.0, 0.0))
    leaving = Projectile(Vec2(98.0, 50.0), Vec2(5.0, 0.0))

    moved = advance_projectiles([inside, leaving], bounds)

    assert len(moved) == 1
    assert moved[0].position.x == 55.0


def test_fit_obstacle_shifts_inside_range():
    bounds = Rect(0.0, 0.0, 100.0, 100.0)

    fitted = fit_obstacle(Obstacle(Vec2(80.0, -10.0), 40.0, 30.0), bounds)

    assert (fitted.position.x, fitted.position.y) == (60.0, 0.0)


def test_bullet_hit_ends_movement_episode():
    driver = make_driver(ROLE_PLAYER_MOVEMENT)
    driver.reset(SYSTEM.get_range(ROLE_PLAYER_MOVEMENT), SYSTEM.window_size)
    position = driver.position
    driver.incoming = [Projectile(Vec2(position.x + 6.0, position.y), Vec2(-5.0, 0.0))]

    reward, terminal = driver.step(8, 0)

    assert terminal
    assert reward < -40.0
    assert driver.incoming == []


def test_each_simultaneous_hit_is_penalized():
    driver = make_driver(ROLE_PLAYER_MOVEMENT)
    driver.reset(SYSTEM.get_range(ROLE_PLAYER_MOVEMENT), SYSTEM.window_size)
    position = driver.position
    driver.incoming = [
        Projectile(Vec2(position.x + 6.0, position.y), Vec2(-5.0, 0.0)),
        Projectile(Vec2(position.x - 6.0, position.y), Vec2(5.0, 0.0)),
    ]

    reward, terminal = driver.step(8, 0)

    assert terminal
    assert reward <= -100.0
    assert driver.incoming == []


def test_shooting_episode_ends_when_enemies_are_destroyed():
    driver = make_driver(ROLE_PLAYER_SHOOTING)
    bounds = SYSTEM.get_range(ROLE_PLAYER_SHOOTING)
    driver.reset(bounds, SYSTEM.window_size)
    driver.shooter = bounds.center
    driver.enemies = [Combatant(Vec2(bounds.center.x + 10.0, bounds.center.y), health=1)]

    reward, terminal = driver.step(3, 0)

    assert terminal
    assert reward == pytest.approx(-0.1 + 10.0 + 20.0)


def test_enemy_shooting_never_terminates():
    driver = make_driver(ROLE_ENEMY_SHOOTING)
    driver.reset(SYSTEM.get_range(ROLE_ENEMY_SHOOTING), SYSTEM.window_size)

    assert all(not driver.step(action, frame)[1] for frame, action in enumerate([0, 9, 10, 1, 5]))
    assert driver.targets[0].is_player
    assert len(driver.bullets) <= driver.max_bullets


def test_solo_curriculum():
    driver = make_driver(ROLE_COMPANION_SOLO_MOVEMENT)

    assert {driver.companion_count_for(episode) for episode in range(1, 21)} == {1}
    assert {driver.companion_count_for(episode) for episode in range(21, 41)} == {2}
    assert {driver.companion_count_for(episode) for episode in range(41, 120)} == {3, 4}


def test_solo_first_episode_trains_one_companion():
    driver = make_driver(ROLE_COMPANION_SOLO_MOVEMENT)

    driver.run_episode(SYSTEM.get_range(ROLE_COMPANION_SOLO_MOVEMENT), SYSTEM.window_size, episode_length=5)

    assert driver.companion_count == 1
    assert driver.episodes_run == 1


def test_recorder_tracks_running_stats():
    recorder = EpisodeRecorder()
    recorder.record([0.0], 1, 2.0, [1.0], False)
    recorder.record([1.0], 0, -0.5, [2.0], True)

    assert recorder.current_stats() == (2, 1.5)
    log = recorder.end_episode()
    assert log.episode_number == 1
    assert log.total_reward == 1.5
    assert recorder.current_stats() == (0, 0.0)
