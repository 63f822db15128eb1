from collections import Counter
import random

import pytest

from range_ai.config import ROLE_PLAYER_MOVEMENT, ROLE_PLAYER_SHOOTING
from range_ai.core.agent import RoleAgent, model_path_for
from range_ai.core.entities import Projectile
from range_ai.errors import StateSizeMismatchError
from range_ai.runtime.geometry import Vec2
from range_ai.train.model import ModelConfig, QTrainer
from range_ai.train.replay import ExperienceReplayBuffer

STATE = [0.5] * 21
OTHER_STATE = [0.25] * 21


def make_agent(role=ROLE_PLAYER_MOVEMENT, seed=0, **kwargs):
    return RoleAgent(role, rng=random.Random(seed), **kwargs)


def test_full_exploration_is_uniform():
    agent = make_agent()
    agent.epsilon = 1.0

    counts = Counter(agent.select_action(STATE) for _ in range(9000))

    assert set(counts) == set(range(9))
    assert all(800 < count < 1200 for count in counts.values())


def test_greedy_matches_trainer():
    agent = make_agent()
    agent.epsilon = 0.0

    assert agent.select_action(STATE) == agent.trainer.predict(STATE)


def test_state_size_mismatch_is_rejected():
    with pytest.raises(StateSizeMismatchError):
        RoleAgent(ROLE_PLAYER_MOVEMENT, config=ModelConfig(20, 9, 0.001, 0.2))

    agent = make_agent()
    with pytest.raises(StateSizeMismatchError):
        agent.select_action([0.0] * 20)
    with pytest.raises(StateSizeMismatchError):
        agent.learn(STATE, 0, 1.0, [0.0] * 22, False)


def test_action_count_mismatch_is_rejected():
    with pytest.raises(ValueError):
        RoleAgent(ROLE_PLAYER_MOVEMENT, config=ModelConfig(21, 10, 0.001, 0.2))


def test_encode_uses_role_encoder():
    agent = make_agent()

    state = agent.encode(player=Vec2(200.0, 200.0), bullets=(), window_size=(1200, 900))

    assert len(state) == 21


def test_online_learning_moves_away_from_punished_action():
    agent = make_agent()
    agent.epsilon = 0.0
    window = (1200, 900)
    player = Vec2(200.0, 200.0)
    # One bullet at dx=0.1, dy=0 moving with velX=0.5 once normalized.
    bullet = Projectile(Vec2(player.x + 0.1 * window[0], player.y), Vec2(5.0, 0.0))
    state = agent.encode(player=player, bullets=[bullet], window_size=window)
    calm_state = agent.encode(player=player, bullets=(), window_size=window)
    assert state[2:7] == pytest.approx([0.1, 0.0, 0.1, 0.5, 0.0])
    assert agent.select_action(state) == 0

    for _ in range(50):
        td_errors = agent.learn(state, 0, -50.0, state, True)
        assert len(td_errors) == 1
    agent.learn(state, 4, 2.0, calm_state, False)

    assert agent.select_action(state) != 0
    assert agent.trainer.q_values(state)[0] < 0.0


def test_replay_learning_trains_in_batches():
    buffer = ExperienceReplayBuffer(100, rng=random.Random(1))
    agent = make_agent(learn_mode="replay", replay_buffer=buffer, train_every=1)
    batch_size = agent.config.batch_size

    for _ in range(batch_size - 1):
        assert agent.learn(STATE, 0, -1.0, STATE, False) == []
    td_errors = agent.learn(STATE, 0, -1.0, STATE, False)

    assert len(td_errors) == batch_size
    assert agent.trainer.training_steps == 1
    assert len(buffer) == batch_size
    assert any(stored.sample_count > 0 for stored in buffer.snapshot())


def test_unknown_learn_mode():
    with pytest.raises(ValueError):
        make_agent(learn_mode="offline")


def test_shooting_agent_effect_and_names():
    agent = make_agent(ROLE_PLAYER_SHOOTING)

    assert agent.action_to_effect(0) is None
    assert agent.action_name(9) == "SHOOT_NEAREST"


def test_end_episode_tracks_average_reward():
    agent = make_agent()

    agent.end_episode(10.0)
    agent.end_episode(20.0)

    assert agent.episodes_completed == 2
    assert agent.get_average_reward() == pytest.approx(15.0)


def test_save_and_load_round_trip(tmp_path):
    agent = make_agent()
    for _ in range(5):
        agent.learn(STATE, 3, 5.0, OTHER_STATE, True)
    path = agent.save_model(model_path_for(ROLE_PLAYER_MOVEMENT, tmp_path))

    restored = make_agent(seed=1)

    assert path.name == "player_movement_model.json"
    assert restored.load_model(path) is True
    assert restored.trainer.q_values(STATE) == pytest.approx(agent.trainer.q_values(STATE))


def test_corrupt_model_falls_back_to_fresh_trainer(tmp_path):
    path = tmp_path / "player_movement_model.json"
    path.write_text("{not json", encoding="utf-8")
    agent = make_agent()

    assert agent.load_model(path) is False
    assert isinstance(agent.trainer, QTrainer)
    assert agent.trainer.training_steps == 0
    assert agent.load_model(tmp_path / "missing.json") is False
