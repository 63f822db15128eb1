import json

import pytest

from range_ai.core.experience import Experience
from range_ai.errors import ModelLoadError
from range_ai.train.model import ModelConfig, QNetwork, QTrainer, Trainer

CONFIG = ModelConfig(state_space_size=4, action_space_size=3, learning_rate=0.01, exploration_rate=0.1)
STATE = (1.0, 0.0, 0.5, 0.25)


def test_linear_network_starts_at_zero():
    trainer = QTrainer(CONFIG)

    assert trainer.q_values(STATE) == [0.0, 0.0, 0.0]
    assert trainer.predict(STATE) == 0
    assert isinstance(trainer, Trainer)


def test_hidden_layers_build_mlp():
    network = QNetwork(4, (8, 8), 3)

    assert len(network.feature_extractor) == 4
    assert network.head.in_features == 8


def test_train_on_batch_returns_td_errors():
    trainer = QTrainer(CONFIG)
    batch = [
        Experience.create(STATE, 1, 3.0, STATE, True),
        Experience.create(STATE, 2, -1.0, STATE, True),
    ]

    td_errors = trainer.train_on_batch(batch, weights=[1.0, 0.5])

    assert td_errors == pytest.approx([3.0, 1.0])
    assert trainer.training_steps == 1
    assert trainer.train_on_batch([]) == []


def test_export_and_load_preserve_predictions(tmp_path):
    trainer = QTrainer(CONFIG)
    for _ in range(20):
        trainer.train_on_batch([Experience.create(STATE, 2, 4.0, STATE, True)])
    trainer.record_episode(12.0)
    path = tmp_path / "models" / "unit_model.json"

    trainer.export_model(path)
    restored = QTrainer.load_model(path, CONFIG)

    assert [p.name for p in path.parent.iterdir()] == ["unit_model.json"]
    assert restored.predict(STATE) == trainer.predict(STATE) == 2
    assert restored.training_steps == 20
    assert restored.get_average_reward() == pytest.approx(12.0)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["performance"] == pytest.approx(12.0)
    assert payload["config"]["state_space_size"] == 4


def test_load_rejects_missing_and_mismatched_files(tmp_path):
    with pytest.raises(ModelLoadError):
        QTrainer.load_model(tmp_path / "absent.json", CONFIG)

    path = tmp_path / "model.json"
    QTrainer(CONFIG).export_model(path)
    wider = ModelConfig(state_space_size=5, action_space_size=3, learning_rate=0.01, exploration_rate=0.1)
    with pytest.raises(ModelLoadError):
        QTrainer.load_model(path, wider)

    path.write_text(json.dumps({"config": {}}), encoding="utf-8")
    with pytest.raises(ModelLoadError):
        QTrainer.load_model(path, CONFIG)
