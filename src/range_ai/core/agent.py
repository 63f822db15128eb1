"""Epsilon-greedy role agent shared by every trained behaviour."""

from __future__ import annotations

import logging
from pathlib import Path
import random
from typing import Any, Sequence

from range_ai.config import (
    LEARN_MODE,
    LEARN_MODES,
    MODEL_DIR,
    PER_BETA,
    REPLAY_BUFFER_SIZE,
    REPLAY_TRAIN_EVERY,
)
from range_ai.core.actions import AimContext
from range_ai.core.encoders import fit_to_size
from range_ai.core.experience import Experience, action_to_name
from range_ai.core.roles import default_model_config, get_role_spec
from range_ai.errors import ModelLoadError, StateSizeMismatchError
from range_ai.logging_utils import format_display_path
from range_ai.train.model import ModelConfig, QTrainer, Trainer
from range_ai.train.replay import ExperienceReplayBuffer

LOGGER = logging.getLogger("range_ai.agent")


def model_path_for(role: str, model_dir: str | Path = MODEL_DIR) -> Path:
    return Path(model_dir) / f"{role}_model.json"


class RoleAgent:
    """One independently trained behaviour, e.g. boss shooting."""

    def __init__(
        self,
        role: str,
        config: ModelConfig | None = None,
        *,
        trainer: Trainer | None = None,
        trainer_cls: type = QTrainer,
        rng: random.Random | None = None,
        learn_mode: str = LEARN_MODE,
        replay_buffer: ExperienceReplayBuffer | None = None,
        train_every: int = REPLAY_TRAIN_EVERY,
    ):
        self.spec = get_role_spec(role)
        self.role = role
        self.config = config or default_model_config(role)
        if self.spec.state_size != self.config.state_space_size:
            raise StateSizeMismatchError(
                f"{role}: encoder produces {self.spec.state_size} features, "
                f"config expects {self.config.state_space_size}"
            )
        if self.spec.action_count != self.config.action_space_size:
            raise ValueError(
                f"{role}: action table has {self.spec.action_count} actions, "
                f"config expects {self.config.action_space_size}"
            )
        if learn_mode not in LEARN_MODES:
            raise ValueError(f"learn_mode must be one of {list(LEARN_MODES)}, got {learn_mode!r}")

        self.trainer_cls = trainer_cls
        self.trainer = trainer if trainer is not None else trainer_cls(self.config)
        self.rng = rng or random.Random()
        self.epsilon = self.config.exploration_rate
        self.learn_mode = learn_mode
        self.train_every = max(1, int(train_every))
        self.replay_buffer = replay_buffer
        if learn_mode == "replay" and self.replay_buffer is None:
            self.replay_buffer = ExperienceReplayBuffer(REPLAY_BUFFER_SIZE, rng=self.rng)
        self.learn_calls = 0
        self.episodes_completed = 0

    def __repr__(self) -> str:
        return f"RoleAgent(role={self.role!r}, epsilon={self.epsilon:.3f}, mode={self.learn_mode!r})"

    def _check_state(self, state: Sequence[float], label: str = "state") -> None:
        if len(state) != self.config.state_space_size:
            raise StateSizeMismatchError(
                f"{self.role}: {label} has {len(state)} values, expected {self.config.state_space_size}"
            )

    def encode(self, **snapshot: Any) -> list[float]:
        features = self.spec.encoder(**snapshot)
        return fit_to_size(self.role, features, self.config.state_space_size)

    def select_action(self, state: Sequence[float]) -> int:
        self._check_state(state)
        if self.rng.random() < self.epsilon:
            return self.rng.randrange(self.config.action_space_size)
        return self.trainer.predict(state)

    def action_to_effect(self, action: int, context: AimContext | None = None):
        """Velocity for movement roles, shot velocity (or volley) or None for shooters."""

        return self.spec.effect(action, context)

    def action_name(self, action: int) -> str:
        return action_to_name(action, self.spec.action_names)

    def learn(
        self,
        state: Sequence[float],
        action: int,
        reward: float,
        next_state: Sequence[float],
        done: bool,
    ) -> list[float]:
        """Returns TD errors of whatever was trained this call, if anything."""

        self._check_state(state)
        self._check_state(next_state, "next_state")
        experience = Experience.create(state, action, reward, next_state, done)
        self.learn_calls += 1

        if self.learn_mode == "online":
            return self.trainer.train_on_batch([experience])

        self.replay_buffer.add([experience])
        if len(self.replay_buffer) < self.config.batch_size or self.learn_calls % self.train_every != 0:
            return []
        batch = self.replay_buffer.sample_batch(self.config.batch_size)
        weights = self.replay_buffer.importance_weights(batch, PER_BETA)
        td_errors = self.trainer.train_on_batch([stored.experience for stored in batch], weights)
        self.replay_buffer.update_priorities(batch, td_errors)
        return td_errors

    def end_episode(self, total_reward: float) -> None:
        self.episodes_completed += 1
        self.trainer.record_episode(total_reward)

    def get_average_reward(self) -> float:
        return self.trainer.get_average_reward()

    def save_model(self, path: str | Path | None = None) -> Path:
        target = Path(path) if path is not None else model_path_for(self.role)
        self.trainer.export_model(target, performance=self.get_average_reward())
        return target

    def load_model(self, path: str | Path | None = None) -> bool:
        """Swap in a saved trainer; on failure keep a fresh one and return False."""

        source = Path(path) if path is not None else model_path_for(self.role)
        try:
            self.trainer = self.trainer_cls.load_model(source, self.config)
        except ModelLoadError as exc:
            LOGGER.warning("model load failed\trole=%s\tpath=%s\t%s", self.role, format_display_path(source), exc)
            self.config = default_model_config(self.role)
            self.trainer = self.trainer_cls(self.config)
            return False
        return True
