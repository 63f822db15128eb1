"""Q-network, trainer contract and the reference torch trainer."""

from __future__ import annotations

from collections import deque
import copy
from dataclasses import asdict, dataclass, field
import json
import logging
import os
from pathlib import Path
import threading
import time
from typing import Protocol, Sequence, runtime_checkable

import torch
import torch.nn as nn
import torch.optim as optim

from range_ai.config import (
    DISCOUNT_FACTOR,
    GRAD_CLIP_NORM,
    MODEL_SAVE_RETRIES,
    MODEL_SAVE_RETRY_DELAY_SECONDS,
    REPLAY_BATCH_SIZE,
    REWARD_ROLLING_WINDOW,
    TARGET_SYNC_EVERY,
    USE_GPU,
    WEIGHT_DECAY,
)
from range_ai.core.experience import Experience
from range_ai.errors import ModelLoadError
from range_ai.logging_utils import format_display_path
from range_ai.runtime import get_torch_device

LOGGER = logging.getLogger("range_ai.model")

device = get_torch_device(prefer_gpu=USE_GPU)

_PATH_LOCKS: dict[str, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _PATH_LOCKS_GUARD:
        return _PATH_LOCKS.setdefault(key, threading.Lock())


@dataclass(frozen=True)
class ModelConfig:
    state_space_size: int
    action_space_size: int
    learning_rate: float
    exploration_rate: float
    discount_factor: float = DISCOUNT_FACTOR
    batch_size: int = REPLAY_BATCH_SIZE
    hidden_sizes: tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, values: dict) -> "ModelConfig":
        return cls(
            state_space_size=int(values["state_space_size"]),
            action_space_size=int(values["action_space_size"]),
            learning_rate=float(values["learning_rate"]),
            exploration_rate=float(values["exploration_rate"]),
            discount_factor=float(values.get("discount_factor", DISCOUNT_FACTOR)),
            batch_size=int(values.get("batch_size", REPLAY_BATCH_SIZE)),
            hidden_sizes=tuple(int(size) for size in values.get("hidden_sizes", ())),
        )


@runtime_checkable
class Trainer(Protocol):
    """Predictor/learner every role agent talks to."""

    config: ModelConfig

    def predict(self, state: Sequence[float]) -> int: ...

    def train_on_batch(
        self,
        experiences: Sequence[Experience],
        weights: Sequence[float] | None = None,
    ) -> list[float]: ...

    def export_model(self, path: str | Path, performance: float | None = None) -> None: ...

    @classmethod
    def load_model(cls, path: str | Path, config: ModelConfig) -> "Trainer": ...

    def get_average_reward(self) -> float: ...

    def record_episode(self, total_reward: float) -> None: ...


class QNetwork(nn.Module):
    """Linear Q-function by default, GELU MLP when hidden sizes are given."""

    def __init__(self, input_size: int, hidden_sizes: Sequence[int], output_size: int):
        super().__init__()
        layers: list[nn.Module] = []
        in_features = input_size
        for hidden in hidden_sizes:
            layers.extend([nn.Linear(in_features, hidden), nn.GELU()])
            in_features = hidden

        self.feature_extractor = nn.Sequential(*layers)
        if hidden_sizes:
            self.head = nn.Linear(in_features, output_size)
        else:
            self.head = nn.Linear(in_features, output_size, bias=False)
            nn.init.zeros_(self.head.weight)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        if x.dim() == 1:
            x = x.unsqueeze(0)
        return self.head(self.feature_extractor(x))

    def copy(self):
        return copy.deepcopy(self)


class QTrainer:
    """Q-learning trainer with a periodically synced target network."""

    def __init__(self, config: ModelConfig):
        self.config = config
        self.online_model = QNetwork(
            config.state_space_size,
            config.hidden_sizes,
            config.action_space_size,
        ).to(device)
        self.target_model = self.online_model.copy().to(device)
        self.target_model.eval()
        self.optimizer = optim.AdamW(
            self.online_model.parameters(),
            lr=config.learning_rate,
            weight_decay=WEIGHT_DECAY,
        )
        self.loss_fn = nn.SmoothL1Loss(reduction="none")
        self.training_steps = 0
        self.episode_rewards: deque[float] = deque(maxlen=REWARD_ROLLING_WINDOW)

    def predict(self, state: Sequence[float]) -> int:
        with torch.no_grad():
            q_values = self.online_model(torch.as_tensor(state, dtype=torch.float32, device=device))
        return int(torch.argmax(q_values, dim=1).item())

    def q_values(self, state: Sequence[float]) -> list[float]:
        with torch.no_grad():
            q_values = self.online_model(torch.as_tensor(state, dtype=torch.float32, device=device))
        return [float(value) for value in q_values.squeeze(0).tolist()]

    def train_on_batch(
        self,
        experiences: Sequence[Experience],
        weights: Sequence[float] | None = None,
    ) -> list[float]:
        """One optimizer step; returns absolute TD errors in batch order."""

        if not experiences:
            return []

        state = torch.as_tensor([e.state for e in experiences], dtype=torch.float32, device=device)
        next_state = torch.as_tensor([e.next_state for e in experiences], dtype=torch.float32, device=device)
        action = torch.as_tensor([e.action for e in experiences], dtype=torch.long, device=device)
        reward = torch.as_tensor([e.reward for e in experiences], dtype=torch.float32, device=device)
        done = torch.as_tensor([e.is_done for e in experiences], dtype=torch.bool, device=device)

        current_q = self.online_model(state).gather(1, action.unsqueeze(1)).squeeze(1)
        with torch.no_grad():
            next_q = self.target_model(next_state).max(dim=1).values
            targets = reward + (~done).float() * self.config.discount_factor * next_q

        td_errors = targets - current_q
        per_sample_loss = self.loss_fn(current_q, targets)
        if weights is not None:
            per_sample_loss = per_sample_loss * torch.as_tensor(weights, dtype=torch.float32, device=device)
        loss = per_sample_loss.mean()
        self.optimizer.zero_grad()
        loss.backward()
        torch.nn.utils.clip_grad_norm_(self.online_model.parameters(), GRAD_CLIP_NORM)
        self.optimizer.step()

        self.training_steps += 1
        if self.training_steps % TARGET_SYNC_EVERY == 0:
            self.target_model.load_state_dict(self.online_model.state_dict())
        return td_errors.detach().abs().cpu().tolist()

    def record_episode(self, total_reward: float) -> None:
        self.episode_rewards.append(float(total_reward))

    def get_average_reward(self) -> float:
        if not self.episode_rewards:
            return 0.0
        return sum(self.episode_rewards) / len(self.episode_rewards)

    def _payload(self, performance: float | None) -> dict:
        weights = {
            name: tensor.detach().cpu().tolist()
            for name, tensor in self.online_model.state_dict().items()
        }
        average = self.get_average_reward()
        return {
            "config": asdict(self.config),
            "weights": weights,
            "metrics": {
                "average_episode_reward": average,
                "episode_rewards": list(self.episode_rewards),
                "training_steps": self.training_steps,
            },
            "performance": average if performance is None else float(performance),
        }

    def export_model(self, path: str | Path, performance: float | None = None) -> None:
        """Atomically write the model as JSON, retrying on transient failures."""

        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = self._payload(performance)
        temp_file = target.with_name(f"{target.name}.tmp.{os.getpid()}.{threading.get_ident()}")
        last_error = None

        with _lock_for(target):
            for attempt in range(MODEL_SAVE_RETRIES):
                try:
                    with open(temp_file, "w", encoding="utf-8") as handle:
                        json.dump(payload, handle)
                    os.replace(temp_file, target)
                    return
                except OSError as error:
                    last_error = error
                    if temp_file.exists():
                        try:
                            temp_file.unlink()
                        except OSError:
                            pass
                    if attempt < MODEL_SAVE_RETRIES - 1:
                        time.sleep(MODEL_SAVE_RETRY_DELAY_SECONDS * (attempt + 1))

        raise RuntimeError(
            f"Failed to save model to '{format_display_path(target)}' after {MODEL_SAVE_RETRIES} attempts."
        ) from last_error

    @classmethod
    def load_model(cls, path: str | Path, config: ModelConfig) -> "QTrainer":
        source = Path(path)
        try:
            with _lock_for(source):
                with open(source, "r", encoding="utf-8") as handle:
                    payload = json.load(handle)
        except FileNotFoundError as exc:
            raise ModelLoadError(f"model file not found: {format_display_path(source)}") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise ModelLoadError(f"unreadable model file {format_display_path(source)}: {exc}") from exc

        try:
            saved = ModelConfig.from_dict(payload["config"])
            if (
                saved.state_space_size != config.state_space_size
                or saved.action_space_size != config.action_space_size
                or saved.hidden_sizes != config.hidden_sizes
            ):
                raise ModelLoadError(
                    f"model shape mismatch in {format_display_path(source)}: "
                    f"saved={saved.state_space_size}x{saved.action_space_size}{list(saved.hidden_sizes)}, "
                    f"expected={config.state_space_size}x{config.action_space_size}{list(config.hidden_sizes)}"
                )
            trainer = cls(config)
            state_dict = {
                name: torch.as_tensor(values, dtype=torch.float32)
                for name, values in payload["weights"].items()
            }
            trainer.online_model.load_state_dict(state_dict)
            trainer.target_model.load_state_dict(trainer.online_model.state_dict())
            metrics = payload.get("metrics", {})
            trainer.training_steps = int(metrics.get("training_steps", 0))
            trainer.episode_rewards.extend(float(value) for value in metrics.get("episode_rewards", []))
        except ModelLoadError:
            raise
        except (KeyError, TypeError, ValueError, RuntimeError) as exc:
            raise ModelLoadError(f"incompatible model file {format_display_path(source)}: {exc}") from exc

        LOGGER.info("model loaded\tpath=%s\tsteps=%d", format_display_path(source), trainer.training_steps)
        return trainer
