"""Transition schema, per-episode recorder and action naming."""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Sequence


MOVEMENT_ACTION_NAMES = (
    "NORTH",
    "NORTHEAST",
    "EAST",
    "SOUTHEAST",
    "SOUTH",
    "SOUTHWEST",
    "WEST",
    "NORTHWEST",
    "STOP",
)
STOP_ACTION = MOVEMENT_ACTION_NAMES.index("STOP")
UNKNOWN_ACTION_NAME = "UNKNOWN"


@dataclass(frozen=True)
class Experience:
    """One decision step of a single role."""

    state: tuple[float, ...]
    action: int
    reward: float
    next_state: tuple[float, ...]
    is_done: bool
    confidence: float = 1.0
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def create(
        cls,
        state: Sequence[float],
        action: int,
        reward: float,
        next_state: Sequence[float],
        is_done: bool,
        confidence: float = 1.0,
    ) -> "Experience":
        return cls(
            state=tuple(float(value) for value in state),
            action=int(action),
            reward=float(reward),
            next_state=tuple(float(value) for value in next_state),
            is_done=bool(is_done),
            confidence=float(confidence),
        )


@dataclass(eq=False)
class StoredExperience:
    """Replay-buffer slot; priority and sample count mutate in place."""

    experience: Experience
    priority: float = 1.0
    timestamp: float = field(default_factory=time.time)
    sample_count: int = 0

    @property
    def state(self) -> tuple[float, ...]:
        return self.experience.state

    @property
    def action(self) -> int:
        return self.experience.action

    @property
    def reward(self) -> float:
        return self.experience.reward

    @property
    def next_state(self) -> tuple[float, ...]:
        return self.experience.next_state

    @property
    def is_done(self) -> bool:
        return self.experience.is_done


@dataclass(frozen=True)
class EpisodeLog:
    transitions: tuple[Experience, ...]
    episode_number: int
    total_reward: float


class EpisodeRecorder:
    """Collects the transitions of the episode in progress."""

    def __init__(self):
        self.episode_number = 0
        self._transitions: list[Experience] = []
        self._total_reward = 0.0

    def record(
        self,
        state: Sequence[float],
        action: int,
        reward: float,
        next_state: Sequence[float],
        is_done: bool,
        confidence: float = 1.0,
    ) -> Experience:
        experience = Experience.create(state, action, reward, next_state, is_done, confidence)
        self._transitions.append(experience)
        self._total_reward += experience.reward
        return experience

    def current_stats(self) -> tuple[int, float]:
        return len(self._transitions), self._total_reward

    def end_episode(self) -> EpisodeLog:
        self.episode_number += 1
        log = EpisodeLog(
            transitions=tuple(self._transitions),
            episode_number=self.episode_number,
            total_reward=self._total_reward,
        )
        self._transitions = []
        self._total_reward = 0.0
        return log


def action_to_name(action: int, names: Sequence[str] = MOVEMENT_ACTION_NAMES) -> str:
    if 0 <= action < len(names):
        return names[action]
    return UNKNOWN_ACTION_NAME


def name_to_action(name: str, names: Sequence[str] = MOVEMENT_ACTION_NAMES) -> int:
    wanted = name.strip().upper()
    for index, candidate in enumerate(names):
        if candidate == wanted:
            return index
    return STOP_ACTION
