"""Prioritized experience replay with a ring-buffer eviction policy."""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from itertools import accumulate
import random
import threading
import time
from typing import Iterable, Sequence

from range_ai.config import (
    PRIORITY_BASE,
    PRIORITY_FLOOR,
    PRIORITY_HIGH_REWARD_MULTIPLIER,
    PRIORITY_TERMINAL_MULTIPLIER,
    REPLAY_BUFFER_SIZE,
)
from range_ai.core.experience import Experience, StoredExperience


@dataclass(frozen=True)
class ReplayBufferStats:
    size: int = 0
    max_size: int = 0
    average_reward: float = 0.0
    average_priority: float = 0.0
    high_priority_count: int = 0
    terminal_count: int = 0
    oldest_timestamp: float | None = None
    newest_timestamp: float | None = None


def initial_priority(experience: Experience) -> float:
    priority = abs(experience.reward) + PRIORITY_BASE
    if experience.is_done:
        priority *= PRIORITY_TERMINAL_MULTIPLIER
    if experience.reward > 1.0:
        priority *= PRIORITY_HIGH_REWARD_MULTIPLIER
    return priority


class ExperienceReplayBuffer:
    """Bounded store sampled proportionally to priority."""

    def __init__(self, max_size: int = REPLAY_BUFFER_SIZE, rng: random.Random | None = None):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = int(max_size)
        self.rng = rng or random.Random()
        self.current_index = 0
        self._experiences: list[StoredExperience] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self.size()

    def size(self) -> int:
        with self._lock:
            return len(self._experiences)

    def snapshot(self) -> list[StoredExperience]:
        with self._lock:
            return list(self._experiences)

    def add(self, experiences: Iterable[Experience]) -> None:
        with self._lock:
            for experience in experiences:
                stored = StoredExperience(experience=experience, priority=initial_priority(experience))
                if len(self._experiences) < self.max_size:
                    self._experiences.append(stored)
                else:
                    self._experiences[self.current_index] = stored
                    self.current_index = (self.current_index + 1) % self.max_size

    def sample_batch(self, batch_size: int) -> list[StoredExperience]:
        """Draw with replacement, probability proportional to priority."""

        with self._lock:
            if not self._experiences:
                return []
            cumulative = list(accumulate(stored.priority for stored in self._experiences))
            total = cumulative[-1]
            if total <= 0.0:
                return []
            batch: list[StoredExperience] = []
            for _ in range(min(batch_size, len(self._experiences))):
                position = bisect.bisect_left(cumulative, self.rng.random() * total)
                # Rounding can leave the draw past the final sum.
                stored = self._experiences[min(position, len(self._experiences) - 1)]
                stored.sample_count += 1
                batch.append(stored)
            return batch

    def sample_uniform(self, batch_size: int) -> list[StoredExperience]:
        with self._lock:
            if not self._experiences:
                return []
            return [
                self._experiences[self.rng.randrange(len(self._experiences))]
                for _ in range(min(batch_size, len(self._experiences)))
            ]

    def update_priorities(self, batch: Sequence[StoredExperience], td_errors: Sequence[float]) -> None:
        with self._lock:
            for stored, td_error in zip(batch, td_errors):
                stored.priority = max(PRIORITY_FLOOR, abs(td_error) + PRIORITY_FLOOR)

    def importance_weights(self, batch: Sequence[StoredExperience], beta: float) -> list[float]:
        """Importance-sampling weights normalized so the largest is 1."""

        with self._lock:
            total = sum(stored.priority for stored in self._experiences)
            size = len(self._experiences)
        if not batch or total <= 0.0:
            return []
        weights = [(size * (stored.priority / total)) ** (-beta) for stored in batch]
        max_weight = max(weights)
        return [weight / max_weight for weight in weights]

    def clear_old_experiences(self, max_age_seconds: float, now: float | None = None) -> int:
        cutoff = (time.time() if now is None else now) - max_age_seconds
        with self._lock:
            before = len(self._experiences)
            self._experiences = [stored for stored in self._experiences if stored.timestamp >= cutoff]
            if self.current_index >= len(self._experiences):
                self.current_index = 0
            return before - len(self._experiences)

    def get_high_error_experiences(self, count: int = 100) -> list[StoredExperience]:
        with self._lock:
            ranked = sorted(self._experiences, key=lambda stored: stored.priority, reverse=True)
        return ranked[:count]

    def get_stats(self) -> ReplayBufferStats:
        with self._lock:
            experiences = list(self._experiences)
        if not experiences:
            return ReplayBufferStats(max_size=self.max_size)
        count = len(experiences)
        timestamps = [stored.timestamp for stored in experiences]
        return ReplayBufferStats(
            size=count,
            max_size=self.max_size,
            average_reward=sum(stored.reward for stored in experiences) / count,
            average_priority=sum(stored.priority for stored in experiences) / count,
            high_priority_count=sum(1 for stored in experiences if stored.priority > 1.0),
            terminal_count=sum(1 for stored in experiences if stored.is_done),
            oldest_timestamp=min(timestamps),
            newest_timestamp=max(timestamps),
        )
