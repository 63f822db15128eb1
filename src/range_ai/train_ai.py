"""Cyclic training entrypoint for Range AI."""

from __future__ import annotations

if __package__ in {None, ""}:
    import sys
    from pathlib import Path

    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
import logging
from pathlib import Path
import threading
from typing import Sequence

from range_ai.config import (
    EPISODE_LOG_EVERY,
    EPISODES_PER_CYCLE,
    FLAGS,
    LEARN_MODE,
    LOAD_MODELS,
    MAX_CYCLES,
    MODEL_DIR,
    TRAINING_ORDER,
)
from range_ai.core.agent import RoleAgent, model_path_for
from range_ai.logging_utils import (
    configure_logging,
    format_display_path,
    log_key_values,
    log_role_values,
    log_run_context,
)
from range_ai.runtime import make_rng, seed_everything
from range_ai.train.episodes import EpisodeDriver, EpisodeResult, build_driver
from range_ai.train.ranges import TrainingRangeSystem

LOGGER = logging.getLogger("range_ai.train")


class CyclicTrainingOrchestrator:
    """Trains every role for a fixed number of episodes per cycle, saving after each cycle."""

    def __init__(
        self,
        roles: Sequence[str] = TRAINING_ORDER,
        *,
        episodes_per_cycle: int = EPISODES_PER_CYCLE,
        range_system: TrainingRangeSystem | None = None,
        model_dir: str | Path = MODEL_DIR,
        seed: int | None = FLAGS.seed,
        learn_mode: str = LEARN_MODE,
        parallel: bool = FLAGS.parallel_ranges,
        load_models: bool = LOAD_MODELS,
        episode_length: int | None = None,
    ):
        self.roles = tuple(roles)
        self.episodes_per_cycle = int(episodes_per_cycle)
        self.range_system = range_system or TrainingRangeSystem()
        self.model_dir = Path(model_dir)
        self.parallel = parallel
        self.load_models_on_start = load_models
        self.episode_length = episode_length
        self.stop_event = threading.Event()
        self.cycle = 0

        self.agents: dict[str, RoleAgent] = {}
        self.drivers: dict[str, EpisodeDriver] = {}
        for index, role in enumerate(self.roles):
            agent = RoleAgent(role, rng=make_rng(seed, index), learn_mode=learn_mode)
            self.agents[role] = agent
            self.drivers[role] = build_driver(agent, rng=make_rng(seed, len(self.roles) + index))

    def stop(self) -> None:
        self.stop_event.set()

    def model_path(self, role: str) -> Path:
        return model_path_for(role, self.model_dir)

    def load_models(self) -> dict[str, bool]:
        loaded = {}
        for role, agent in self.agents.items():
            loaded[role] = agent.load_model(self.model_path(role))
        return loaded

    def save_models(self) -> int:
        saved = 0
        for role, agent in self.agents.items():
            path = self.model_path(role)
            try:
                agent.save_model(path)
            except RuntimeError as exc:
                LOGGER.warning("save failed (%s): %s", format_display_path(path), exc)
                continue
            saved += 1
        return saved

    def range_groups(self) -> list[list[str]]:
        """Roles sharing a rectangle, in training order; groups run sequentially inside."""

        groups: OrderedDict = OrderedDict()
        for role in self.roles:
            groups.setdefault(self.range_system.get_range(role), []).append(role)
        return list(groups.values())

    def run_role(self, role: str, episodes: int) -> list[EpisodeResult]:
        driver = self.drivers[role]
        bounds = self.range_system.get_range(role)
        results: list[EpisodeResult] = []
        for episode in range(1, episodes + 1):
            if self.stop_event.is_set():
                break
            result = driver.run_episode(bounds, self.range_system.window_size, self.episode_length)
            results.append(result)
            if episode % EPISODE_LOG_EVERY == 0:
                log_role_values(
                    LOGGER.name,
                    role,
                    {
                        "Episode": driver.episodes_run,
                        "Frames": result.frames,
                        "Reward": round(result.total_reward, 2),
                        "Avg": round(self.agents[role].get_average_reward(), 2),
                    },
                    level=logging.DEBUG,
                )
        return results

    def _run_group(self, roles: Sequence[str]) -> dict[str, list[EpisodeResult]]:
        return {role: self.run_role(role, self.episodes_per_cycle) for role in roles}

    def run_cycle(self) -> dict[str, list[EpisodeResult]]:
        groups = self.range_groups()
        results: dict[str, list[EpisodeResult]] = {}
        if self.parallel and len(groups) > 1:
            with ThreadPoolExecutor(max_workers=len(groups), thread_name_prefix="range") as executor:
                for group_results in executor.map(self._run_group, groups):
                    results.update(group_results)
        else:
            for group in groups:
                results.update(self._run_group(group))

        self.cycle += 1
        for role in self.roles:
            role_results = results.get(role, [])
            if not role_results:
                continue
            mean_reward = sum(r.total_reward for r in role_results) / len(role_results)
            mean_frames = sum(r.frames for r in role_results) / len(role_results)
            log_role_values(
                LOGGER.name,
                role,
                {
                    "Cycle": self.cycle,
                    "Episodes": len(role_results),
                    "Reward": f"{mean_reward:.2f}",
                    "Frames": f"{mean_frames:.1f}",
                    "Avg": f"{self.agents[role].get_average_reward():.2f}",
                },
            )
        saved = self.save_models()
        log_key_values(LOGGER.name, {"Event": "Models Saved", "Cycle": self.cycle, "Saved": saved})
        return results

    def run(self, max_cycles: int | None = None) -> int:
        if self.load_models_on_start:
            loaded = self.load_models()
            log_key_values(LOGGER.name, {"Event": "Models Loaded", "Loaded": sum(loaded.values())})

        log_run_context(
            "train-ai",
            {
                "roles": len(self.roles),
                "episodes_per_cycle": self.episodes_per_cycle,
                "learn_mode": next(iter(self.agents.values())).learn_mode if self.agents else None,
                "parallel": self.parallel,
                "models": self.model_dir,
                "max_cycles": max_cycles,
            },
        )
        try:
            while not self.stop_event.is_set():
                self.run_cycle()
                if max_cycles is not None and self.cycle >= max_cycles:
                    break
        finally:
            saved = self.save_models()
            log_key_values(LOGGER.name, {"Event": "Final Save", "Cycles": self.cycle, "Saved": saved})
        return self.cycle


def train(max_cycles: int | None = MAX_CYCLES) -> None:
    configure_logging(FLAGS.log_level)
    seed_everything(FLAGS.seed)
    orchestrator = CyclicTrainingOrchestrator()
    try:
        orchestrator.run(max_cycles=max_cycles)
    except KeyboardInterrupt:
        orchestrator.stop()
        log_key_values(LOGGER.name, {"Event": "Training Interrupted", "Cycles": orchestrator.cycle})


if __name__ == "__main__":
    train()
