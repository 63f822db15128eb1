"""Greedy evaluation of saved role models inside their training ranges."""

from __future__ import annotations

if __package__ in {None, ""}:
    import sys
    from pathlib import Path

    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pathlib import Path
from typing import Sequence

from range_ai.config import FLAGS, MODEL_DIR, TRAINING_ORDER
from range_ai.core.agent import RoleAgent, model_path_for
from range_ai.logging_utils import RUN_LOGGER, configure_logging, log_role_values, log_run_context
from range_ai.runtime import make_rng
from range_ai.train.episodes import build_driver
from range_ai.train.ranges import TrainingRangeSystem


class RoleModelRunner:
    """Loads one role's model and plays episodes without exploring or learning."""

    def __init__(self, role: str, model_dir: str | Path = MODEL_DIR, seed: int | None = None):
        self.role = role
        self.model_path = model_path_for(role, model_dir)
        self.agent = RoleAgent(role, rng=make_rng(seed))
        self.loaded = self.agent.load_model(self.model_path)
        self.agent.epsilon = 0.0
        self.driver = build_driver(self.agent, rng=make_rng(seed, 1), learn=False)

    def run(self, range_system: TrainingRangeSystem, episodes: int = 5) -> float:
        bounds = range_system.get_range(self.role)
        rewards = [
            self.driver.run_episode(bounds, range_system.window_size).total_reward
            for _ in range(episodes)
        ]
        return sum(rewards) / len(rewards) if rewards else 0.0


def run_evaluation(
    roles: Sequence[str] = TRAINING_ORDER,
    episodes: int = 5,
    model_dir: str | Path = MODEL_DIR,
    seed: int | None = FLAGS.seed,
) -> dict[str, float]:
    configure_logging(FLAGS.log_level)
    range_system = TrainingRangeSystem()
    log_run_context("play-ai", {"roles": len(roles), "episodes": episodes, "models": Path(model_dir)})

    averages: dict[str, float] = {}
    for role in roles:
        runner = RoleModelRunner(role, model_dir=model_dir, seed=seed)
        averages[role] = runner.run(range_system, episodes=episodes)
        log_role_values(
            RUN_LOGGER,
            role,
            {
                "Model": "loaded" if runner.loaded else "scratch",
                "Reward": f"{averages[role]:.2f}",
            },
        )
    return averages


if __name__ == "__main__":
    run_evaluation()
