"""Shared utility helpers."""

from __future__ import annotations

import os
from typing import Mapping, Sequence


REQUIRED_ROLE_KEYS = ("state_size", "actions", "learning_rate", "epsilon")
REQUIRED_MOVEMENT_REWARD_KEYS = (
    "survival",
    "hit",
    "stationary_frames",
    "stationary",
    "movement_threshold",
    "movement",
    "wall_margin",
    "wall_scale",
)


def env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def validate_role_settings(
    *,
    role_settings: Mapping[str, Mapping[str, object]],
    movement_rewards: Mapping[str, Mapping[str, object]],
    learn_modes: Sequence[str],
    learn_mode: str,
) -> None:
    if learn_mode not in learn_modes:
        raise ValueError(f"LEARN_MODE must be one of {list(learn_modes)}, got {learn_mode!r}")

    for role, settings in role_settings.items():
        missing = [key for key in REQUIRED_ROLE_KEYS if key not in settings]
        if missing:
            raise ValueError(f"ROLE_SETTINGS[{role!r}] is missing required keys {missing}")
        if int(settings["state_size"]) <= 0 or int(settings["actions"]) <= 0:
            raise ValueError(f"ROLE_SETTINGS[{role!r}] needs positive state_size and actions")
        epsilon = float(settings["epsilon"])
        if not 0.0 <= epsilon <= 1.0:
            raise ValueError(f"ROLE_SETTINGS[{role!r}]['epsilon'] must be in [0, 1], got {epsilon}")

    for role, rewards in movement_rewards.items():
        if role not in role_settings:
            raise ValueError(f"MOVEMENT_REWARDS has unknown role {role!r}")
        missing = [key for key in REQUIRED_MOVEMENT_REWARD_KEYS if key not in rewards]
        if missing:
            raise ValueError(f"MOVEMENT_REWARDS[{role!r}] is missing required keys {missing}")
