"""Role registry: each role is an encoder, an action table and its settings."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Any, Callable

from range_ai.config import (
    BOSS_BULLET_SPEED,
    BOSS_LEAD_FRAMES,
    BOSS_SPEED,
    COMPANION_SPEED,
    ENEMY_BULLET_SPEED,
    ENEMY_LEAD_FRAMES,
    ENEMY_SPEED,
    HIDDEN_DIMENSIONS,
    LASER_SPEED,
    PATROL_SPEED,
    PLAYER_SPEED,
    ROLE_BOSS_MOVEMENT,
    ROLE_BOSS_SHOOTING,
    ROLE_COMPANION_MOVEMENT,
    ROLE_COMPANION_SHOOTING,
    ROLE_COMPANION_SOLO_MOVEMENT,
    ROLE_ENEMY_MOVEMENT,
    ROLE_ENEMY_PATROL,
    ROLE_ENEMY_SHOOTING,
    ROLE_PLAYER_MOVEMENT,
    ROLE_PLAYER_SHOOTING,
    ROLE_PLAYER_STEALTH_MOVEMENT,
    ROLE_SETTINGS,
)
from range_ai.core import encoders
from range_ai.core.actions import (
    BOSS_MOVEMENT_ACTION_NAMES,
    BOSS_SHOOTING_ACTION_NAMES,
    ENEMY_SHOOTING_ACTION_NAMES,
    TARGETED_SHOOTING_ACTION_NAMES,
    AimContext,
    boss_volley,
    enemy_shot,
    movement_velocity,
    targeted_shot,
)
from range_ai.core.experience import MOVEMENT_ACTION_NAMES
from range_ai.errors import UnknownRoleError
from range_ai.train.model import ModelConfig

MOVEMENT = "movement"
SHOOTING = "shooting"

Effect = Callable[..., Any]


@dataclass(frozen=True)
class RoleSpec:
    name: str
    kind: str
    encoder: Callable[..., list[float]]
    effect: Effect
    action_names: tuple[str, ...]
    state_size: int

    @property
    def action_count(self) -> int:
        return len(self.action_names)


def _movement_effect(speed: float, allow_dash: bool = False) -> Effect:
    def effect(action: int, context: AimContext | None = None):
        return movement_velocity(action, speed, allow_dash)

    return effect


ROLE_SPECS: dict[str, RoleSpec] = {
    spec.name: spec
    for spec in (
        RoleSpec(
            ROLE_PLAYER_MOVEMENT,
            MOVEMENT,
            encoders.encode_player_movement,
            _movement_effect(PLAYER_SPEED),
            MOVEMENT_ACTION_NAMES,
            21,
        ),
        RoleSpec(
            ROLE_PLAYER_SHOOTING,
            SHOOTING,
            encoders.encode_targeted_shooting,
            partial(targeted_shot, speed=LASER_SPEED),
            TARGETED_SHOOTING_ACTION_NAMES,
            14,
        ),
        RoleSpec(
            ROLE_COMPANION_MOVEMENT,
            MOVEMENT,
            encoders.encode_companion_movement,
            _movement_effect(COMPANION_SPEED),
            MOVEMENT_ACTION_NAMES,
            32,
        ),
        RoleSpec(
            ROLE_COMPANION_SHOOTING,
            SHOOTING,
            encoders.encode_targeted_shooting,
            partial(targeted_shot, speed=LASER_SPEED),
            TARGETED_SHOOTING_ACTION_NAMES,
            14,
        ),
        RoleSpec(
            ROLE_COMPANION_SOLO_MOVEMENT,
            MOVEMENT,
            encoders.encode_companion_solo_movement,
            _movement_effect(COMPANION_SPEED),
            MOVEMENT_ACTION_NAMES,
            27,
        ),
        RoleSpec(
            ROLE_ENEMY_MOVEMENT,
            MOVEMENT,
            encoders.encode_enemy_movement,
            _movement_effect(ENEMY_SPEED),
            MOVEMENT_ACTION_NAMES,
            20,
        ),
        RoleSpec(
            ROLE_ENEMY_SHOOTING,
            SHOOTING,
            encoders.encode_enemy_shooting,
            partial(enemy_shot, speed=ENEMY_BULLET_SPEED, lead_frames=ENEMY_LEAD_FRAMES),
            ENEMY_SHOOTING_ACTION_NAMES,
            13,
        ),
        RoleSpec(
            ROLE_BOSS_MOVEMENT,
            MOVEMENT,
            encoders.encode_boss_movement,
            _movement_effect(BOSS_SPEED, allow_dash=True),
            BOSS_MOVEMENT_ACTION_NAMES,
            32,
        ),
        RoleSpec(
            ROLE_BOSS_SHOOTING,
            SHOOTING,
            encoders.encode_boss_shooting,
            partial(boss_volley, speed=BOSS_BULLET_SPEED, lead_frames=BOSS_LEAD_FRAMES),
            BOSS_SHOOTING_ACTION_NAMES,
            16,
        ),
        RoleSpec(
            ROLE_PLAYER_STEALTH_MOVEMENT,
            MOVEMENT,
            encoders.encode_player_stealth_movement,
            _movement_effect(PLAYER_SPEED),
            MOVEMENT_ACTION_NAMES,
            21,
        ),
        RoleSpec(
            ROLE_ENEMY_PATROL,
            MOVEMENT,
            encoders.encode_enemy_patrol,
            _movement_effect(PATROL_SPEED),
            MOVEMENT_ACTION_NAMES,
            17,
        ),
    )
}


def get_role_spec(role: str) -> RoleSpec:
    try:
        return ROLE_SPECS[role]
    except KeyError:
        raise UnknownRoleError(role) from None


def default_model_config(role: str) -> ModelConfig:
    get_role_spec(role)
    settings = ROLE_SETTINGS[role]
    return ModelConfig(
        state_space_size=int(settings["state_size"]),
        action_space_size=int(settings["actions"]),
        learning_rate=float(settings["learning_rate"]),
        exploration_rate=float(settings["epsilon"]),
        hidden_sizes=tuple(HIDDEN_DIMENSIONS),
    )
