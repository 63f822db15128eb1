"""Central configuration for Range AI."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from range_ai.utils import env_flag, env_int, env_str, validate_role_settings


PROJECT_ROOT = Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class RuntimeFlags:
    use_gpu: bool
    parallel_ranges: bool
    seed: int | None
    learn_mode: str
    log_level: str


@dataclass(frozen=True)
class WindowConfig:
    width_px: int
    height_px: int

    @property
    def range_width_px(self) -> int:
        return self.width_px // 3

    @property
    def range_height_px(self) -> int:
        return self.height_px // 3


FLAGS = RuntimeFlags(
    use_gpu=env_flag("RANGE_AI_USE_GPU", False),
    parallel_ranges=env_flag("RANGE_AI_PARALLEL", False),
    seed=env_int("RANGE_AI_SEED", None),
    learn_mode=env_str("RANGE_AI_LEARN_MODE", "online"),
    log_level=env_str("RANGE_AI_LOG_LEVEL", "INFO"),
)

WINDOW = WindowConfig(width_px=1200, height_px=900)

# Quick toggles
USE_GPU = FLAGS.use_gpu
LOAD_MODELS = True
EPISODES_PER_CYCLE = 50
EPISODE_LOG_EVERY = 10
MAX_CYCLES: int | None = None

# Role names
ROLE_PLAYER_MOVEMENT = "player_movement"
ROLE_PLAYER_SHOOTING = "player_shooting"
ROLE_COMPANION_MOVEMENT = "companion_movement"
ROLE_COMPANION_SHOOTING = "companion_shooting"
ROLE_COMPANION_SOLO_MOVEMENT = "companion_solo_movement"
ROLE_ENEMY_MOVEMENT = "enemy_movement"
ROLE_ENEMY_SHOOTING = "enemy_shooting"
ROLE_BOSS_MOVEMENT = "boss_movement"
ROLE_BOSS_SHOOTING = "boss_shooting"
ROLE_PLAYER_STEALTH_MOVEMENT = "player_stealth_movement"
ROLE_ENEMY_PATROL = "enemy_patrol"

# Row-major order of the 3x3 range grid
RANGE_GRID_ROLES = (
    ROLE_PLAYER_MOVEMENT,
    ROLE_PLAYER_SHOOTING,
    ROLE_COMPANION_MOVEMENT,
    ROLE_COMPANION_SHOOTING,
    ROLE_COMPANION_SOLO_MOVEMENT,
    ROLE_ENEMY_MOVEMENT,
    ROLE_ENEMY_SHOOTING,
    ROLE_BOSS_MOVEMENT,
    ROLE_BOSS_SHOOTING,
)
SHARED_RANGE_ROLES = {
    ROLE_PLAYER_STEALTH_MOVEMENT: ROLE_PLAYER_MOVEMENT,
    ROLE_ENEMY_PATROL: ROLE_ENEMY_MOVEMENT,
}
TRAINING_ORDER = RANGE_GRID_ROLES[:4] + (
    ROLE_COMPANION_SOLO_MOVEMENT,
    ROLE_ENEMY_MOVEMENT,
    ROLE_ENEMY_SHOOTING,
    ROLE_BOSS_MOVEMENT,
    ROLE_BOSS_SHOOTING,
    ROLE_PLAYER_STEALTH_MOVEMENT,
    ROLE_ENEMY_PATROL,
)

# Entity speeds (px/frame)
PLAYER_SPEED = 5.0
COMPANION_SPEED = PLAYER_SPEED * 0.9
ENEMY_SPEED = PLAYER_SPEED
BOSS_SPEED = PLAYER_SPEED * 0.8
BOSS_DASH_MULTIPLIER = 1.5
LASER_SPEED = 8.0
ENEMY_BULLET_SPEED = LASER_SPEED + 4
BOSS_BULLET_SPEED = 10.0
TRAINING_BULLET_SPEED = 5.0
PATROL_SPEED = 2.0
SOLO_ENEMY_CHASE_SPEED = 2.0
TARGET_JITTER_PX = 4.0

# Health
ENEMY_HEALTH = 3
LASER_DAMAGE = 1
HEALTH_NORMALIZATION = 100.0

# Encoding
VELOCITY_NORMALIZATION = 10.0
WALL_DISTANCE_NORMALIZATION = 100.0
OBSTACLE_SIZE_NORMALIZATION = 100.0
ENEMY_DETECTION_RANGE = 50.0
ENEMY_LEAD_FRAMES = 3
BOSS_LEAD_FRAMES = 10
BOSS_SPREAD_STEP_RADIANS = 0.2
BOSS_BURST_SPREAD = 0.1

# Padding sentinels for missing top-K slots
PAD_PROJECTILE = (1.0, 1.0, 2.0, 0.0, 0.0)
PAD_PROJECTILE_POSITION = (1.0, 1.0, 2.0)
PAD_TARGET_WITH_HEALTH = (2.0, 2.0, 3.0, 0.0)
PAD_ACTOR = (2.0, 2.0, 3.0)
PAD_NEAR_OBSTACLE = (1.0, 1.0, 2.0, 0.0)
PAD_FAR_OBSTACLE = (2.0, 2.0, 3.0, 0.0)
PAD_STEALTH_ENEMY = (0.5, 0.5, 0.0)

# Training ranges
RANGE_SPAWN_INSET = 100
RANGE_EDGE_MARGIN = 20
BOSS_EDGE_MARGIN = 30
STATIONARY_DISPLACEMENT_PX = 1.0

# Collision radii
BULLET_HIT_RADIUS = 15.0
LASER_HIT_RADIUS = 20.0
ENEMY_COLLISION_RADIUS = 25.0
BOSS_HIT_RADIUS = 25.0

# Episode cadence
DEFAULT_EPISODE_LENGTH = 500
BOSS_EPISODE_LENGTH = 700
PATROL_EPISODE_LENGTH = 800
STEALTH_EPISODE_LENGTH = 1000
PLAYER_BULLET_SPAWN_EVERY = 30
COMPANION_BULLET_SPAWN_EVERY = 25
ENEMY_LASER_SPAWN_EVERY = 20
BOSS_LASER_SPAWN_EVERY = 15
SOLO_ENEMY_VOLLEY_EVERY = 40
SOLO_ENEMY_SHOOT_PROBABILITY = 0.5
MAX_ENEMY_BULLETS = 20
MAX_BOSS_BULLETS = 30

# Synthetic populations (inclusive ranges)
SHOOTING_ENEMY_COUNT = (3, 5)
ENEMY_SHOOTING_TARGET_COUNT = (3, 6)
BOSS_SHOOTING_TARGET_COUNT = (4, 7)
ENEMY_TARGET_SPEED_SPREAD = 4.0
BOSS_TARGET_SPEED_SPREAD = 5.0
SOLO_ENEMY_COUNT = (2, 4)
STEALTH_ENEMY_COUNT = (3, 6)
BOSS_COMPANION_COUNT = 2
COMPANION_START_OFFSET_PX = 100.0
COMPANION_ORBIT_RATE = 0.02

# Static obstacle layouts as (dx, dy, width, height) from the range center
COMPANION_OBSTACLE_LAYOUT = (
    (-150.0, -100.0, 80.0, 60.0),
    (100.0, 80.0, 60.0, 80.0),
    (-50.0, 120.0, 70.0, 50.0),
)
BOSS_OBSTACLE_LAYOUT = (
    (-200.0, -150.0, 90.0, 70.0),
    (120.0, 100.0, 75.0, 85.0),
    (-80.0, 180.0, 85.0, 60.0),
    (150.0, -120.0, 65.0, 75.0),
)

# Curriculum for companion solo movement: (last episode of phase, companions)
SOLO_CURRICULUM_PHASES = ((20, 1), (40, 2))
SOLO_CURRICULUM_FINAL_COUNTS = (3, 4)

# Model and training
HIDDEN_DIMENSIONS: list[int] = []
DISCOUNT_FACTOR = 0.99
WEIGHT_DECAY = 1e-5
GRAD_CLIP_NORM = 10.0
TARGET_SYNC_EVERY = 200
REWARD_ROLLING_WINDOW = 100
MODEL_DIR = PROJECT_ROOT / "models"
MODEL_SAVE_RETRIES = 5
MODEL_SAVE_RETRY_DELAY_SECONDS = 0.2

# Replay
LEARN_MODES = ("online", "replay")
LEARN_MODE = FLAGS.learn_mode
REPLAY_BUFFER_SIZE = 100_000
REPLAY_BATCH_SIZE = 32
REPLAY_TRAIN_EVERY = 4
PRIORITY_FLOOR = 0.01
PRIORITY_BASE = 0.1
PRIORITY_TERMINAL_MULTIPLIER = 2.0
PRIORITY_HIGH_REWARD_MULTIPLIER = 1.5
PER_BETA = 0.4

ROLE_SETTINGS = {
    ROLE_PLAYER_MOVEMENT: {"state_size": 21, "actions": 9, "learning_rate": 0.001, "epsilon": 0.2},
    ROLE_PLAYER_SHOOTING: {"state_size": 14, "actions": 10, "learning_rate": 0.001, "epsilon": 0.2},
    ROLE_COMPANION_MOVEMENT: {"state_size": 32, "actions": 9, "learning_rate": 0.001, "epsilon": 0.2},
    ROLE_COMPANION_SHOOTING: {"state_size": 14, "actions": 10, "learning_rate": 0.001, "epsilon": 0.2},
    ROLE_COMPANION_SOLO_MOVEMENT: {"state_size": 27, "actions": 9, "learning_rate": 0.001, "epsilon": 0.2},
    ROLE_ENEMY_MOVEMENT: {"state_size": 20, "actions": 9, "learning_rate": 0.002, "epsilon": 0.3},
    ROLE_ENEMY_SHOOTING: {"state_size": 13, "actions": 11, "learning_rate": 0.002, "epsilon": 0.3},
    ROLE_BOSS_MOVEMENT: {"state_size": 32, "actions": 12, "learning_rate": 0.001, "epsilon": 0.25},
    ROLE_BOSS_SHOOTING: {"state_size": 16, "actions": 13, "learning_rate": 0.001, "epsilon": 0.25},
    ROLE_PLAYER_STEALTH_MOVEMENT: {"state_size": 21, "actions": 9, "learning_rate": 0.001, "epsilon": 0.2},
    ROLE_ENEMY_PATROL: {"state_size": 17, "actions": 9, "learning_rate": 0.001, "epsilon": 0.3},
}

# Reward shaping
SHOOTING_TIME_PENALTY = -0.1
REWARD_SHOT_HIT = 10.0
REWARD_SHOT_KILL = 20.0
REWARD_ENEMY_HITS_PLAYER = 25.0
REWARD_ENEMY_HITS_COMPANION = 15.0
REWARD_BOSS_HITS_PLAYER = 30.0
REWARD_BOSS_HITS_COMPANION = 20.0

MOVEMENT_REWARDS = {
    ROLE_PLAYER_MOVEMENT: {
        "survival": 2.0,
        "hit": -50.0,
        "stationary_frames": 10,
        "stationary": -15.0,
        "movement_threshold": 2.0,
        "movement": 3.0,
        "wall_margin": 150.0,
        "wall_scale": 20.0,
    },
    ROLE_COMPANION_MOVEMENT: {
        "survival": 2.0,
        "hit": -50.0,
        "stationary_frames": 20,
        "stationary": -5.0,
        "movement_threshold": 2.0,
        "movement": 2.0,
        "wall_margin": 100.0,
        "wall_scale": 10.0,
    },
    ROLE_COMPANION_SOLO_MOVEMENT: {
        "survival": 2.0,
        "hit": -50.0,
        "stationary_frames": 10,
        "stationary": -12.0,
        "movement_threshold": 2.0,
        "movement": 3.0,
        "wall_margin": 120.0,
        "wall_scale": 10.0,
    },
    ROLE_ENEMY_MOVEMENT: {
        "survival": 1.0,
        "hit": -30.0,
        "stationary_frames": 10,
        "stationary": -8.0,
        "movement_threshold": 2.0,
        "movement": 2.0,
        "wall_margin": 100.0,
        "wall_scale": 5.0,
    },
    ROLE_BOSS_MOVEMENT: {
        "survival": 1.0,
        "hit": -20.0,
        "stationary_frames": 15,
        "stationary": -10.0,
        "movement_threshold": 3.0,
        "movement": 2.0,
        "wall_margin": 150.0,
        "wall_scale": 15.0,
    },
    ROLE_PLAYER_STEALTH_MOVEMENT: {
        "survival": 2.0,
        "hit": -100.0,
        "stationary_frames": 10,
        "stationary": -8.0,
        "movement_threshold": 2.0,
        "movement": 2.0,
        "wall_margin": 150.0,
        "wall_scale": 10.0,
    },
}

SOLO_ENEMY_COLLISION_PENALTY = -30.0
COMPANION_NEAR_MISS_BAND = (15.0, 30.0)
COMPANION_NEAR_MISS_REWARD = 1.5
COMPANION_PLAYER_DISTANCE_REWARDS = ((100.0, 5.0), (150.0, 3.5))
COMPANION_TOO_FAR_DISTANCE = 200.0
COMPANION_TOO_FAR_PENALTY = -8.0
SOLO_NEAR_MISS_BANDS = ((15.0, 35.0, 1.2), (35.0, 50.0, 0.5))
SOLO_ENEMY_DISTANCE_BAND = (150.0, 300.0)
SOLO_ENEMY_DISTANCE_REWARD = 3.0
SOLO_NO_ENEMY_DISTANCE = 500.0
CLUSTER_SEVERE_DISTANCE = 40.0
CLUSTER_SEVERE_PENALTY = -10.0
CLUSTER_CLOSE_DISTANCE = 80.0
CLUSTER_CLOSE_PENALTY = -5.0
GOOD_SPACING_BAND = (120.0, 250.0)
GOOD_SPACING_REWARD = 2.0
STEALTH_DISTANCE_REWARDS = ((50.0, 100.0, 3.0), (100.0, 150.0, 1.0))

PATROL_GRID_SIZE = 3
PATROL_COVERAGE_DECAY = 0.99
PATROL_COVERAGE_STEP = 0.1
PATROL_NEW_AREA_REWARD = 5.0
PATROL_LESS_VISITED_REWARD = 2.0
PATROL_OVERVISIT_PENALTY = -3.0
PATROL_EVEN_COVERAGE_REWARD = 3.0
PATROL_STOP_PENALTY = -1.0
PATROL_WALL_MARGIN = 100.0
PATROL_WALL_SCALE = 5.0

validate_role_settings(
    role_settings=ROLE_SETTINGS,
    movement_rewards=MOVEMENT_REWARDS,
    learn_modes=LEARN_MODES,
    learn_mode=LEARN_MODE,
)
