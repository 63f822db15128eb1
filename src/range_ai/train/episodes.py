"""Episode drivers: one closed-loop simulation per role inside its range."""

from __future__ import annotations

from dataclasses import dataclass
import math
import random
from typing import Sequence

from range_ai.config import (
    BOSS_COMPANION_COUNT,
    BOSS_EDGE_MARGIN,
    BOSS_EPISODE_LENGTH,
    BOSS_HIT_RADIUS,
    BOSS_LASER_SPAWN_EVERY,
    BOSS_OBSTACLE_LAYOUT,
    BOSS_SHOOTING_TARGET_COUNT,
    BOSS_TARGET_SPEED_SPREAD,
    BULLET_HIT_RADIUS,
    COMPANION_BULLET_SPAWN_EVERY,
    COMPANION_OBSTACLE_LAYOUT,
    COMPANION_ORBIT_RATE,
    COMPANION_START_OFFSET_PX,
    DEFAULT_EPISODE_LENGTH,
    ENEMY_COLLISION_RADIUS,
    ENEMY_DETECTION_RANGE,
    ENEMY_HEALTH,
    ENEMY_LASER_SPAWN_EVERY,
    ENEMY_SHOOTING_TARGET_COUNT,
    ENEMY_TARGET_SPEED_SPREAD,
    LASER_DAMAGE,
    LASER_HIT_RADIUS,
    LASER_SPEED,
    MAX_BOSS_BULLETS,
    MAX_ENEMY_BULLETS,
    PATROL_EPISODE_LENGTH,
    PATROL_SPEED,
    PLAYER_BULLET_SPAWN_EVERY,
    RANGE_EDGE_MARGIN,
    REWARD_BOSS_HITS_COMPANION,
    REWARD_BOSS_HITS_PLAYER,
    REWARD_ENEMY_HITS_COMPANION,
    REWARD_ENEMY_HITS_PLAYER,
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
    SHOOTING_ENEMY_COUNT,
    SOLO_CURRICULUM_FINAL_COUNTS,
    SOLO_CURRICULUM_PHASES,
    SOLO_ENEMY_CHASE_SPEED,
    SOLO_ENEMY_COLLISION_PENALTY,
    SOLO_ENEMY_COUNT,
    SOLO_ENEMY_SHOOT_PROBABILITY,
    SOLO_ENEMY_VOLLEY_EVERY,
    STEALTH_ENEMY_COUNT,
    STEALTH_EPISODE_LENGTH,
    TARGET_JITTER_PX,
    TRAINING_BULLET_SPEED,
)
from range_ai.core.actions import AimContext, aimed_shot
from range_ai.core.agent import RoleAgent
from range_ai.core.entities import Combatant, Obstacle, Projectile
from range_ai.core.experience import EpisodeRecorder
from range_ai.errors import UnknownRoleError
from range_ai.runtime.geometry import Rect, Vec2, clamp_to_rect, direction_to, distance
from range_ai.train.ranges import random_position
from range_ai.train.rewards import (
    CoverageGrid,
    MovementRewardProfile,
    StationaryTracker,
    clustering_reward,
    companion_near_miss_reward,
    companion_player_distance_reward,
    distance_to_edges,
    enemy_distance_reward,
    movement_reward,
    patrol_reward,
    shooter_reward,
    solo_near_miss_reward,
    stealth_distance_reward,
    target_hit_reward,
)

WindowSize = tuple[int, int]


@dataclass(frozen=True)
class EpisodeResult:
    role: str
    frames: int
    total_reward: float
    terminal: bool
    transitions: int


def advance_projectiles(projectiles: Sequence[Projectile], bounds: Rect) -> list[Projectile]:
    """Move every projectile one frame and despawn those leaving the range."""

    moved = (projectile.advanced() for projectile in projectiles)
    return [projectile for projectile in moved if bounds.contains(projectile.position)]


def uniform_position(bounds: Rect, rng: random.Random, margin: float = 0.0) -> Vec2:
    inner = bounds.inset(margin)
    return Vec2(inner.left + rng.random() * inner.width, inner.top + rng.random() * inner.height)


def random_velocity(rng: random.Random, spread: float) -> Vec2:
    return Vec2((rng.random() - 0.5) * spread, (rng.random() - 0.5) * spread)


def bounce(position: Vec2, velocity: Vec2, bounds: Rect, margin: float) -> tuple[Vec2, Vec2]:
    """Clamp to the inset range and reflect the velocity on any touched edge."""

    inner = bounds.inset(margin)
    moved = clamp_to_rect(position + velocity, bounds, margin)
    velocity_x, velocity_y = velocity.x, velocity.y
    if moved.x <= inner.left or moved.x >= inner.right:
        velocity_x = -velocity_x
    if moved.y <= inner.top or moved.y >= inner.bottom:
        velocity_y = -velocity_y
    return moved, Vec2(velocity_x, velocity_y)


def fit_obstacle(obstacle: Obstacle, bounds: Rect) -> Obstacle:
    """Shift an obstacle so it lies entirely inside ``bounds``."""

    left = min(max(obstacle.position.x, bounds.left), bounds.right - obstacle.width)
    top = min(max(obstacle.position.y, bounds.top), bounds.bottom - obstacle.height)
    return Obstacle(Vec2(left, top), obstacle.width, obstacle.height)


def obstacle_layout(bounds: Rect, layout: Sequence[tuple[float, float, float, float]]) -> list[Obstacle]:
    center = bounds.center
    return [
        fit_obstacle(Obstacle(Vec2(center.x + dx, center.y + dy), width, height), bounds)
        for dx, dy, width, height in layout
    ]


def aimed_projectile(origin: Vec2, target: Vec2, speed: float) -> Projectile | None:
    velocity = aimed_shot(origin, target, speed)
    if velocity is None:
        return None
    return Projectile(origin, velocity)


def closest_distance(origin: Vec2, points: Sequence[Vec2]) -> float | None:
    if not points:
        return None
    return min(distance(origin, point) for point in points)


class EpisodeDriver:
    """Single-agent frame loop; subclasses supply reset/observe/step."""

    role = ""
    default_length = DEFAULT_EPISODE_LENGTH
    margin = RANGE_EDGE_MARGIN

    def __init__(self, agent: RoleAgent, rng: random.Random | None = None, learn: bool = True):
        if agent.role != self.role:
            raise ValueError(f"{type(self).__name__} drives {self.role!r}, got agent for {agent.role!r}")
        self.agent = agent
        self.rng = rng or random.Random()
        self.learn = learn
        self.episodes_run = 0
        self.recorder = EpisodeRecorder()
        self.bounds = Rect(0.0, 0.0, 0.0, 0.0)
        self.window_size: WindowSize = (1, 1)

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        self.bounds = bounds
        self.window_size = window_size

    def observe(self) -> list[float]:
        raise NotImplementedError

    def step(self, action: int, frame: int) -> tuple[float, bool]:
        """Apply one action; returns (reward, terminal)."""

        raise NotImplementedError

    def projectiles(self) -> list[Projectile]:
        return []

    def _record(self, state, action, reward, next_state, done) -> None:
        self.recorder.record(state, action, reward, next_state, done)
        if self.learn:
            self.agent.learn(state, action, reward, next_state, done)

    def _finish(self, frames: int, terminal: bool) -> EpisodeResult:
        log = self.recorder.end_episode()
        if self.learn:
            self.agent.end_episode(log.total_reward)
        return EpisodeResult(
            role=self.role,
            frames=frames,
            total_reward=log.total_reward,
            terminal=terminal,
            transitions=len(log.transitions),
        )

    def run_episode(
        self,
        bounds: Rect,
        window_size: WindowSize,
        episode_length: int | None = None,
    ) -> EpisodeResult:
        length = self.default_length if episode_length is None else int(episode_length)
        self.episodes_run += 1
        self.reset(bounds, window_size)

        state = self.observe()
        frames = 0
        terminal = False
        for frame in range(length):
            action = self.agent.select_action(state)
            reward, terminal = self.step(action, frame)
            next_state = self.observe()
            self._record(state, action, reward, next_state, terminal)
            state = next_state
            frames = frame + 1
            if terminal:
                break
        return self._finish(frames, terminal)


class DodgeDriver(EpisodeDriver):
    """Shared physics for movement roles avoiding threats."""

    hit_radius = BULLET_HIT_RADIUS
    spawn_every = PLAYER_BULLET_SPAWN_EVERY

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        super().reset(bounds, window_size)
        self.profile = MovementRewardProfile.for_role(self.role)
        self.tracker = StationaryTracker()
        self.incoming: list[Projectile] = []
        self.position = self.spawn_actor()
        self.spawn_projectile()

    def spawn_actor(self) -> Vec2:
        return random_position(self.bounds, self.rng)

    def spawn_projectile(self) -> None:
        raise NotImplementedError

    def projectiles(self) -> list[Projectile]:
        return list(self.incoming)

    def _move(self, action: int) -> tuple[Vec2, float]:
        velocity = self.agent.action_to_effect(action)
        moved = clamp_to_rect(self.position + velocity, self.bounds, self.margin)
        return moved, distance(moved, self.position)

    def advance_threats(self) -> None:
        self.incoming = advance_projectiles(self.incoming, self.bounds)

    def collect_hits(self, position: Vec2) -> int:
        """Remove every projectile touching ``position``; returns how many did."""

        kept = [p for p in self.incoming if distance(position, p.position) >= self.hit_radius]
        hits = len(self.incoming) - len(kept)
        self.incoming = kept
        return hits

    def extra_reward(self, position: Vec2, hit: bool, frame: int) -> float:
        return 0.0

    def step(self, action: int, frame: int) -> tuple[float, bool]:
        moved, displacement = self._move(action)
        stationary_frames = self.tracker.update(displacement)
        self.advance_threats()
        hits = self.collect_hits(moved)
        hit = hits > 0
        reward = movement_reward(
            self.profile,
            hit=hit,
            displacement=displacement,
            stationary_frames=stationary_frames,
            wall_distance=distance_to_edges(moved, self.bounds),
            hit_penalty=self.profile.hit * hits,
        )
        reward += self.extra_reward(moved, hit, frame)
        self.position = moved
        self.advance_world(frame + 1)
        if (frame + 1) % self.spawn_every == 0:
            self.spawn_projectile()
        return reward, hit

    def advance_world(self, next_frame: int) -> None:
        pass


class PlayerMovementDriver(DodgeDriver):
    role = ROLE_PLAYER_MOVEMENT

    def spawn_projectile(self) -> None:
        origin = uniform_position(self.bounds, self.rng)
        projectile = aimed_projectile(origin, self.position, TRAINING_BULLET_SPEED)
        if projectile is not None:
            self.incoming.append(projectile)

    def observe(self) -> list[float]:
        return self.agent.encode(player=self.position, bullets=self.incoming, window_size=self.window_size)


class CompanionMovementDriver(PlayerMovementDriver):
    """Companion follows a player circling the range center while dodging."""

    role = ROLE_COMPANION_MOVEMENT
    spawn_every = COMPANION_BULLET_SPAWN_EVERY

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        self.orbit_center = bounds.center
        self.orbit_radius = min(bounds.width, bounds.height) / 3.0
        self.player = self._player_at(0)
        self.obstacles = obstacle_layout(bounds, COMPANION_OBSTACLE_LAYOUT)
        super().reset(bounds, window_size)

    def spawn_actor(self) -> Vec2:
        start = Vec2(self.orbit_center.x + COMPANION_START_OFFSET_PX, self.orbit_center.y)
        return clamp_to_rect(start, self.bounds, self.margin)

    def _player_at(self, frame: int) -> Vec2:
        angle = frame * COMPANION_ORBIT_RATE
        return Vec2(
            self.orbit_center.x + math.cos(angle) * self.orbit_radius,
            self.orbit_center.y + math.sin(angle) * self.orbit_radius,
        )

    def observe(self) -> list[float]:
        return self.agent.encode(
            companion=self.position,
            player=self.player,
            bullets=self.incoming,
            obstacles=self.obstacles,
            window_size=self.window_size,
        )

    def extra_reward(self, position: Vec2, hit: bool, frame: int) -> float:
        reward = companion_player_distance_reward(distance(position, self.player))
        if not hit:
            reward += companion_near_miss_reward(
                closest_distance(position, [p.position for p in self.incoming])
            )
        return reward

    def advance_world(self, next_frame: int) -> None:
        self.player = self._player_at(next_frame)


class EnemyMovementDriver(DodgeDriver):
    """Enemy dodges lasers fired from a player fixed at the range center."""

    role = ROLE_ENEMY_MOVEMENT
    spawn_every = ENEMY_LASER_SPAWN_EVERY

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        self.player = self.place_player(bounds)
        super().reset(bounds, window_size)

    def place_player(self, bounds: Rect) -> Vec2:
        return bounds.center

    def spawn_actor(self) -> Vec2:
        return uniform_position(self.bounds, self.rng, self.margin)

    def spawn_projectile(self) -> None:
        projectile = aimed_projectile(self.player, self.position, LASER_SPEED)
        if projectile is not None:
            self.incoming.append(projectile)

    def observe(self) -> list[float]:
        return self.agent.encode(
            enemy=self.position,
            player=self.player,
            companions=(),
            lasers=self.incoming,
            window_size=self.window_size,
        )


class BossMovementDriver(EnemyMovementDriver):
    """Boss starts centered among obstacles; the player fires from a random spot."""

    role = ROLE_BOSS_MOVEMENT
    default_length = BOSS_EPISODE_LENGTH
    margin = BOSS_EDGE_MARGIN
    hit_radius = BOSS_HIT_RADIUS
    spawn_every = BOSS_LASER_SPAWN_EVERY

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        self.companions = [uniform_position(bounds, self.rng) for _ in range(BOSS_COMPANION_COUNT)]
        self.obstacles = obstacle_layout(bounds, BOSS_OBSTACLE_LAYOUT)
        super().reset(bounds, window_size)

    def place_player(self, bounds: Rect) -> Vec2:
        return uniform_position(bounds, self.rng)

    def spawn_actor(self) -> Vec2:
        return self.bounds.center

    def observe(self) -> list[float]:
        return self.agent.encode(
            boss=self.position,
            player=self.player,
            companions=self.companions,
            lasers=self.incoming,
            obstacles=self.obstacles,
            window_size=self.window_size,
        )


class PlayerStealthMovementDriver(DodgeDriver):
    """Player sneaks past wandering enemies; entering detection range ends the episode."""

    role = ROLE_PLAYER_STEALTH_MOVEMENT
    default_length = STEALTH_EPISODE_LENGTH

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        low, high = STEALTH_ENEMY_COUNT
        self.enemies = [uniform_position(bounds, self.rng, self.margin) for _ in range(self.rng.randint(low, high))]
        super().reset(bounds, window_size)

    def spawn_projectile(self) -> None:
        pass

    def observe(self) -> list[float]:
        return self.agent.encode(player=self.position, enemies=self.enemies, window_size=self.window_size)

    def advance_threats(self) -> None:
        wandered = []
        for enemy in self.enemies:
            angle = self.rng.random() * 2.0 * math.pi
            step = Vec2(math.cos(angle) * PATROL_SPEED, math.sin(angle) * PATROL_SPEED)
            wandered.append(clamp_to_rect(enemy + step, self.bounds, self.margin))
        self.enemies = wandered

    def collect_hits(self, position: Vec2) -> int:
        nearest = closest_distance(position, self.enemies)
        return int(nearest is not None and nearest < ENEMY_DETECTION_RANGE)

    def extra_reward(self, position: Vec2, hit: bool, frame: int) -> float:
        if hit:
            return 0.0
        return stealth_distance_reward(closest_distance(position, self.enemies))


class PlayerShootingDriver(EpisodeDriver):
    """Shooter fires lasers at jittering enemies until all are destroyed."""

    role = ROLE_PLAYER_SHOOTING

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        super().reset(bounds, window_size)
        self.shooter = random_position(bounds, self.rng)
        low, high = SHOOTING_ENEMY_COUNT
        self.enemies = [
            Combatant(uniform_position(bounds, self.rng, self.margin), health=ENEMY_HEALTH)
            for _ in range(self.rng.randint(low, high))
        ]
        self.lasers: list[Projectile] = []

    def projectiles(self) -> list[Projectile]:
        return list(self.lasers)

    def observe(self) -> list[float]:
        return self.agent.encode(shooter=self.shooter, targets=self.enemies, window_size=self.window_size)

    def _jitter(self, enemy: Combatant) -> Combatant:
        jittered = enemy.position + random_velocity(self.rng, TARGET_JITTER_PX)
        return enemy.moved_to(clamp_to_rect(jittered, self.bounds, self.margin))

    def step(self, action: int, frame: int) -> tuple[float, bool]:
        context = AimContext(shooter=self.shooter, targets=tuple(enemy.position for enemy in self.enemies))
        shot = self.agent.action_to_effect(action, context)
        if shot is not None:
            self.lasers.append(Projectile(self.shooter, shot))

        self.lasers = advance_projectiles(self.lasers, self.bounds)
        self.enemies = [self._jitter(enemy) for enemy in self.enemies]

        hits = 0
        kills = 0
        remaining_lasers = []
        for laser in self.lasers:
            struck = next(
                (index for index, enemy in enumerate(self.enemies)
                 if distance(laser.position, enemy.position) < LASER_HIT_RADIUS),
                None,
            )
            if struck is None:
                remaining_lasers.append(laser)
                continue
            hits += 1
            damaged = self.enemies[struck].damaged(LASER_DAMAGE)
            if damaged.alive:
                self.enemies[struck] = damaged
            else:
                kills += 1
                del self.enemies[struck]
        self.lasers = remaining_lasers
        return shooter_reward(hits, kills), not self.enemies


class CompanionShootingDriver(PlayerShootingDriver):
    role = ROLE_COMPANION_SHOOTING


class EnemyShootingDriver(EpisodeDriver):
    """Enemy or boss shoots at bouncing targets; the first target is the player."""

    role = ROLE_ENEMY_SHOOTING
    target_count = ENEMY_SHOOTING_TARGET_COUNT
    target_speed_spread = ENEMY_TARGET_SPEED_SPREAD
    max_bullets = MAX_ENEMY_BULLETS
    player_value = REWARD_ENEMY_HITS_PLAYER
    companion_value = REWARD_ENEMY_HITS_COMPANION

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        super().reset(bounds, window_size)
        self.shooter = random_position(bounds, self.rng)
        low, high = self.target_count
        self.targets = [
            Combatant(
                uniform_position(bounds, self.rng, self.margin),
                random_velocity(self.rng, self.target_speed_spread),
                is_player=index == 0,
            )
            for index in range(self.rng.randint(low, high))
        ]
        self.bullets: list[Projectile] = []

    def projectiles(self) -> list[Projectile]:
        return list(self.bullets)

    @property
    def player(self) -> Combatant:
        return self.targets[0]

    def companion_positions(self) -> list[Vec2]:
        return [target.position for target in self.targets if not target.is_player]

    def _shots(self, action: int) -> tuple[Vec2, ...]:
        context = AimContext(
            shooter=self.shooter,
            player=self.player.position,
            player_velocity=self.player.velocity,
        )
        shot = self.agent.action_to_effect(action, context)
        return () if shot is None else (shot,)

    def step(self, action: int, frame: int) -> tuple[float, bool]:
        for velocity in self._shots(action):
            if len(self.bullets) < self.max_bullets:
                self.bullets.append(Projectile(self.shooter, velocity))

        self.bullets = advance_projectiles(self.bullets, self.bounds)
        moved_targets = []
        for target in self.targets:
            position, velocity = bounce(target.position, target.velocity, self.bounds, self.margin)
            moved_targets.append(target.moved_to(position, velocity))
        self.targets = moved_targets

        player_hits = 0
        companion_hits = 0
        remaining = []
        for bullet in self.bullets:
            struck = next(
                (target for target in self.targets if distance(bullet.position, target.position) < BULLET_HIT_RADIUS),
                None,
            )
            if struck is None:
                remaining.append(bullet)
            elif struck.is_player:
                player_hits += 1
            else:
                companion_hits += 1
        self.bullets = remaining
        reward = target_hit_reward(player_hits, companion_hits, self.player_value, self.companion_value)
        return reward, False

    def observe(self) -> list[float]:
        return self.agent.encode(
            enemy=self.shooter,
            player=self.player.position,
            player_velocity=self.player.velocity,
            companions=self.companion_positions(),
            window_size=self.window_size,
        )


class BossShootingDriver(EnemyShootingDriver):
    role = ROLE_BOSS_SHOOTING
    default_length = BOSS_EPISODE_LENGTH
    target_count = BOSS_SHOOTING_TARGET_COUNT
    target_speed_spread = BOSS_TARGET_SPEED_SPREAD
    max_bullets = MAX_BOSS_BULLETS
    player_value = REWARD_BOSS_HITS_PLAYER
    companion_value = REWARD_BOSS_HITS_COMPANION

    def _shots(self, action: int) -> tuple[Vec2, ...]:
        context = AimContext(
            shooter=self.shooter,
            player=self.player.position,
            player_velocity=self.player.velocity,
        )
        volley = self.agent.action_to_effect(action, context)
        return volley or ()

    def observe(self) -> list[float]:
        return self.agent.encode(
            boss=self.shooter,
            player=self.player.position,
            player_velocity=self.player.velocity,
            companions=self.companion_positions(),
            window_size=self.window_size,
        )


class EnemyPatrolDriver(EpisodeDriver):
    """Enemy is rewarded for spreading its visits over a 3x3 coverage grid."""

    role = ROLE_ENEMY_PATROL
    default_length = PATROL_EPISODE_LENGTH

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        super().reset(bounds, window_size)
        self.position = uniform_position(bounds, self.rng, self.margin)
        self.velocity = Vec2(0.0, 0.0)
        self.coverage = CoverageGrid(bounds)
        self.coverage.visit(self.position)

    def observe(self) -> list[float]:
        return self.agent.encode(
            enemy=self.position,
            velocity=self.velocity,
            coverage=self.coverage.cells,
            window_size=self.window_size,
        )

    def step(self, action: int, frame: int) -> tuple[float, bool]:
        self.velocity = self.agent.action_to_effect(action)
        self.position = clamp_to_rect(self.position + self.velocity, self.bounds, self.margin)
        previous = self.coverage.visit(self.position)
        stopped = self.velocity.x == 0.0 and self.velocity.y == 0.0
        reward = patrol_reward(previous, self.coverage, stopped, distance_to_edges(self.position, self.bounds))
        return reward, False


class CompanionSoloMovementDriver(EpisodeDriver):
    """Several companions share one agent and learn to dodge while keeping apart.

    The companion count follows a curriculum keyed by the episode counter:
    one companion at first, then two, then three or four.
    """

    role = ROLE_COMPANION_SOLO_MOVEMENT

    def companion_count_for(self, episode: int) -> int:
        for last_episode, count in SOLO_CURRICULUM_PHASES:
            if episode <= last_episode:
                return count
        low, high = SOLO_CURRICULUM_FINAL_COUNTS
        return self.rng.randint(low, high)

    def reset(self, bounds: Rect, window_size: WindowSize) -> None:
        super().reset(bounds, window_size)
        self.profile = MovementRewardProfile.for_role(self.role)
        self.companion_count = self.companion_count_for(self.episodes_run)
        self.companions = [random_position(bounds, self.rng) for _ in range(self.companion_count)]
        self.trackers = [StationaryTracker() for _ in self.companions]
        self.active = [True] * self.companion_count
        low, high = SOLO_ENEMY_COUNT
        self.enemies = [uniform_position(bounds, self.rng, self.margin) for _ in range(self.rng.randint(low, high))]
        self.bullets: list[Projectile] = []
        self._enemy_volley()

    def projectiles(self) -> list[Projectile]:
        return list(self.bullets)

    def observe_companion(self, index: int) -> list[float]:
        return self.agent.encode(
            companion=self.companions[index],
            bullets=self.bullets,
            enemies=self.enemies,
            window_size=self.window_size,
        )

    def _enemy_volley(self) -> None:
        live = [position for position, active in zip(self.companions, self.active) if active]
        if not live:
            return
        for enemy in self.enemies:
            if self.rng.random() < SOLO_ENEMY_SHOOT_PROBABILITY:
                projectile = aimed_projectile(enemy, self.rng.choice(live), TRAINING_BULLET_SPEED)
                if projectile is not None:
                    self.bullets.append(projectile)

    def _chase(self) -> None:
        live = [position for position, active in zip(self.companions, self.active) if active]
        if not live:
            return
        chased = []
        for enemy in self.enemies:
            target = min(live, key=lambda position: distance(enemy, position))
            step = direction_to(enemy, target) * SOLO_ENEMY_CHASE_SPEED
            chased.append(clamp_to_rect(enemy + step, self.bounds, self.margin))
        self.enemies = chased

    def _companion_reward(self, index: int, position: Vec2, displacement: float) -> tuple[float, bool]:
        bullet_hit = False
        for bullet_index, bullet in enumerate(self.bullets):
            if distance(position, bullet.position) < BULLET_HIT_RADIUS:
                del self.bullets[bullet_index]
                bullet_hit = True
                break
        collisions = sum(1 for enemy in self.enemies if distance(position, enemy) < ENEMY_COLLISION_RADIUS)
        hit = bullet_hit or collisions > 0
        hit_penalty = (self.profile.hit if bullet_hit else 0.0) + SOLO_ENEMY_COLLISION_PENALTY * collisions

        reward = movement_reward(
            self.profile,
            hit=hit,
            displacement=displacement,
            stationary_frames=self.trackers[index].update(displacement),
            wall_distance=distance_to_edges(position, self.bounds),
            hit_penalty=hit_penalty,
        )
        if not hit:
            reward += solo_near_miss_reward(closest_distance(position, [b.position for b in self.bullets]))
        reward += enemy_distance_reward([distance(position, enemy) for enemy in self.enemies])
        others = [
            other
            for other_index, (other, active) in enumerate(zip(self.companions, self.active))
            if active and other_index != index
        ]
        reward += clustering_reward(closest_distance(position, others))
        return reward, hit

    def run_episode(
        self,
        bounds: Rect,
        window_size: WindowSize,
        episode_length: int | None = None,
    ) -> EpisodeResult:
        length = self.default_length if episode_length is None else int(episode_length)
        self.episodes_run += 1
        self.reset(bounds, window_size)

        states = [self.observe_companion(index) for index in range(self.companion_count)]
        frames = 0
        for frame in range(length):
            live = [index for index in range(self.companion_count) if self.active[index]]
            actions = {index: self.agent.select_action(states[index]) for index in live}

            displacements = {}
            for index in live:
                velocity = self.agent.action_to_effect(actions[index])
                moved = clamp_to_rect(self.companions[index] + velocity, self.bounds, self.margin)
                displacements[index] = distance(moved, self.companions[index])
                self.companions[index] = moved

            outcomes = {
                index: self._companion_reward(index, self.companions[index], displacements[index])
                for index in live
            }
            for index, (_, hit) in outcomes.items():
                if hit:
                    self.active[index] = False

            self._chase()
            self.bullets = advance_projectiles(self.bullets, self.bounds)
            if (frame + 1) % SOLO_ENEMY_VOLLEY_EVERY == 0:
                self._enemy_volley()

            for index in live:
                next_state = self.observe_companion(index)
                reward, hit = outcomes[index]
                self._record(states[index], actions[index], reward, next_state, hit)
                states[index] = next_state

            frames = frame + 1
            if not any(self.active):
                break
        return self._finish(frames, not any(self.active))


DRIVERS: dict[str, type[EpisodeDriver]] = {
    driver.role: driver
    for driver in (
        PlayerMovementDriver,
        PlayerShootingDriver,
        CompanionMovementDriver,
        CompanionShootingDriver,
        CompanionSoloMovementDriver,
        EnemyMovementDriver,
        EnemyShootingDriver,
        BossMovementDriver,
        BossShootingDriver,
        PlayerStealthMovementDriver,
        EnemyPatrolDriver,
    )
}


def build_driver(agent: RoleAgent, rng: random.Random | None = None, learn: bool = True) -> EpisodeDriver:
    try:
        driver_cls = DRIVERS[agent.role]
    except KeyError:
        raise UnknownRoleError(agent.role) from None
    return driver_cls(agent, rng=rng, learn=learn)
