"""Immutable entity snapshots shared by encoders and training ranges."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from pyglet.math import Vec2


@dataclass(frozen=True)
class Projectile:
    """A bullet or laser; velocity is in px/frame."""

    position: Vec2
    velocity: Vec2 = field(default_factory=lambda: Vec2(0.0, 0.0))

    def advanced(self, frames: int = 1) -> "Projectile":
        return replace(self, position=self.position + self.velocity * frames)


@dataclass(frozen=True)
class Combatant:
    """Player, companion, enemy or boss snapshot."""

    position: Vec2
    velocity: Vec2 = field(default_factory=lambda: Vec2(0.0, 0.0))
    health: float = 100.0
    is_player: bool = False

    def moved_to(self, position: Vec2, velocity: Vec2 | None = None) -> "Combatant":
        return replace(
            self,
            position=position,
            velocity=self.velocity if velocity is None else velocity,
        )

    def damaged(self, amount: float) -> "Combatant":
        return replace(self, health=self.health - amount)

    @property
    def alive(self) -> bool:
        return self.health > 0


@dataclass(frozen=True)
class Obstacle:
    position: Vec2
    width: float
    height: float

    @property
    def center(self) -> Vec2:
        return Vec2(self.position.x + self.width / 2.0, self.position.y + self.height / 2.0)
