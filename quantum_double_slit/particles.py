from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional

from .config import Slit


class Phase(str, Enum):
    TO_SLIT = "to_slit"
    TO_SCREEN = "to_screen"


@dataclass
class Particle:
    id: int
    x: float
    y: float
    vx: float
    vy: float
    target_y: float
    origin_slit: Slit
    phase: Phase = Phase.TO_SLIT
    twin_id: Optional[int] = None
    counts_toward_histogram: bool = True

    def __setattr__(self, name, value):
        # target_y is the sampling outcome; it is fixed once assigned
        if name == "target_y" and "target_y" in self.__dict__:
            raise AttributeError("target_y is immutable after creation")
        super().__setattr__(name, value)

    @property
    def is_twin(self) -> bool:
        return self.twin_id is not None

    def advance(self) -> None:
        self.x += self.vx
        self.y += self.vy


class ParticleStore:
    """
    Arena of in-flight particles keyed by id.

    Iterate through ``live_ids()`` (a sorted snapshot) when mutating during a
    tick, and queue removals with ``retire`` so they apply at ``flush``.
    """

    def __init__(self):
        self._particles: dict[int, Particle] = {}
        self._next_id = 0
        self._pending: set[int] = set()

    def __len__(self) -> int:
        return len(self._particles)

    def __contains__(self, pid: object) -> bool:
        return pid in self._particles

    def __iter__(self) -> Iterator[Particle]:
        return iter(tuple(self._particles.values()))

    def next_ids(self, count: int) -> list[int]:
        ids = list(range(self._next_id, self._next_id + count))
        self._next_id += count
        return ids

    def get(self, pid: Optional[int]) -> Optional[Particle]:
        if pid is None:
            return None
        return self._particles.get(pid)

    def twin_of(self, particle: Particle) -> Optional[Particle]:
        """Live twin of ``particle``, or None if it has none or it is gone."""
        twin = self.get(particle.twin_id)
        if twin is None or twin.id in self._pending:
            return None
        return twin

    def add(self, particle: Particle) -> None:
        self.add_all((particle,))

    def add_all(self, particles: Iterable[Particle]) -> None:
        batch = list(particles)
        seen: set[int] = set()
        for p in batch:
            if p.id in self._particles or p.id in seen:
                raise KeyError(f"particle id {p.id} already present")
            seen.add(p.id)
        for p in batch:
            self._particles[p.id] = p

    def live_ids(self) -> list[int]:
        return sorted(self._particles)

    def is_retiring(self, pid: int) -> bool:
        return pid in self._pending

    def retire(self, pid: int) -> None:
        if pid in self._particles:
            self._pending.add(pid)

    def flush(self) -> int:
        removed = 0
        for pid in self._pending:
            if self._particles.pop(pid, None) is not None:
                removed += 1
        self._pending.clear()
        return removed

    def clear(self) -> None:
        # ids keep counting up; they are never reused while the simulation runs
        self._particles.clear()
        self._pending.clear()
