from __future__ import annotations
from collections.abc import Callable
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from .config import DEFAULT_SCENE, SceneGeometry, SimulationConfig, Slit
from .particles import Particle, ParticleStore, Phase
from .physics import TargetSampler


@dataclass(frozen=True)
class LandingEvent:
    y: float
    particle_id: int
    origin_slit: Slit
    tick: int


class EmissionPolicy:
    """
    Time-gated source. Observed mode fires one particle at a randomly chosen
    slit; unobserved mode fires a twin pair (one per slit) sharing a target.
    """

    def __init__(self, store: ParticleStore, sampler: TargetSampler,
                 scene: SceneGeometry = DEFAULT_SCENE,
                 rng: np.random.Generator | None = None):
        self.store = store
        self.sampler = sampler
        self.scene = scene
        self.rng = rng if rng is not None else sampler.rng
        self.since_last = 0.0
        self.emissions = 0

    def reset(self) -> None:
        self.since_last = 0.0

    def tick(self, elapsed: float, config: SimulationConfig, running: bool) -> list[Particle]:
        if not running:
            return []
        self.since_last += float(elapsed)
        if self.since_last <= config.emission_interval:
            return []
        self.since_last = 0.0
        self.emissions += 1
        if config.observer_active:
            return self._emit_single(config)
        return self._emit_pair(config)

    def _aim_at_slit(self, slit: Slit, config: SimulationConfig) -> float:
        scene = self.scene
        time_to_slit = (scene.slit_x - scene.source_x) / scene.particle_speed
        return (scene.slit_center_y(slit, config.slit_separation) - scene.center_y) / time_to_slit

    def _spawn(self, pid: int, slit: Slit, target_y: float, config: SimulationConfig, **kw) -> Particle:
        scene = self.scene
        return Particle(
            id=pid,
            x=scene.source_x,
            y=scene.center_y,
            vx=scene.particle_speed,
            vy=self._aim_at_slit(slit, config),
            target_y=target_y,
            origin_slit=slit,
            **kw,
        )

    def _emit_single(self, config: SimulationConfig) -> list[Particle]:
        slit = Slit.TOP if self.rng.random() < 0.5 else Slit.BOTTOM
        (pid,) = self.store.next_ids(1)
        particle = self._spawn(pid, slit, self.sampler.sample(config), config)
        self.store.add(particle)
        return [particle]

    def _emit_pair(self, config: SimulationConfig) -> list[Particle]:
        target_y = self.sampler.sample(config)
        top_id, bottom_id = self.store.next_ids(2)
        pair = [
            self._spawn(top_id, Slit.TOP, target_y, config,
                        twin_id=bottom_id, counts_toward_histogram=True),
            self._spawn(bottom_id, Slit.BOTTOM, target_y, config,
                        twin_id=top_id, counts_toward_histogram=False),
        ]
        self.store.add_all(pair)
        return pair


class KinematicsStepper:
    """
    Advances every live particle by one tick.

    to_slit -> to_screen happens when a particle reaches ``slit_x``: its y is
    snapped to the slit centre and vy is re-aimed so the straight flight ends
    exactly at ``target_y`` on the screen. Arrival at ``screen_x`` produces a
    landing event and retires the particle. A twin pair settles once: the
    first member to arrive reports for the pair and the other is retired in
    the same tick without an event.
    """

    def __init__(self, store: ParticleStore, scene: SceneGeometry = DEFAULT_SCENE):
        self.store = store
        self.scene = scene

    def step(self, config: SimulationConfig, tick: int = 0) -> list[LandingEvent]:
        events: list[LandingEvent] = []
        store = self.store
        for pid in store.live_ids():
            if store.is_retiring(pid):
                continue
            p = store.get(pid)
            if p.phase is Phase.TO_SLIT:
                p.advance()
                if p.x >= self.scene.slit_x:
                    self._cross_slit(p, config)
            else:
                p.advance()
                if p.x >= self.scene.screen_x:
                    event = self._land(p, tick)
                    if event is not None:
                        events.append(event)
        store.flush()
        return events

    def _cross_slit(self, p: Particle, config: SimulationConfig) -> None:
        scene = self.scene
        p.y = scene.slit_center_y(p.origin_slit, config.slit_separation)
        p.phase = Phase.TO_SCREEN
        time_to_screen = (scene.screen_x - p.x) / p.vx
        p.vy = (p.target_y - p.y) / time_to_screen

    def _land(self, p: Particle, tick: int) -> LandingEvent | None:
        # back off the overshoot so y is read at the exact screen crossing
        overshoot = (p.x - self.scene.screen_x) / p.vx
        landing_y = p.y - p.vy * overshoot
        store = self.store
        counted = p.counts_toward_histogram
        twin = store.twin_of(p)
        if twin is not None:
            counted = counted or twin.counts_toward_histogram
            store.retire(twin.id)
        store.retire(p.id)
        if not counted:
            return None
        return LandingEvent(y=float(landing_y), particle_id=p.id,
                            origin_slit=p.origin_slit, tick=tick)


class DoubleSlitSimulation:
    """
    Tick driver tying emission, kinematics and the landing listeners together.
    The caller owns the frame cadence and calls ``advance_tick`` once per frame.
    """

    def __init__(self, scene: SceneGeometry | None = None, *,
                 seed: int | None = None,
                 rng: np.random.Generator | None = None):
        self.scene = (scene or DEFAULT_SCENE).validate()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.store = ParticleStore()
        self.sampler = TargetSampler(self.scene, self.rng)
        self.emitter = EmissionPolicy(self.store, self.sampler, self.scene, self.rng)
        self.stepper = KinematicsStepper(self.store, self.scene)
        self.tick_count = 0
        self.landed_count = 0
        self._landing_listeners: list[Callable[[LandingEvent], None]] = []

    @property
    def particles(self) -> Iterator[Particle]:
        return iter(self.store)

    def add_landing_listener(self, callback: Callable[[LandingEvent], None]):
        if callback in self._landing_listeners:
            return
        self._landing_listeners.append(callback)

    def remove_landing_listener(self, callback: Callable[[LandingEvent], None]):
        try:
            self._landing_listeners.remove(callback)
        except ValueError:
            pass

    def _notify_landing_listeners(self, event: LandingEvent):
        for cb in tuple(self._landing_listeners):
            try:
                cb(event)
            except Exception as exc:
                print(f"[landing-listener] callback error: {exc}")

    def advance_tick(self, elapsed: float, config: SimulationConfig,
                     running: bool) -> list[LandingEvent]:
        config.validate()
        self.emitter.tick(elapsed, config, running)
        events = self.stepper.step(config, self.tick_count)
        self.tick_count += 1
        self.landed_count += len(events)
        for event in events:
            self._notify_landing_listeners(event)
        return events

    def run(self, ticks: int, dt: float, config: SimulationConfig,
            running: bool = True) -> list[LandingEvent]:
        events: list[LandingEvent] = []
        for _ in range(int(ticks)):
            events.extend(self.advance_tick(dt, config, running))
        return events

    def drain(self, config: SimulationConfig, max_ticks: int | None = None) -> list[LandingEvent]:
        """Stop emitting and tick until every in-flight particle has landed."""
        if max_ticks is None:
            max_ticks = int((self.scene.screen_x - self.scene.source_x) / self.scene.particle_speed) + 2
        events: list[LandingEvent] = []
        for _ in range(max_ticks):
            if not len(self.store):
                break
            events.extend(self.advance_tick(0.0, config, False))
        return events

    def reset(self) -> None:
        self.store.clear()
        self.emitter.reset()
        self.landed_count = 0
