from __future__ import annotations
import math
import numbers
from dataclasses import dataclass, field, replace
from enum import Enum

# Slider ranges exposed by the control panel of the web demo
WAVELENGTH_RANGE = (300.0, 800.0)
SLIT_SEPARATION_RANGE = (40.0, 120.0)
EMISSION_RATE_RANGE = (1.0, 20.0)


class InvalidConfigError(ValueError):
    """Raised when a configuration would produce NaNs or a stalled engine."""


class Slit(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"


def _require_positive(name: str, value: float) -> None:
    if not isinstance(value, numbers.Real) or isinstance(value, bool):
        raise InvalidConfigError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidConfigError(f"{name} must be positive and finite, got {value!r}")


@dataclass(frozen=True)
class SceneGeometry:
    # Screen (pixel-like units, y grows downward)
    screen_height: float = 400.0

    # Horizontal stations
    source_x: float = 50.0
    slit_x: float = 250.0
    screen_x: float = 750.0

    # Kinematics
    particle_speed: float = 4.0       # horizontal distance per tick

    # Density model
    envelope_sigma: float = 80.0      # single-slit diffraction envelope
    peak_width: float = 1000.0        # denominator of the observed Gaussians
    phase_scale: float = 0.05         # maps wavelength onto a visible fringe spacing

    # Sampler
    max_sample_attempts: int = 100
    fallback_window: float = 50.0

    # Histogram
    bin_width: float = 5.0

    @property
    def center_y(self) -> float:
        return self.screen_height / 2

    @property
    def slit_to_screen(self) -> float:
        return self.screen_x - self.slit_x

    @property
    def num_bins(self) -> int:
        return int(self.screen_height // self.bin_width)

    def slit_center_y(self, slit: Slit, slit_separation: float) -> float:
        offset = slit_separation / 2
        return self.center_y - offset if slit is Slit.TOP else self.center_y + offset

    def validate(self) -> "SceneGeometry":
        for name in ("screen_height", "particle_speed", "envelope_sigma",
                     "peak_width", "phase_scale", "bin_width"):
            _require_positive(name, getattr(self, name))
        if not (self.source_x < self.slit_x < self.screen_x):
            raise InvalidConfigError(
                f"stations must satisfy source_x < slit_x < screen_x, got "
                f"{self.source_x}, {self.slit_x}, {self.screen_x}")
        # A particle must spend at least one tick on each segment
        if self.particle_speed >= min(self.slit_x - self.source_x, self.slit_to_screen):
            raise InvalidConfigError(
                f"particle_speed {self.particle_speed} skips a whole flight segment in one tick")
        if int(self.max_sample_attempts) < 1:
            raise InvalidConfigError("max_sample_attempts must be at least 1")
        if self.fallback_window < 0.0 or self.fallback_window > self.screen_height:
            raise InvalidConfigError("fallback_window must lie within the screen height")
        if self.num_bins < 1:
            raise InvalidConfigError("bin_width is larger than the screen")
        return self


DEFAULT_SCENE = SceneGeometry()


@dataclass(frozen=True)
class SimulationConfig:
    # Optics
    wavelength: float = 500.0          # nm, used only as a visual proxy
    slit_separation: float = 80.0      # distance between slit centres

    # Measurement
    observer_active: bool = False

    # Source
    emission_rate: float = 5.0         # particles (or pairs) per second

    # Rendering only; the engine never reads it
    show_guides: bool = True

    def validate(self) -> "SimulationConfig":
        _require_positive("wavelength", self.wavelength)
        _require_positive("slit_separation", self.slit_separation)
        _require_positive("emission_rate", self.emission_rate)
        return self

    @property
    def emission_interval(self) -> float:
        return 1.0 / self.emission_rate

    def with_changes(self, **changes) -> "SimulationConfig":
        return replace(self, **changes)

    def pattern_key(self) -> tuple[float, float, bool]:
        """Fields whose change invalidates an accumulated landing pattern."""
        return (float(self.slit_separation), float(self.wavelength), bool(self.observer_active))


@dataclass
class RunSettings:
    ticks: int = 1000
    dt: float = 1.0 / 60.0             # seconds per tick
    seed: int | None = None
    config: SimulationConfig = field(default_factory=SimulationConfig)
    scene: SceneGeometry = field(default_factory=SceneGeometry)
