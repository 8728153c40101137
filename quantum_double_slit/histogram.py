from __future__ import annotations
import math
import numpy as np
from scipy.ndimage import uniform_filter1d
from scipy.signal import find_peaks

from .config import DEFAULT_SCENE, SceneGeometry, SimulationConfig
from .engine import LandingEvent
from .physics import density_profile


class HistogramSink:
    """
    Bins landing ordinates along the screen.

    Bins are ``bin_width`` wide starting at y = 0; landings outside
    ``[0, num_bins)`` are dropped. The sink can be registered directly as a
    landing listener on the simulation.
    """

    def __init__(self, scene: SceneGeometry = DEFAULT_SCENE):
        self.scene = scene
        self.bin_width = float(scene.bin_width)
        self.num_bins = scene.num_bins
        self.counts = np.zeros(self.num_bins, dtype=np.int64)
        self.dropped = 0
        self._pattern_key: tuple[float, float, bool] | None = None

    def __call__(self, event: LandingEvent) -> None:
        self.record(event.y)

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    def record(self, y: float) -> int | None:
        idx = math.floor(y / self.bin_width)
        if idx < 0 or idx >= self.num_bins:
            self.dropped += 1
            return None
        self.counts[idx] += 1
        return idx

    def reset(self) -> None:
        self.counts[:] = 0
        self.dropped = 0

    def sync_config(self, config: SimulationConfig) -> bool:
        """Reset when the pattern-defining fields change. Returns True on reset."""
        key = config.pattern_key()
        changed = self._pattern_key is not None and key != self._pattern_key
        self._pattern_key = key
        if changed:
            self.reset()
        return changed

    def positions(self) -> np.ndarray:
        """Left bin edges relative to the screen centre."""
        return np.arange(self.num_bins, dtype=np.float64) * self.bin_width - self.scene.screen_height / 2

    def theoretical(self, config: SimulationConfig) -> np.ndarray:
        """Expected counts per bin for the current total, from the density model."""
        profile = density_profile(config, self.scene)
        mass = float(profile.sum())
        if mass <= 0.0:
            return np.zeros(self.num_bins, dtype=np.float64)
        return profile * (self.total / mass)

    def to_records(self, config: SimulationConfig | None = None) -> list[dict]:
        theory = self.theoretical(config) if config is not None else None
        rows = []
        for i, (pos, count) in enumerate(zip(self.positions(), self.counts)):
            row = {"position": float(pos), "count": int(count)}
            if theory is not None:
                row["theoretical"] = float(theory[i])
            rows.append(row)
        return rows


def smooth_profile(profile, size: int = 3) -> np.ndarray:
    F = np.asarray(profile, dtype=np.float64)
    if size <= 1:
        return F
    return uniform_filter1d(F, size=size, mode='nearest')


def fringe_peaks(profile, smooth: int = 1, rel_prominence: float = 0.02) -> np.ndarray:
    """Indices of local maxima with at least ``rel_prominence`` of the profile range."""
    F = smooth_profile(profile, smooth)
    span = float(F.max() - F.min()) if F.size else 0.0
    if span <= 0.0:
        return np.zeros(0, dtype=np.int64)
    peaks, _ = find_peaks(F, prominence=rel_prominence * span)
    return peaks


def fringe_minima(profile, smooth: int = 1, rel_prominence: float = 0.02) -> np.ndarray:
    F = smooth_profile(profile, smooth)
    span = float(F.max() - F.min()) if F.size else 0.0
    if span <= 0.0:
        return np.zeros(0, dtype=np.int64)
    minima, _ = find_peaks(-F, prominence=rel_prominence * span)
    return minima


def fringe_spacing(profile, bin_width: float = DEFAULT_SCENE.bin_width,
                   smooth: int = 1, rel_prominence: float = 0.02) -> float | None:
    """
    Fringe period estimated from the two minima that flank the central
    maximum (distance between them). None when either side has no minimum.
    """
    F = np.asarray(profile, dtype=np.float64)
    center = 0.5 * (F.size - 1)
    minima = fringe_minima(F, smooth, rel_prominence)
    left = minima[minima < center]
    right = minima[minima > center]
    if left.size == 0 or right.size == 0:
        return None
    return float((right.min() - left.max()) * bin_width)
