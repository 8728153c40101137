from __future__ import annotations
import math
import numpy as np

from .config import DEFAULT_SCENE, SceneGeometry, SimulationConfig


def density(y, slit_separation: float, wavelength: float, observed: bool,
            scene: SceneGeometry = DEFAULT_SCENE):
    """
    Unnormalised landing density at screen ordinate(s) ``y``.

    Observed: two Gaussians at +/- d/2, one per slit. Unobserved: the two-slit
    intensity law cos^2(pi d y / (lambda L k)). Both share a Gaussian envelope
    about the optical axis. The result is clipped to [0, 1] so callers can use
    it directly as an acceptance probability. Scalars in, float out; arrays in,
    array out.
    """
    ry = np.asarray(y, dtype=np.float64) - scene.center_y
    envelope = np.exp(-(ry * ry) / (2.0 * scene.envelope_sigma * scene.envelope_sigma))
    if observed:
        half = 0.5 * float(slit_separation)
        top = np.exp(-((ry - half) ** 2) / scene.peak_width)
        bottom = np.exp(-((ry + half) ** 2) / scene.peak_width)
        r = (top + bottom) * envelope
    else:
        phase = (math.pi * float(slit_separation) * ry) / (
            float(wavelength) * scene.slit_to_screen * scene.phase_scale)
        r = np.cos(phase) ** 2 * envelope
    r = np.clip(r, 0.0, 1.0)
    if r.ndim == 0:
        return float(r)
    return r


def bin_centers(scene: SceneGeometry = DEFAULT_SCENE) -> np.ndarray:
    return (np.arange(scene.num_bins, dtype=np.float64) + 0.5) * scene.bin_width


def density_profile(config: SimulationConfig,
                    scene: SceneGeometry = DEFAULT_SCENE,
                    ys: np.ndarray | None = None) -> np.ndarray:
    """Density sampled on ``ys`` (bin centres by default)."""
    if ys is None:
        ys = bin_centers(scene)
    return density(ys, config.slit_separation, config.wavelength,
                   config.observer_active, scene)


class TargetSampler:
    """
    Rejection sampler for screen landing ordinates.

    After ``max_sample_attempts`` rejected draws the sampler gives up on the
    density and returns a point from a narrow uniform window around the screen
    centre. That fallback keeps emission alive; it is not a physics result and
    is tracked in ``fallback_count``.
    """

    def __init__(self, scene: SceneGeometry = DEFAULT_SCENE,
                 rng: np.random.Generator | None = None):
        self.scene = scene
        self.rng = rng if rng is not None else np.random.default_rng()
        self.sample_count = 0
        self.fallback_count = 0
        self._fallback_logged = False

    @property
    def fallback_rate(self) -> float:
        if self.sample_count == 0:
            return 0.0
        return self.fallback_count / self.sample_count

    def sample(self, config: SimulationConfig) -> float:
        scene = self.scene
        height = scene.screen_height
        self.sample_count += 1
        for _ in range(int(scene.max_sample_attempts)):
            y = self.rng.random() * height
            p = density(y, config.slit_separation, config.wavelength,
                        config.observer_active, scene)
            if self.rng.random() < p:
                return float(y)
        return self._fallback()

    def _fallback(self) -> float:
        self.fallback_count += 1
        if not self._fallback_logged:
            print(f"[sampler] rejection sampling exhausted after {self.scene.max_sample_attempts} "
                  f"attempts; using centre window fallback.")
            self._fallback_logged = True
        scene = self.scene
        return float(scene.center_y + (self.rng.random() - 0.5) * scene.fallback_window)

    def reset_stats(self) -> None:
        self.sample_count = 0
        self.fallback_count = 0
        self._fallback_logged = False
