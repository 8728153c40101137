from .engine import DoubleSlitSimulation, EmissionPolicy, KinematicsStepper, LandingEvent
from .config import InvalidConfigError, SceneGeometry, SimulationConfig, Slit
from .histogram import HistogramSink
from .physics import TargetSampler, density, density_profile

__all__ = [
    "DoubleSlitSimulation",
    "EmissionPolicy",
    "KinematicsStepper",
    "LandingEvent",
    "InvalidConfigError",
    "SceneGeometry",
    "SimulationConfig",
    "Slit",
    "HistogramSink",
    "TargetSampler",
    "density",
    "density_profile",
]
