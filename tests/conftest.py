import numpy as np
import pytest

from quantum_double_slit import DoubleSlitSimulation, HistogramSink, SimulationConfig


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def wave_config():
    return SimulationConfig(wavelength=500, slit_separation=80, observer_active=False, emission_rate=5)


@pytest.fixture
def observed_config(wave_config):
    return wave_config.with_changes(observer_active=True)


def run_scenario(config, ticks=1000, dt=0.25, seed=1234):
    """Simulation plus histogram wired as in the app; dt 0.25 s emits every tick at 5/s."""
    sim = DoubleSlitSimulation(seed=seed)
    sink = HistogramSink(sim.scene)
    sink.sync_config(config)
    sim.add_landing_listener(sink)
    sim.run(ticks, dt, config)
    return sim, sink


def band_count(sink, lo, hi):
    """Landings whose bin centre lies at lo <= |y - centre| <= hi."""
    rel = np.abs(sink.positions() + 0.5 * sink.bin_width)
    mask = (rel >= lo) & (rel <= hi)
    return int(sink.counts[mask].sum())
