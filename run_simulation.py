import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import numpy as np

from quantum_double_slit.config import (
    EMISSION_RATE_RANGE,
    SLIT_SEPARATION_RANGE,
    WAVELENGTH_RANGE,
    InvalidConfigError,
    RunSettings,
    SimulationConfig,
)


def _warn_outside(name: str, value: float, bounds: tuple[float, float]) -> None:
    lo, hi = bounds
    if not (lo <= value <= hi):
        print(f"[warn] {name}={value:g} is outside the tested range [{lo:g}, {hi:g}].")


def build_settings(args) -> RunSettings:
    config = SimulationConfig()
    changes = {}
    if args.wavelength is not None:
        changes["wavelength"] = float(args.wavelength)
    if args.slit_separation is not None:
        changes["slit_separation"] = float(args.slit_separation)
    if args.emission_rate is not None:
        changes["emission_rate"] = float(args.emission_rate)
    if args.observer is not None:
        changes["observer_active"] = bool(args.observer)
    if changes:
        config = config.with_changes(**changes)

    config.validate()
    _warn_outside("wavelength", config.wavelength, WAVELENGTH_RANGE)
    _warn_outside("slit_separation", config.slit_separation, SLIT_SEPARATION_RANGE)
    _warn_outside("emission_rate", config.emission_rate, EMISSION_RATE_RANGE)

    settings = RunSettings(config=config, seed=args.seed)
    if args.ticks is not None:
        settings.ticks = max(0, int(args.ticks))
    if args.dt is not None:
        if args.dt <= 0:
            raise InvalidConfigError(f"dt must be positive, got {args.dt!r}")
        settings.dt = float(args.dt)
    return settings


def _print_histogram(records: list[dict], width: int = 50) -> None:
    peak = max((r["count"] for r in records), default=0)
    if peak <= 0:
        print("[info] No landings recorded.")
        return
    for r in records:
        bar = "#" * int(round(width * r["count"] / peak))
        print(f"{r['position']:+7.1f} | {r['count']:5d} {bar}")


def run(settings: RunSettings, output: Optional[Path] = None, show_bins: bool = False) -> dict:
    from quantum_double_slit import DoubleSlitSimulation, HistogramSink
    from quantum_double_slit.histogram import fringe_peaks, fringe_spacing

    sim = DoubleSlitSimulation(settings.scene, seed=settings.seed)
    sink = HistogramSink(settings.scene)
    sink.sync_config(settings.config)
    sim.add_landing_listener(sink)

    sim.run(settings.ticks, settings.dt, settings.config)
    records = sink.to_records(settings.config)
    theory = np.array([r["theoretical"] for r in records])
    spacing = fringe_spacing(theory, sink.bin_width)
    summary = {
        "config": asdict(settings.config),
        "ticks": settings.ticks,
        "dt": settings.dt,
        "seed": settings.seed,
        "landings": sink.total,
        "dropped": sink.dropped,
        "in_flight": len(sim.store),
        "sampler_fallbacks": sim.sampler.fallback_count,
        "theoretical_peaks": [float(records[i]["position"]) for i in fringe_peaks(theory)],
        "theoretical_fringe_spacing": spacing,
        "histogram": records,
    }

    print(f"[info] {sink.total} landings over {settings.ticks} ticks "
          f"({len(sim.store)} still in flight, {sim.sampler.fallback_count} sampler fallbacks).")
    if spacing is not None:
        print(f"[info] Theoretical fringe spacing: {spacing:.1f}")
    if show_bins:
        _print_histogram(records)
    if output is not None:
        output = output.expanduser()
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        print(f"[info] Histogram written to {output.resolve()}")
    return summary


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the double-slit particle simulator headlessly.")

    # Optics & source
    parser.add_argument('--wavelength', type=float, help='Wavelength proxy (300 - 800)')
    parser.add_argument('--slit-separation', type=float, help='Distance between slit centres (40 - 120)')
    parser.add_argument('--emission-rate', type=float, help='Emissions per second (1 - 20)')
    parser.add_argument('--observer', dest='observer', action='store_true', help='Enable the which-slit detector')
    parser.add_argument('--no-observer', dest='observer', action='store_false', help='Disable the which-slit detector')

    # Run control
    parser.add_argument('--ticks', type=int, help='Number of ticks to simulate')
    parser.add_argument('--dt', type=float, help='Seconds per tick')
    parser.add_argument('--seed', type=int, help='Seed for the random source')

    # Output
    parser.add_argument('--output', metavar='PATH', help='Write the histogram summary as JSON')
    parser.add_argument('--bins', action='store_true', help='Print a text histogram')
    parser.add_argument('--dump-config', action='store_true', help='Print the resolved configuration before running')

    parser.set_defaults(observer=None)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = build_settings(args)
    except InvalidConfigError as exc:
        print(f"[error] {exc}")
        return 2

    if args.dump_config:
        print(json.dumps(asdict(settings), indent=2, default=str))

    output = Path(args.output) if args.output else None
    run(settings, output=output, show_bins=args.bins)
    return 0


if __name__ == "__main__":
    sys.exit(main())
