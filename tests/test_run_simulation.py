import json

import pytest

import run_simulation
from quantum_double_slit import InvalidConfigError


def test_defaults_match_web_demo():
    settings = run_simulation.build_settings(run_simulation.parse_args([]))
    cfg = settings.config
    assert (cfg.wavelength, cfg.slit_separation, cfg.observer_active, cfg.emission_rate) == (500.0, 80.0, False, 5.0)
    assert settings.ticks == 1000
    assert settings.seed is None


def test_overrides():
    args = run_simulation.parse_args([
        "--wavelength", "650", "--slit-separation", "100", "--observer",
        "--emission-rate", "12", "--ticks", "50", "--dt", "0.1", "--seed", "8",
    ])
    settings = run_simulation.build_settings(args)
    assert settings.config.wavelength == 650.0
    assert settings.config.slit_separation == 100.0
    assert settings.config.observer_active is True
    assert settings.config.emission_rate == 12.0
    assert (settings.ticks, settings.dt, settings.seed) == (50, 0.1, 8)


def test_out_of_range_warns(capsys):
    run_simulation.build_settings(run_simulation.parse_args(["--wavelength", "1200"]))
    assert "[warn] wavelength=1200" in capsys.readouterr().out


@pytest.mark.parametrize("argv", [["--wavelength", "0"], ["--emission-rate", "-2"], ["--dt", "0"]])
def test_invalid_arguments_rejected(argv, capsys):
    with pytest.raises(InvalidConfigError):
        run_simulation.build_settings(run_simulation.parse_args(argv))
    assert run_simulation.main(argv) == 2
    assert "[error]" in capsys.readouterr().out


def test_main_writes_histogram(tmp_path, capsys):
    out = tmp_path / "runs" / "hist.json"
    code = run_simulation.main(["--ticks", "300", "--dt", "0.25", "--seed", "3",
                                "--output", str(out), "--bins", "--dump-config"])
    assert code == 0
    summary = json.loads(out.read_text(encoding="utf-8"))
    assert summary["landings"] + summary["dropped"] == 300 - 174
    assert len(summary["histogram"]) == 80
    assert summary["theoretical_fringe_spacing"] == pytest.approx(155.0)
    assert summary["config"]["observer_active"] is False
    printed = capsys.readouterr().out
    assert "landings over 300 ticks" in printed
    assert '"wavelength": 500.0' in printed


def test_run_is_reproducible():
    args = run_simulation.parse_args(["--ticks", "250", "--dt", "0.25", "--seed", "21", "--observer"])
    a = run_simulation.run(run_simulation.build_settings(args))
    b = run_simulation.run(run_simulation.build_settings(args))
    assert a["histogram"] == b["histogram"]
    assert len(a["theoretical_peaks"]) == 2
