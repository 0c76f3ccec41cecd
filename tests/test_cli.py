from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from stickslip_simulator.cli import app

runner = CliRunner()


def test_run_default_writes_results(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "--steps", "50", "--out", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "Final slider position" in result.output

    csv_path = tmp_path / "default_results.csv"
    df = pd.read_csv(csv_path)
    assert len(df) == 50
    assert "Mode" in df.columns
    assert (tmp_path / "default.log").is_file()


def test_run_with_config_and_trace(tmp_path: Path) -> None:
    config = tmp_path / "case.yml"
    config.write_text(
        "actuator:\n  preset_id: reference\n"
        "waveform:\n  preset_id: stick_slip_480us\n"
        "run:\n  n_steps: 20\n",
        encoding="utf-8",
    )
    out = tmp_path / "out"
    result = runner.invoke(
        app, ["run", "--config", str(config), "--out", str(out), "--trace", "--every", "10"]
    )
    assert result.exit_code == 0, result.output
    assert "t = 10 μs" in result.output
    assert "t = 20 μs" in result.output
    assert (out / "case_results.csv").is_file()


def test_run_rejects_invalid_config(tmp_path: Path) -> None:
    config = tmp_path / "bad.yml"
    config.write_text("actuator:\n  preset_id: missing\n", encoding="utf-8")
    result = runner.invoke(app, ["run", "--config", str(config), "--out", str(tmp_path)])
    assert result.exit_code != 0


def test_presets_lists_names() -> None:
    result = runner.invoke(app, ["presets"])
    assert result.exit_code == 0
    assert "reference" in result.output
    assert "stick_slip_480us (stick_slip_pulse)" in result.output


BENCH_PRESETS = (
    "actuators:\n"
    "  bench:\n"
    "    piezo_mass_kg: 3.06e-3\n"
    "    slider_mass_kg: 8.94e-3\n"
    "    piezo_stiffness_N_per_m: 1.47e9\n"
    "    quality_factor: 1000\n"
    "    piezo_constant_m_per_V: 4.8e-10\n"
    "    normal_force_N: 2.22\n"
    "    mu_s: 0.5\n"
    "    mu_k: 0.4\n"
    "    kinetic_velocity_threshold_m_s: 1.0e-4\n"
)


def test_sweep_uses_presets_next_to_config(tmp_path: Path) -> None:
    (tmp_path / "presets.yaml").write_text(BENCH_PRESETS, encoding="utf-8")
    config = tmp_path / "bench.yml"
    config.write_text("actuator:\n  preset_id: bench\nrun:\n  n_steps: 20\n", encoding="utf-8")
    out = tmp_path / "sweep"

    result = runner.invoke(
        app, ["sweep", "--config", str(config), "--mu-k", "0.3,0.4", "--out", str(out)]
    )
    assert result.exit_code == 0, result.output
    summary = pd.read_csv(out / "sweep_summary.csv")
    assert list(summary["actuator.mu_k"]) == [0.3, 0.4]


def test_convergence_accepts_json_config_with_local_preset(tmp_path: Path) -> None:
    (tmp_path / "presets.yaml").write_text(BENCH_PRESETS, encoding="utf-8")
    config = tmp_path / "bench.json"
    config.write_text('{"actuator": {"preset_id": "bench"}}', encoding="utf-8")
    out = tmp_path / "conv"

    result = runner.invoke(
        app,
        ["convergence", "--config", str(config), "--dts", "1e-6,5e-7", "--duration", "2e-5", "--out", str(out)],
    )
    assert result.exit_code == 0, result.output
    summary = pd.read_csv(out / "convergence_summary.csv")
    assert list(summary["n_steps"]) == [20, 40]


def test_sweep_reports_unknown_preset_as_bad_parameter(tmp_path: Path) -> None:
    config = tmp_path / "bench.yml"
    config.write_text("actuator:\n  preset_id: bench\n", encoding="utf-8")
    result = runner.invoke(
        app, ["sweep", "--config", str(config), "--mu-k", "0.3", "--out", str(tmp_path / "out")]
    )
    assert result.exit_code == 2


def test_run_reports_non_finite_config_value(tmp_path: Path) -> None:
    config = tmp_path / "bad.yml"
    config.write_text("actuator:\n  preset_id: reference\n  mu_s: .inf\n", encoding="utf-8")
    result = runner.invoke(app, ["run", "--config", str(config), "--out", str(tmp_path)])
    assert result.exit_code == 2
