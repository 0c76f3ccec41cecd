"""
Typer CLI commands for studies.

Imported and registered from `stickslip_simulator.cli`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from ..config.loader import ConfigError, load_config_overrides
from . import parse_floats_csv


def _parse_floats_option(s: str) -> List[float]:
    try:
        return parse_floats_csv(s or "")
    except ValueError as e:
        raise typer.BadParameter(f"Could not parse floats from: {s!r}") from e


def _load_config(path: Path) -> Dict[str, Any]:
    try:
        return load_config_overrides(path)
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e


def register_study_commands(app: typer.Typer) -> None:
    @app.command("sweep")
    def sweep_cmd(
        config: Path = typer.Option(..., "--config", "-c", exists=True, readable=True, help="Base config (YAML or JSON)"),
        mu_k: str = typer.Option("", "--mu-k", help="Kinetic friction coefficients, e.g. '0.3,0.4,0.5'"),
        thresholds: str = typer.Option(
            "", "--thresholds", help="Kinetic velocity thresholds [m/s], e.g. '1e-5,1e-4,1e-3,1e-2'"
        ),
        slew_rates: str = typer.Option(
            "", "--slew-rates", help="Fall slew rates of a stick_slip_pulse waveform [V/s]"
        ),
        gravity: str = typer.Option("", "--gravity", help="Gravity settings, e.g. 'up,down' or '9.81,-9.81'"),
        out: Path = typer.Option(..., "--out", "-o", help="Output directory"),
        save_timeseries: bool = typer.Option(False, "--save-timeseries", help="Save timeseries CSVs for each run"),
    ) -> None:
        """Run a friction / threshold / slew-rate / gravity sweep."""
        from .sweep import run_parameter_sweep

        cfg = _load_config(config)
        axes: Dict[str, List[Any]] = {}
        if mu_k:
            axes["actuator.mu_k"] = _parse_floats_option(mu_k)
        if thresholds:
            axes["actuator.kinetic_velocity_threshold_m_s"] = _parse_floats_option(thresholds)
        if slew_rates:
            axes["waveform.slew_rate_V_per_s"] = _parse_floats_option(slew_rates)
        if gravity:
            tokens = [g.strip() for g in gravity.split(",") if g.strip()]
            axes["actuator.gravity"] = [
                g if g in {"none", "up", "down"} else _parse_floats_option(g)[0] for g in tokens
            ]
        if not axes:
            raise typer.BadParameter("Give at least one of --mu-k, --thresholds, --slew-rates, --gravity.")

        try:
            summary = run_parameter_sweep(cfg, axes, out_dir=out, save_timeseries=save_timeseries)
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e
        typer.echo(summary.to_string(index=False))
        typer.echo(f"Saved to: {out}")

    @app.command("convergence")
    def convergence_cmd(
        config: Path = typer.Option(..., "--config", "-c", exists=True, readable=True, help="Base config (YAML or JSON)"),
        dts: str = typer.Option("2e-6,1e-6,5e-7,2.5e-7", "--dts", help="Comma/space-separated dt values [s]"),
        duration: Optional[float] = typer.Option(None, "--duration", help="Simulated time span [s] (default: from config)"),
        out: Path = typer.Option(..., "--out", "-o", help="Output directory"),
        save_timeseries: bool = typer.Option(False, "--save-timeseries", help="Save timeseries CSVs for each run"),
    ) -> None:
        """Run time-step convergence study."""
        from .convergence import run_convergence_study

        cfg = _load_config(config)
        dt_list = _parse_floats_option(dts)
        try:
            summary = run_convergence_study(
                cfg, dt_list, duration_s=duration, out_dir=out, save_timeseries=save_timeseries
            )
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e
        typer.echo(summary.to_string(index=False))
        typer.echo(f"Saved to: {out}")
