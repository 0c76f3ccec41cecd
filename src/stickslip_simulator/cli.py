# src/stickslip_simulator/cli.py

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer

from .config.loader import (
    ConfigError,
    build_simulation_params,
    load_simulation_config,
    normalize_config_dict,
    get_default_config,
)
from .config.presets import load_presets
from .core.engine import StickSlipSimulator, summarize_run
from .trace import iter_trace

app = typer.Typer(
    add_completion=False,
    help=(
        "Piezo stick-slip actuator simulator CLI\n\n"
        "Hybrid static/kinetic Coulomb friction model of a piezo stack\n"
        "driving a slider. Use 'run' for a single drive waveform, 'sweep'\n"
        "for friction / threshold / slew-rate grids and 'convergence' for\n"
        "time-step studies."
    ),
)

# Studies commands (sweep / convergence)
from .studies.cli import register_study_commands
register_study_commands(app)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _ensure_output_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _setup_logger(output_dir: Path, log_stem: str) -> logging.Logger:
    """
    Set up a per-run logger writing to <output_dir>/<log_stem>.log.
    """
    _ensure_output_dir(output_dir)
    logger = logging.getLogger(f"stickslip_simulator.cli.{log_stem}")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    log_file = output_dir / f"{log_stem}.log"
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def _close_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _print_and_log(logger: logging.Logger, msg: str) -> None:
    typer.echo(msg)
    logger.info(msg)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


@app.command()
def run(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML/JSON run config (default: reference actuator + 480 μs pulse)."
    ),
    steps: Optional[int] = typer.Option(None, "--steps", help="Override run.n_steps."),
    dt: Optional[float] = typer.Option(None, "--dt", help="Override run.dt_s [s]."),
    out: Path = typer.Option(Path("results"), "--out", "-o", help="Output directory."),
    trace: bool = typer.Option(False, "--trace/--no-trace", help="Print the fixed-width step trace."),
    every: int = typer.Option(1, "--every", min=1, help="Print every N-th trace row."),
) -> None:
    """Run a single simulation and write <stem>_results.csv."""
    stem = config.stem if config is not None else "default"
    logger = _setup_logger(out, stem)
    try:
        try:
            if config is not None:
                cfg = load_simulation_config(config)
            else:
                cfg = normalize_config_dict(get_default_config(), filename="<default>")
        except ConfigError as exc:
            logger.error("%s", exc)
            raise typer.BadParameter(str(exc)) from exc

        if steps is not None:
            if steps < 1:
                raise typer.BadParameter("--steps must be >= 1")
            cfg.run.n_steps = steps
        if dt is not None:
            if dt <= 0.0:
                raise typer.BadParameter("--dt must be > 0")
            cfg.run.dt_s = dt

        try:
            params = build_simulation_params(cfg)
        except ValueError as exc:
            logger.error("%s", exc)
            raise typer.BadParameter(str(exc)) from exc
        _print_and_log(
            logger,
            f"Running {params.n_steps} steps of {params.dt:.3e} s "
            f"(mu_s = {params.actuator.mu_s}, mu_k = {params.actuator.mu_k}, "
            f"threshold = {params.actuator.kinetic_velocity_threshold:.1e} m/s)",
        )

        t0 = time.perf_counter()
        df = StickSlipSimulator(params).run()
        wall = time.perf_counter() - t0

        if trace:
            for line in iter_trace(df, every=every):
                typer.echo(line)

        summary = summarize_run(df)
        typer.echo("")
        _print_and_log(logger, f"Wall-clock time       : {wall:.3f} s")
        _print_and_log(logger, f"Final slider position : {summary['final_slider_position_nm']:.1f} nm")
        _print_and_log(logger, f"Final piezo position  : {summary['final_piezo_position_nm']:.1f} nm")
        _print_and_log(logger, f"Kinetic fraction      : {summary['kinetic_fraction']:.3f}")
        if summary["saturated"]:
            _print_and_log(logger, "Slider left the divergence window: run reported as crashed/saturated.")

        csv_path = out / f"{stem}_results.csv"
        df.to_csv(csv_path, index=False)
        _print_and_log(logger, f"Results written to {csv_path}")
    finally:
        _close_logger(logger)


@app.command()
def presets() -> None:
    """List the packaged actuator and waveform presets."""
    bundle = load_presets()
    typer.echo("Actuators:")
    for name in sorted(bundle.actuators):
        typer.echo(f"  - {name}")
    typer.echo("Waveforms:")
    for name in sorted(bundle.waveforms):
        kind = bundle.waveforms[name].get("type", "?")
        typer.echo(f"  - {name} ({kind})")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
