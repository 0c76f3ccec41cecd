"""
Parameter sweep over friction, threshold, slew-rate and gravity settings.

Typical use reproduces the lab's combinatorial space:

    axes = {
        "actuator.mu_k": [0.3, 0.4, 0.5],
        "actuator.kinetic_velocity_threshold_m_s": [1e-5, 1e-4, 1e-3, 1e-2],
        "actuator.gravity": ["up", "down"],
    }
    summary = run_parameter_sweep({}, axes)
"""
from __future__ import annotations

import itertools
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pandas as pd
import yaml

from . import save_study_metadata, set_by_path

logger = logging.getLogger(__name__)

SimFunc = Callable[[Dict[str, Any]], pd.DataFrame]


def run_parameter_sweep(
    cfg_overrides: Dict[str, Any],
    axes: Mapping[str, Sequence[Any]],
    *,
    out_dir: Optional[Path] = None,
    save_timeseries: bool = False,
    simulate_func: Optional[SimFunc] = None,
) -> pd.DataFrame:
    """
    Run every combination of the axis values and summarise each run.

    Parameters
    ----------
    cfg_overrides:
        Base config (can be partial; merged over the engine defaults).
    axes:
        Mapping of config path (e.g. ``"actuator.mu_k"``) to the values to try.
    out_dir:
        If provided, write ``sweep_summary.csv`` + metadata.
    save_timeseries:
        If True, also save each run DataFrame as CSV.
    simulate_func:
        For testing; defaults to `stickslip_simulator.core.engine.run_simulation`.

    Returns
    -------
    pd.DataFrame with one row per combination: the axis values followed by
    the metrics of :func:`stickslip_simulator.core.engine.summarize_run` and
    ``wall_time_s``.
    """
    from stickslip_simulator.core.engine import summarize_run

    if simulate_func is None:
        from stickslip_simulator.core.engine import run_simulation as simulate_func  # type: ignore

    if not axes:
        raise ValueError("run_parameter_sweep: no sweep axes provided.")
    paths = list(axes.keys())
    for path in paths:
        if len(axes[path]) == 0:
            raise ValueError(f"run_parameter_sweep: axis '{path}' has no values.")

    rows: List[Dict[str, Any]] = []
    for run_idx, values in enumerate(itertools.product(*(axes[p] for p in paths))):
        cfg = dict(cfg_overrides)
        for path, value in zip(paths, values):
            cfg = set_by_path(cfg, path, value)

        t0 = time.perf_counter()
        df = simulate_func(cfg)
        wall = time.perf_counter() - t0

        row: Dict[str, Any] = dict(zip(paths, values))
        row.update(summarize_run(df))
        row["wall_time_s"] = float(wall)
        rows.append(row)
        logger.info("Sweep run %d: %s -> x_s = %.3f nm", run_idx, dict(zip(paths, values)),
                    row["final_slider_position_nm"])

        if out_dir and save_timeseries:
            out_dir.mkdir(parents=True, exist_ok=True)
            df.to_csv(out_dir / f"timeseries_run_{run_idx:03d}.csv", index=False)

    summary = pd.DataFrame(rows)

    if out_dir:
        out_dir.mkdir(parents=True, exist_ok=True)
        summary.to_csv(out_dir / "sweep_summary.csv", index=False)
        (out_dir / "config_overrides.yml").write_text(
            yaml.safe_dump(cfg_overrides, sort_keys=False), encoding="utf-8"
        )
        save_study_metadata(
            out_dir,
            metadata={
                "study_type": "parameter_sweep",
                "axes": {p: list(axes[p]) for p in paths},
                "n_runs": len(rows),
                "save_timeseries": bool(save_timeseries),
            },
        )
    return summary
