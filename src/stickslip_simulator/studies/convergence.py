"""
Time-step convergence / numerical verification study.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
import yaml

from . import get_by_path, save_study_metadata, set_by_path


SimFunc = Callable[[Dict[str, Any]], pd.DataFrame]


def _extract_metrics(df: pd.DataFrame) -> Dict[str, float]:
    from stickslip_simulator.core.engine import summarize_run

    metrics = summarize_run(df)
    e_shadow = df.get("E_shadow_J", pd.Series([np.nan]))
    metrics["shadow_energy_J_final"] = float(e_shadow.iloc[-1]) if len(e_shadow) else float("nan")
    return metrics


def run_convergence_study(
    cfg_overrides: Dict[str, Any],
    dt_values: Iterable[float],
    *,
    duration_s: Optional[float] = None,
    out_dir: Optional[Path] = None,
    save_timeseries: bool = False,
    simulate_func: Optional[SimFunc] = None,
) -> pd.DataFrame:
    """
    Sweep the time step ``run.dt_s`` over a fixed simulated duration.

    Parameters
    ----------
    cfg_overrides:
        Config overrides loaded from YAML (can be partial).
    dt_values:
        Iterable of time steps in seconds.
    duration_s:
        Simulated time span. Defaults to ``run.dt_s * run.n_steps`` of the
        merged config (1 ms for the defaults).
    out_dir:
        If provided, write summary CSV + metadata.
    save_timeseries:
        If True, also save each run DataFrame as CSV.
    simulate_func:
        For testing; defaults to `stickslip_simulator.core.engine.run_simulation`.

    Returns
    -------
    pd.DataFrame with one row per dt, largest dt first.
    """
    import time

    from stickslip_simulator.config.loader import merge_with_defaults

    if simulate_func is None:
        from stickslip_simulator.core.engine import run_simulation as simulate_func  # type: ignore

    dt_list = [float(dt) for dt in dt_values]
    if not dt_list:
        raise ValueError("run_convergence_study: no dt values provided.")
    if any(dt <= 0.0 for dt in dt_list):
        raise ValueError("run_convergence_study: dt values must be > 0.")

    base_full = merge_with_defaults(cfg_overrides)
    if duration_s is None:
        duration_s = float(get_by_path(base_full, "run.dt_s")) * int(get_by_path(base_full, "run.n_steps"))

    rows: List[Dict[str, Any]] = []
    prev_x: Optional[float] = None

    for dt in sorted(dt_list, reverse=True):
        n_steps = max(1, int(round(duration_s / dt)))
        cfg = set_by_path(base_full, "run.dt_s", dt)
        cfg = set_by_path(cfg, "run.n_steps", n_steps)

        t0 = time.perf_counter()
        df = simulate_func(cfg)
        wall = time.perf_counter() - t0

        metrics = _extract_metrics(df)
        x_final = metrics["final_slider_position_nm"]
        rel = None if prev_x is None or prev_x == 0 else 100.0 * abs(x_final - prev_x) / abs(prev_x)
        prev_x = x_final

        rows.append(
            {
                "dt_s": dt,
                "n_steps": n_steps,
                "wall_time_s": float(wall),
                "relative_change_slider_pct": rel,
                **metrics,
            }
        )

        if out_dir and save_timeseries:
            out_dir.mkdir(parents=True, exist_ok=True)
            df.to_csv(out_dir / f"timeseries_dt_{dt:.3e}.csv", index=False)

    summary = pd.DataFrame(rows).reset_index(drop=True)

    if out_dir:
        out_dir.mkdir(parents=True, exist_ok=True)
        summary.to_csv(out_dir / "convergence_summary.csv", index=False)
        (out_dir / "config_overrides.yml").write_text(
            yaml.safe_dump(cfg_overrides, sort_keys=False), encoding="utf-8"
        )
        save_study_metadata(
            out_dir,
            metadata={
                "study_type": "convergence",
                "dt_values": dt_list,
                "duration_s": duration_s,
                "save_timeseries": bool(save_timeseries),
            },
        )
    return summary
