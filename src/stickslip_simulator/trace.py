"""Fixed-width text trace of a stick-slip run.

One row per recorded step, e.g.::

    t = 480 μs |  850.0 V |   408.2 nm |   408.0 nm |    -12.3 μm/s |      0.0 μm/s | static

Columns: time, voltage, piezo position, slider position, piezo velocity,
slider-minus-piezo velocity, friction mode.
"""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd

from .core.engine import SimulationConstants


def _pad(text: str, width: int) -> str:
    return text.rjust(width)


def format_position(position_m: float) -> str:
    return _pad(f"{position_m * SimulationConstants.M_TO_NM:.1f}", len("-1000.0"))


def format_velocity(velocity_m_s: float) -> str:
    return _pad(f"{velocity_m_s * SimulationConstants.M_S_TO_UM_S:.1f}", len("-10000.0"))


def format_voltage(voltage_V: float) -> str:
    return _pad(f"{voltage_V:.1f}", len("-425.0"))


def format_time(time_us: float) -> str:
    """Microseconds in plain notation, trailing zeros dropped."""
    text = f"{time_us:.6f}".rstrip("0").rstrip(".")
    return text or "0"


def format_trace_row(row: pd.Series) -> str:
    parts = [
        f"t = {format_time(row['Time_us'])} μs",
        f"{format_voltage(row['Voltage_V'])} V",
        f"{format_position(row['Piezo_Position_m'])} nm",
        f"{format_position(row['Slider_Position_m'])} nm",
        f"{format_velocity(row['Piezo_Velocity_m_s'])} μm/s",
        f"{format_velocity(row['Relative_Velocity_m_s'])} μm/s",
        str(row["Mode"]),
    ]
    return " | ".join(parts)


def iter_trace(df: pd.DataFrame, every: int = 1) -> Iterable[str]:
    if every < 1:
        raise ValueError("every must be >= 1")
    for _, row in df.iloc[every - 1 :: every].iterrows():
        yield format_trace_row(row)


def format_trace(df: pd.DataFrame, every: int = 1) -> str:
    lines: List[str] = list(iter_trace(df, every=every))
    return "\n".join(lines)
