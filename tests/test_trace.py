import sys
sys.path.insert(0, 'src')

import pandas as pd
import pytest

from stickslip_simulator.trace import (
    format_position,
    format_time,
    format_trace,
    format_trace_row,
    format_velocity,
    format_voltage,
    iter_trace,
)


def _frame(n: int = 10) -> pd.DataFrame:
    steps = list(range(1, n + 1))
    return pd.DataFrame(
        {
            "Step": steps,
            "Time_s": [i * 1e-6 for i in steps],
            "Time_us": [float(i) for i in steps],
            "Voltage_V": [850.0] * n,
            "Piezo_Position_m": [408.2e-9] * n,
            "Slider_Position_m": [408.0e-9] * n,
            "Piezo_Velocity_m_s": [-12.3e-6] * n,
            "Slider_Velocity_m_s": [-12.3e-6] * n,
            "Relative_Velocity_m_s": [0.0] * n,
            "Mode": ["static"] * n,
        }
    )


def test_fixed_width_fields() -> None:
    assert format_voltage(850.0) == " 850.0"
    assert format_position(408e-9) == "  408.0"
    assert format_velocity(3101e-6) == "  3101.0"
    assert format_velocity(-12.3e-6) == "   -12.3"


def test_trace_row_layout() -> None:
    row = _frame(1).iloc[0]
    assert format_trace_row(row) == (
        "t = 1 μs |  850.0 V |   408.2 nm |   408.0 nm |    -12.3 μm/s |      0.0 μm/s | static"
    )


def test_iter_trace_every_nth_row() -> None:
    lines = list(iter_trace(_frame(10), every=5))
    assert len(lines) == 2
    assert lines[0].startswith("t = 5 μs")
    assert lines[1].startswith("t = 10 μs")


def test_format_trace_joins_rows() -> None:
    text = format_trace(_frame(3))
    assert text.count("\n") == 2


def test_iter_trace_rejects_zero_stride() -> None:
    with pytest.raises(ValueError):
        list(iter_trace(_frame(3), every=0))


def test_long_runs_keep_plain_time_notation() -> None:
    assert format_time(1e6) == "1000000"
    assert format_time(10.000000000000002) == "10"
    assert format_time(0.5) == "0.5"
    assert format_time(0.0) == "0"

    row = _frame(1).iloc[0].copy()
    row["Time_us"] = 1e6
    assert format_trace_row(row).startswith("t = 1000000 μs |")
