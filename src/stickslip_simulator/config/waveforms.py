from __future__ import annotations

import math
from typing import Callable, Optional

from .models import (
    ConstantWaveform,
    LinearRampWaveform,
    StickSlipPulseWaveform,
    TriangleWaveform,
    WaveformSpec,
)

Waveform = Callable[[float], float]


def parabola_line(x: float) -> float:
    """Parabola for ``x < 1`` joined to a line of slope 2 with no kink.

    Over ``x in [0, 3]`` the first third of the travel is the parabola and
    the remaining two thirds the line; the curve ends at 5.
    """
    if x < 1.0:
        return x * x
    return 1.0 + 2.0 * (x - 1.0)


def constant(voltage: float) -> Waveform:
    voltage = float(voltage)

    def waveform(t: float) -> float:
        return voltage

    return waveform


def linear_ramp(slew_rate: float, end_voltage: float, start_voltage: float = 0.0) -> Waveform:
    """Ramp from ``start_voltage`` to ``end_voltage`` at ``|slew_rate|`` V/s, then hold."""
    if slew_rate == 0.0:
        raise ValueError("linear_ramp: slew_rate must be non-zero")
    rate = abs(float(slew_rate))
    direction = 1.0 if end_voltage >= start_voltage else -1.0

    def waveform(t: float) -> float:
        if t <= 0.0:
            return float(start_voltage)
        voltage = start_voltage + direction * rate * t
        if direction > 0.0:
            return float(min(voltage, end_voltage))
        return float(max(voltage, end_voltage))

    return waveform


def triangle_wave(amplitude: float, frequency: float, offset: float = 0.0) -> Waveform:
    """Symmetric triangle between ``offset`` and ``offset + amplitude``, starting at the bottom."""
    if frequency <= 0.0:
        raise ValueError("triangle_wave: frequency must be > 0")
    period = 1.0 / frequency

    def waveform(t: float) -> float:
        if t <= 0.0:
            return float(offset)
        phase = math.fmod(t, period) / period
        level = 2.0 * phase if phase < 0.5 else 2.0 * (1.0 - phase)
        return float(offset + amplitude * level)

    return waveform


def stick_slip_pulse(
    amplitude: float,
    rise_time: float,
    slew_rate: float,
    period: Optional[float] = None,
) -> Waveform:
    """Slow parabola-to-line rise followed by a fast parabola-to-line fall.

    The rise spans ``rise_time``. The fall mirrors the same shape, with its
    linear part running at ``slew_rate`` (V/s); it therefore lasts
    ``1.2 * amplitude / slew_rate``. With ``period`` set the pulse repeats.
    """
    if amplitude < 0.0:
        raise ValueError("stick_slip_pulse: amplitude must be >= 0")
    if rise_time <= 0.0:
        raise ValueError("stick_slip_pulse: rise_time must be > 0")
    if slew_rate <= 0.0:
        raise ValueError("stick_slip_pulse: slew_rate must be > 0")

    fall_unit = 0.4 * amplitude / slew_rate
    if period is not None and period < rise_time + 3.0 * fall_unit:
        raise ValueError(
            f"stick_slip_pulse: period {period!r} s is shorter than one pulse "
            f"({rise_time + 3.0 * fall_unit!r} s)"
        )

    def single(t: float) -> float:
        if t <= 0.0:
            return 0.0
        if t <= rise_time:
            fraction = 3.0 * t / rise_time
        else:
            fraction = 3.0 - (t - rise_time) / fall_unit if fall_unit > 0.0 else 0.0
            fraction = max(0.0, fraction)
        return parabola_line(fraction) / 5.0 * amplitude

    if period is None:
        return single

    def repeated(t: float) -> float:
        if t <= 0.0:
            return 0.0
        return single(math.fmod(t, period))

    return repeated


def build_waveform_from_spec(spec: WaveformSpec) -> Waveform:
    if isinstance(spec, ConstantWaveform):
        return constant(spec.voltage_V)
    if isinstance(spec, LinearRampWaveform):
        return linear_ramp(spec.slew_rate_V_per_s, spec.end_V, start_voltage=spec.start_V)
    if isinstance(spec, TriangleWaveform):
        return triangle_wave(spec.amplitude_V, spec.frequency_Hz, offset=spec.offset_V)
    if isinstance(spec, StickSlipPulseWaveform):
        return stick_slip_pulse(
            spec.amplitude_V,
            spec.rise_time_s,
            spec.slew_rate_V_per_s,
            period=spec.period_s,
        )
    raise ValueError(f"Unsupported waveform: {spec}")
