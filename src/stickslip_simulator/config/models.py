from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


class ConfigBase(BaseModel):
    model_config = {"extra": "forbid", "allow_inf_nan": False}


class ActuatorSpec(ConfigBase):
    piezo_mass_kg: float
    slider_mass_kg: float
    piezo_stiffness_N_per_m: float
    quality_factor: float
    piezo_constant_m_per_V: float
    normal_force_N: float
    mu_s: float
    mu_k: float
    kinetic_velocity_threshold_m_s: float
    gravity: Union[float, Literal["none", "up", "down"]] = 0.0
    gravity_coupling: Literal["independent", "static_balance"] = "independent"
    snap_on_lock: bool = True
    static_force_share: Literal["piezo", "slider"] = "piezo"
    max_slew_rate_V_per_s: Optional[float] = None

    @field_validator("piezo_mass_kg", "slider_mass_kg", "piezo_stiffness_N_per_m", "quality_factor")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("must be > 0")
        return value

    @field_validator("normal_force_N", "mu_s", "mu_k", "kinetic_velocity_threshold_m_s")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0.0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("max_slew_rate_V_per_s")
    @classmethod
    def _slew_positive(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0.0:
            raise ValueError("must be > 0 when given")
        return value


class ConstantWaveform(ConfigBase):
    type: Literal["constant"]
    voltage_V: float


class LinearRampWaveform(ConfigBase):
    type: Literal["linear_ramp"]
    slew_rate_V_per_s: float
    end_V: float
    start_V: float = 0.0

    @field_validator("slew_rate_V_per_s")
    @classmethod
    def _rate_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("slew_rate_V_per_s must be > 0")
        return value


class TriangleWaveform(ConfigBase):
    type: Literal["triangle"]
    amplitude_V: float
    frequency_Hz: float
    offset_V: float = 0.0

    @field_validator("frequency_Hz")
    @classmethod
    def _frequency_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("frequency_Hz must be > 0")
        return value


class StickSlipPulseWaveform(ConfigBase):
    type: Literal["stick_slip_pulse"]
    amplitude_V: float = 850.0
    rise_time_s: float = 480e-6
    slew_rate_V_per_s: float = 10e6
    period_s: Optional[float] = None

    @model_validator(mode="after")
    def _validate_pulse(self) -> "StickSlipPulseWaveform":
        if self.amplitude_V < 0.0:
            raise ValueError("amplitude_V must be >= 0")
        if self.rise_time_s <= 0.0:
            raise ValueError("rise_time_s must be > 0")
        if self.slew_rate_V_per_s <= 0.0:
            raise ValueError("slew_rate_V_per_s must be > 0")
        if self.period_s is not None:
            pulse = self.rise_time_s + 1.2 * self.amplitude_V / self.slew_rate_V_per_s
            if self.period_s < pulse:
                raise ValueError(f"period_s must be >= pulse duration ({pulse:.3e} s)")
        return self


WaveformSpec = Annotated[
    Union[ConstantWaveform, LinearRampWaveform, TriangleWaveform, StickSlipPulseWaveform],
    Field(discriminator="type"),
]


class RunSpec(ConfigBase):
    dt_s: float = 1e-6
    n_steps: int = 1000
    divergence_bound_m: Optional[float] = None

    @field_validator("dt_s")
    @classmethod
    def _dt_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("dt_s must be > 0")
        return value

    @field_validator("n_steps")
    @classmethod
    def _steps_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("n_steps must be >= 1")
        return value

    @field_validator("divergence_bound_m")
    @classmethod
    def _bound_positive(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0.0:
            raise ValueError("divergence_bound_m must be > 0 when given")
        return value


class SimulationConfig(ConfigBase):
    units: str = "SI"
    case_name: Optional[str] = None
    notes: Optional[str] = None
    actuator: ActuatorSpec
    waveform: WaveformSpec = Field(
        default_factory=lambda: StickSlipPulseWaveform(type="stick_slip_pulse")
    )
    run: RunSpec = Field(default_factory=RunSpec)

    @field_validator("units")
    @classmethod
    def _units_si(cls, value: str) -> str:
        if value != "SI":
            raise ValueError("Only SI units are supported currently")
        return value


def format_validation_error(exc: ValidationError, *, filename: str) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", []))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}")
    details = "; ".join(parts) if parts else str(exc)
    return f"{filename}: invalid configuration: {details}"
