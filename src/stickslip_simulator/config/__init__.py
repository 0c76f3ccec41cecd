"""Configuration loading, presets and drive waveforms."""

from .loader import (
    ConfigError,
    build_simulation_params,
    load_config_overrides,
    load_simulation_config,
    merge_with_defaults,
    normalize_config_dict,
)
from .waveforms import build_waveform_from_spec, stick_slip_pulse

__all__ = [
    "ConfigError",
    "build_simulation_params",
    "build_waveform_from_spec",
    "load_config_overrides",
    "load_simulation_config",
    "merge_with_defaults",
    "normalize_config_dict",
    "stick_slip_pulse",
]
