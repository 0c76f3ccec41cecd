from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError
from scipy.constants import g as GRAVITY

from ..core.engine import SimulationParams
from ..core.state import ActuatorParams, SimulationState
from .models import ActuatorSpec, SimulationConfig, format_validation_error
from .presets import load_presets, resolve_actuator_preset, resolve_waveform_preset
from .waveforms import build_waveform_from_spec


class ConfigError(ValueError):
    pass


# Sections that may be given as {preset_id: ..., <overrides>}
_PRESET_SECTIONS = {
    "actuator": resolve_actuator_preset,
    "waveform": resolve_waveform_preset,
}


def get_default_config() -> Dict[str, Any]:
    """Reference actuator driven by one 480 μs stick-slip pulse, 1000 steps of 1 μs."""
    return {
        "units": "SI",
        "actuator": {"preset_id": "reference"},
        "waveform": {"preset_id": "stick_slip_480us"},
        "run": {"dt_s": 1.0e-6, "n_steps": 1000},
    }


def load_simulation_config(path: Path) -> SimulationConfig:
    raw = _load_raw_config(path)
    return normalize_config_dict(raw, filename=path.name, base_dir=path.parent)


def load_config_overrides(path: Path) -> Dict[str, Any]:
    """Raw (possibly partial) config with presets resolved next to ``path``.

    Used by the studies, which edit the dict before it is merged over
    :func:`get_default_config` and validated.
    """
    raw = _load_raw_config(path)
    return resolve_presets(raw, filename=path.name, base_dir=path.parent)


def _load_raw_config(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ConfigError(f"Unsupported config extension '{path.suffix}'. Use .yml, .yaml or .json.")
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: configuration must be a mapping")
    return data


def normalize_config_dict(
    config: Dict[str, Any],
    *,
    filename: str,
    base_dir: Optional[Path] = None,
) -> SimulationConfig:
    raw = resolve_presets(config, filename=filename, base_dir=base_dir)
    try:
        return SimulationConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(format_validation_error(exc, filename=filename)) from exc


def resolve_presets(
    config: Dict[str, Any],
    *,
    filename: str,
    base_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """Replace ``{preset_id: ...}`` sections by the preset merged with the overrides."""
    data = deepcopy(config)
    presets = None
    for section, resolver in _PRESET_SECTIONS.items():
        spec = data.get(section)
        if not isinstance(spec, dict) or "preset_id" not in spec:
            continue
        if presets is None:
            presets = load_presets(base_dir)
        overrides = dict(spec)
        preset_id = overrides.pop("preset_id")
        preset = resolver(presets, preset_id)
        if preset is None:
            raise ConfigError(f"{filename}: unknown {section} preset '{preset_id}'")
        merged = deepcopy(preset)
        merged.update(overrides)
        data[section] = merged
    return data


def merge_with_defaults(overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge (possibly partial) overrides over :func:`get_default_config`.

    A section naming its own ``preset_id`` (or, for waveforms, its own
    ``type``) replaces the default section instead of patching it.
    """
    base = get_default_config()
    for key, value in deepcopy(overrides or {}).items():
        current = base.get(key)
        if not isinstance(value, dict) or not isinstance(current, dict):
            base[key] = value
            continue
        replaces = "preset_id" in value or (key == "waveform" and "type" in value)
        if replaces:
            base[key] = value
        else:
            current.update(value)
    return base


def gravity_from_spec(value: Any) -> float:
    """Map the ``gravity`` field to a signed acceleration along the travel axis.

    ``"up"`` / ``"down"`` mean gravity points along +x / -x.
    """
    if value == "none":
        return 0.0
    if value == "up":
        return float(GRAVITY)
    if value == "down":
        return -float(GRAVITY)
    return float(value)


def build_actuator_params(spec: ActuatorSpec) -> ActuatorParams:
    return ActuatorParams(
        piezo_mass=spec.piezo_mass_kg,
        slider_mass=spec.slider_mass_kg,
        piezo_stiffness=spec.piezo_stiffness_N_per_m,
        quality_factor=spec.quality_factor,
        piezo_constant=spec.piezo_constant_m_per_V,
        normal_force=spec.normal_force_N,
        mu_s=spec.mu_s,
        mu_k=spec.mu_k,
        kinetic_velocity_threshold=spec.kinetic_velocity_threshold_m_s,
        gravity_acceleration=gravity_from_spec(spec.gravity),
        max_slew_rate=spec.max_slew_rate_V_per_s,
        snap_on_lock=spec.snap_on_lock,
        gravity_coupling=spec.gravity_coupling,
        static_force_share=spec.static_force_share,
    )


def build_simulation_params(
    config: SimulationConfig,
    *,
    initial_state: Optional[SimulationState] = None,
) -> SimulationParams:
    return SimulationParams(
        actuator=build_actuator_params(config.actuator),
        waveform=build_waveform_from_spec(config.waveform),
        dt=config.run.dt_s,
        n_steps=config.run.n_steps,
        divergence_bound=config.run.divergence_bound_m,
        initial_state=initial_state,
        case_name=config.case_name,
    )
