from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

PACKAGE_PRESETS = Path(__file__).resolve().parent / "data" / "presets.yaml"


@dataclass(frozen=True)
class PresetBundle:
    actuators: Dict[str, Dict[str, Any]]
    waveforms: Dict[str, Dict[str, Any]]


def load_presets(base_dir: Optional[Path] = None) -> PresetBundle:
    """Packaged presets, overridden by ``<base_dir>/presets.yaml`` when present."""
    packaged = _load_yaml(PACKAGE_PRESETS)
    actuators = dict(packaged.get("actuators", {}) or {})
    waveforms = dict(packaged.get("waveforms", {}) or {})
    if base_dir is not None:
        local = _load_yaml(base_dir / "presets.yaml")
        actuators.update(local.get("actuators", {}) or {})
        waveforms.update(local.get("waveforms", {}) or {})
    return PresetBundle(actuators=actuators, waveforms=waveforms)


def resolve_actuator_preset(presets: PresetBundle, preset_id: str) -> Optional[Dict[str, Any]]:
    return presets.actuators.get(preset_id)


def resolve_waveform_preset(presets: PresetBundle, preset_id: str) -> Optional[Dict[str, Any]]:
    return presets.waveforms.get(preset_id)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
