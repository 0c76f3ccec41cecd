"""
Piezo stick-slip actuator simulator package.

We keep this __init__ lightweight so that `import stickslip_simulator`
and `stickslip-sim --help` work without pulling in pandas or the studies.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("stick-slip-simulator")
except PackageNotFoundError:  # during editable installs
    __version__ = "0.0.0"

__all__ = ["__version__"]
