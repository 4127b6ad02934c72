"""Every device profile the relay ships with, in registration order."""

from __future__ import annotations

from medireader.devices import (
    fresenius_4008b,
    fresenius_4008s,
    nikkiso_dbb27,
    nipro_surdial55plus,
    nipro_surdialx,
)
from medireader.devices.base import DeviceProfile

PROFILES: tuple[DeviceProfile, ...] = (
    nipro_surdial55plus.PROFILE,
    nipro_surdialx.PROFILE,
    fresenius_4008s.PROFILE,
    fresenius_4008b.PROFILE,
    nikkiso_dbb27.PROFILE,
)
