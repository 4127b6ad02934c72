"""
Label normalization.

Maps the free-text labels the vision model emits onto the canonical
field names a device declares. Matching is exact: no case folding and
no fuzzy matching, so every accepted spelling must be listed.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from medireader.errors import DeviceConfigurationError


class LabelNormalizer:
    """
    Exact-match synonym table for one device.

    Args:
        device_key: Used only in configuration error messages.
        supported: Canonical field names in priority order.
        synonyms: Canonical field name -> accepted alternative spellings.

    Raises:
        DeviceConfigurationError: if a synonym is claimed by two fields,
            shadows another canonical name, or is keyed by a field the
            device does not support.
    """

    def __init__(
        self,
        device_key: str,
        supported: Iterable[str],
        synonyms: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self.device_key = device_key
        self._supported = tuple(dict.fromkeys(supported))
        canonical = set(self._supported)

        problems: list[str] = []
        if not self._supported:
            problems.append("device declares no supported fields")

        table: dict[str, frozenset[str]] = {}
        owner: dict[str, str] = {}
        for field, names in (synonyms or {}).items():
            if field not in canonical:
                problems.append(f"synonyms given for unsupported field '{field}'")
                continue
            accepted = frozenset(n for n in names if n != field)
            for name in sorted(accepted):
                if name in canonical:
                    problems.append(
                        f"synonym '{name}' of '{field}' is itself a canonical field"
                    )
                elif name in owner and owner[name] != field:
                    problems.append(
                        f"synonym '{name}' claimed by both '{owner[name]}' and '{field}'"
                    )
                else:
                    owner[name] = field
            table[field] = accepted

        if problems:
            raise DeviceConfigurationError(device_key, problems)

        self._synonyms = MappingProxyType(table)
        self._reverse = MappingProxyType(owner)

    @property
    def supported(self) -> tuple[str, ...]:
        return self._supported

    @property
    def synonyms(self) -> Mapping[str, frozenset[str]]:
        return self._synonyms

    def normalize(self, raw_label: str) -> str:
        """Return the canonical name for ``raw_label``, or the label unchanged."""
        if raw_label in self._supported:
            return raw_label
        return self._reverse.get(raw_label, raw_label)

    def is_variant(self, raw_label: str, canonical: str) -> bool:
        """True when ``raw_label`` is a listed synonym of ``canonical``."""
        return raw_label in self._synonyms.get(canonical, ())

    def matches(self, raw_label: str, canonical: str) -> bool:
        return raw_label == canonical or self.is_variant(raw_label, canonical)
