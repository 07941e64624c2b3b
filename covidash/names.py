"""
Name reconciliation
===================

GeoJSON features and the dataset do not always spell a country the same way
("USA" vs "United States"). `NameReconciler` translates map-geometry names to
dataset location names with an alias table; names without an alias are
returned unchanged, since most already match.

The alias table is configuration: callers may add or override entries, or
load extra entries from a JSON object file.
"""

from __future__ import annotations
import json
from typing import Dict, Mapping, Optional

DEFAULT_ALIASES: Dict[str, str] = {
    "USA": "United States",
    "United States of America": "United States",
    "England": "United Kingdom",
    "UK": "United Kingdom",
    "Russia": "Russian Federation",
    "South Korea": "Korea, Rep.",
    "North Korea": "Korea, Dem. People's Rep.",
    "Democratic Republic of the Congo": "Congo",
    "Republic of Congo": "Congo",
    "United Republic of Tanzania": "Tanzania",
    "Republic of Serbia": "Serbia",
    "Czech Republic": "Czechia",
    "Turkey": "Turkiye",
}


class NameReconciler:
    """Map-name -> dataset-name translation with identity fallback."""

    def __init__(self, aliases: Optional[Mapping[str, str]] = None) -> None:
        self._aliases: Dict[str, str] = dict(DEFAULT_ALIASES)
        if aliases:
            self.update(aliases)

    def reconcile(self, map_name: str) -> str:
        return self._aliases.get(map_name, map_name)

    def add(self, map_name: str, dataset_name: str) -> None:
        self._aliases[map_name] = dataset_name

    def update(self, aliases: Mapping[str, str]) -> None:
        for k, v in aliases.items():
            self.add(str(k), str(v))

    @classmethod
    def from_json(cls, path: str) -> "NameReconciler":
        """Build a reconciler whose defaults are extended by a JSON object file."""
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, dict):
            raise ValueError(f"Alias file must contain a JSON object: {path}")
        return cls(payload)


_default = NameReconciler()


def reconcile(map_name: str) -> str:
    """Reconcile using the built-in alias table."""
    return _default.reconcile(map_name)
