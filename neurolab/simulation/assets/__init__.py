"""Reference assets bundled with the simulation package."""

from __future__ import annotations

from dataclasses import dataclass
import json
from importlib import resources
from typing import Any, Dict

__all__ = ["ScientificRef", "load_scientific_refs"]


@dataclass(frozen=True)
class ScientificRef:
    """A literature-backed fact shown next to a console control."""

    key: str
    id: str
    term: str
    fact: str
    source: str


def _read_json_asset(name: str) -> Dict[str, Any]:
    package = resources.files(__name__)
    with resources.as_file(package.joinpath(name)) as asset_path:
        with asset_path.open("r", encoding="utf-8") as handle:
            return json.load(handle)


def load_scientific_refs() -> Dict[str, ScientificRef]:
    """Return the bundled reference facts keyed by the term they annotate."""

    data = _read_json_asset("scientific_refs.json")
    return {
        str(key): ScientificRef(
            key=str(key),
            id=str(entry.get("id", key)),
            term=str(entry.get("term", key)),
            fact=str(entry.get("fact", "")),
            source=str(entry.get("source", "")),
        )
        for key, entry in data.items()
    }
