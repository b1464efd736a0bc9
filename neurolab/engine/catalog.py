"""
catalog
=======

Hardware, subject and progression tables for the MRI lab track.

The lab is assembled from a handful of purchasable components.  Each
component family is an ``Enum`` whose values are the labels shown to the
player, so the members serialise verbatim into API payloads.  Prices,
prestige unlock thresholds and subject tiers live next to the enums so the
stores and the scan engine share a single source of truth.

``MagnetType``
    Main field strength.  Higher fields raise the signal budget but demand
    superfluid cooling (11.7T) and parallel transmission (7T and above).

``CoolingType``
    Cryogenic system.  ``Superfluid`` (1.8 K) is the only option that keeps
    an 11.7T magnet from quenching.

``GradientType``
    Gradient coil tier; sets the slew-rate capacity checked by the scan
    engine.

``SequenceType``
    Pulse sequence; EPI is fast but gradient hungry and signal poor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping


class MagnetType(str, Enum):
    T3 = "3T"
    T7 = "7T"
    T11_7 = "11.7T"

    @property
    def field_strength(self) -> float:
        return _FIELD_STRENGTH[self]

    @property
    def is_ultra_high_field(self) -> bool:
        return self in (MagnetType.T7, MagnetType.T11_7)


_FIELD_STRENGTH: Dict[MagnetType, float] = {
    MagnetType.T3: 3.0,
    MagnetType.T7: 7.0,
    MagnetType.T11_7: 11.7,
}


class CoolingType(str, Enum):
    STANDARD = "Standard"
    SUPERFLUID = "Superfluid"


class CoilType(str, Enum):
    BIRDCAGE = "Birdcage"
    AVANTI2 = "Avanti2"


class GradientType(str, Enum):
    STANDARD = "Standard"
    HIGH_PERF = "HighPerf"
    CONNECTOME = "Connectome"


class SequenceType(str, Enum):
    GRE = "GRE"
    SE = "SE"
    EPI = "EPI"


class SubjectType(str, Enum):
    PHANTOM = "Phantom"
    ADULT = "Adult"
    PEDIATRIC = "Pediatric"
    NEONATE = "Neonate"


class PurchaseCategory(str, Enum):
    MAGNET = "magnet"
    COOLING = "cooling"
    COIL = "coil"
    GRADIENT = "gradient"
    PTX = "ptx"


COSTS: Mapping[PurchaseCategory, Mapping[str, int]] = {
    PurchaseCategory.MAGNET: {
        MagnetType.T3.value: 1_000_000,
        MagnetType.T7.value: 3_000_000,
        MagnetType.T11_7.value: 8_000_000,
    },
    PurchaseCategory.COOLING: {
        CoolingType.STANDARD.value: 500_000,
        CoolingType.SUPERFLUID.value: 2_000_000,
    },
    PurchaseCategory.COIL: {
        CoilType.BIRDCAGE.value: 100_000,
        CoilType.AVANTI2.value: 500_000,
    },
    PurchaseCategory.GRADIENT: {
        GradientType.STANDARD.value: 0,
        GradientType.HIGH_PERF.value: 800_000,
        GradientType.CONNECTOME.value: 2_500_000,
    },
    PurchaseCategory.PTX: {"pTx": 1_500_000},
}

UNLOCK_THRESHOLDS: Mapping[MagnetType, int] = {
    MagnetType.T3: 0,
    MagnetType.T7: 50,
    MagnetType.T11_7: 200,
}


@dataclass(frozen=True)
class SubjectTier:
    """Prestige gate for a scan subject."""

    subject: SubjectType
    required_prestige: int


SUBJECT_TIERS: Mapping[SubjectType, SubjectTier] = {
    SubjectType.PHANTOM: SubjectTier(SubjectType.PHANTOM, 0),
    SubjectType.ADULT: SubjectTier(SubjectType.ADULT, 20),
    SubjectType.PEDIATRIC: SubjectTier(SubjectType.PEDIATRIC, 80),
    SubjectType.NEONATE: SubjectTier(SubjectType.NEONATE, 300),
}


# Tutorial step recorded once the walkthrough is finished or skipped.
TUTORIAL_DONE = 99


def price_of(category: PurchaseCategory, item: str) -> int:
    """Return the catalogue price of ``item`` within ``category``."""

    try:
        return COSTS[category][item]
    except KeyError as exc:
        raise KeyError(f"Unknown {category.value} item '{item}'") from exc


__all__ = [
    "COSTS",
    "CoilType",
    "CoolingType",
    "GradientType",
    "MagnetType",
    "PurchaseCategory",
    "SUBJECT_TIERS",
    "SequenceType",
    "SubjectTier",
    "SubjectType",
    "TUTORIAL_DONE",
    "UNLOCK_THRESHOLDS",
    "price_of",
]
