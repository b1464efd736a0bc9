"""Command-line helper for trying MRI scan configurations locally."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, replace
import json
import logging
from typing import Dict, Mapping, Sequence

import numpy as np

from .engine.catalog import CoilType, CoolingType, GradientType, MagnetType, SequenceType
from .engine.formulas import preview_console
from .engine.models import (
    DURATION_RANGE_MIN,
    MODEL_COUNT_RANGE,
    RESOLUTION_RANGE_MM,
    LabConfiguration,
    SafetyModelState,
    ScanParameters,
    ShimmingVector,
)
from .simulation.errors import PreconditionError
from .simulation.scan import resolve_experiment


@dataclass(frozen=True)
class Preset:
    """Describe a ready-made lab and console setup for the quickstart CLI."""

    lab: LabConfiguration
    scan: ScanParameters
    description: str
    shim: ShimmingVector = ShimmingVector()
    model_count_n: int = 64


_PRESETS: Dict[str, Preset] = {
    "starter": Preset(
        lab=LabConfiguration(
            magnet=MagnetType.T3,
            cooling=CoolingType.STANDARD,
            coil=CoilType.BIRDCAGE,
            gradient=GradientType.HIGH_PERF,
        ),
        scan=ScanParameters(sequence=SequenceType.GRE, resolution=1.0, duration=5.0),
        description="Clinical 3T bore with high-performance gradients; a safe first publication.",
    ),
    "ultra_high_field": Preset(
        lab=LabConfiguration(
            magnet=MagnetType.T7,
            cooling=CoolingType.STANDARD,
            coil=CoilType.AVANTI2,
            gradient=GradientType.HIGH_PERF,
            ptx_enabled=True,
        ),
        scan=ScanParameters(sequence=SequenceType.SE, resolution=1.0, duration=8.0),
        description="7T with parallel transmission to flatten the B1+ field; spin echo for contrast.",
        model_count_n=32,
    ),
    "mesoscopic": Preset(
        lab=LabConfiguration(
            magnet=MagnetType.T11_7,
            cooling=CoolingType.SUPERFLUID,
            coil=CoilType.AVANTI2,
            gradient=GradientType.CONNECTOME,
            ptx_enabled=True,
        ),
        scan=ScanParameters(sequence=SequenceType.GRE, resolution=0.5, duration=15.0),
        description="11.7T superfluid magnet pushing 0.5 mm voxels; long acquisitions risk motion.",
    ),
}


class QuickstartError(Exception):
    """Raised when the quickstart helper receives invalid input."""


def available_presets() -> Mapping[str, Preset]:
    """Return the preset configurations shipped with the CLI."""

    return dict(_PRESETS)


def _apply_overrides(
    preset: Preset,
    *,
    sequence: str | None = None,
    resolution: float | None = None,
    duration: float | None = None,
    model_count_n: int | None = None,
) -> Preset:
    scan = preset.scan
    if sequence is not None:
        try:
            scan = replace(scan, sequence=SequenceType(sequence))
        except ValueError as exc:
            raise QuickstartError(
                f"Sequence must be one of {[item.value for item in SequenceType]} (received {sequence!r})"
            ) from exc
    if resolution is not None:
        low, high = RESOLUTION_RANGE_MM
        if not low <= resolution <= high:
            raise QuickstartError(f"Resolution must be between {low} and {high} mm")
        scan = replace(scan, resolution=float(resolution))
    if duration is not None:
        low, high = DURATION_RANGE_MIN
        if not low <= duration <= high:
            raise QuickstartError(f"Duration must be between {low:g} and {high:g} minutes")
        scan = replace(scan, duration=float(duration))
    count = preset.model_count_n if model_count_n is None else model_count_n
    low, high = MODEL_COUNT_RANGE
    if not low <= count <= high:
        raise QuickstartError(f"The safety model takes between {low} and {high} observation points")
    return replace(preset, scan=scan, model_count_n=count)


def run_quickstart(
    preset: str | Preset = "starter",
    *,
    seed: int | None = None,
    sequence: str | None = None,
    resolution: float | None = None,
    duration: float | None = None,
    model_count_n: int | None = None,
) -> Dict[str, object]:
    """Preview and run one scan locally and return a structured summary."""

    if isinstance(preset, str):
        if preset not in _PRESETS:
            raise QuickstartError(f"Unknown preset '{preset}'; choose from {sorted(_PRESETS)}")
        preset = _PRESETS[preset]
    preset = _apply_overrides(
        preset,
        sequence=sequence,
        resolution=resolution,
        duration=duration,
        model_count_n=model_count_n,
    )

    safety = SafetyModelState(model_count_n=preset.model_count_n)
    preview = preview_console(preset.lab, preset.scan, preset.shim, safety)
    try:
        result = resolve_experiment(preset.lab, preset.scan, preset.shim, safety, np.random.default_rng(seed))
    except PreconditionError as exc:
        raise QuickstartError(exc.message) from exc

    return {
        "lab": preset.lab.as_dict(),
        "scan": preset.scan.as_dict(),
        "model_count_n": safety.model_count_n,
        "preview": preview.as_dict(),
        "result": result.as_dict(),
    }


def summarise_quickstart(payload: Mapping[str, object]) -> str:
    """Create a human-readable summary of a quickstart scan."""

    lab = payload.get("lab", {})
    scan = payload.get("scan", {})
    preview = payload.get("preview", {})
    result = payload.get("result", {})

    lines = ["Lab:"]
    if isinstance(lab, Mapping):
        hardware = ", ".join(f"{key}={value}" for key, value in lab.items())
        lines.append(f"  • {hardware}")
    if isinstance(scan, Mapping):
        lines.append(
            f"  • {scan.get('sequence')} at {scan.get('resolution')} mm for {scan.get('duration')} min"
            f" (N={payload.get('model_count_n')})"
        )

    if isinstance(preview, Mapping):
        lines.append("\nConsole preview:")
        lines.append(
            f"  • SNR {preview.get('snr', 0.0):.1f}, safety factor {preview.get('safety_factor', 0.0):.2f}"
            f", power clamp {preview.get('power_clamp', 0.0):.2f}"
        )
        lines.append(
            f"  • Gradient load {preview.get('gradient_load', 0.0):.0f}%"
            f", PNS risk {preview.get('pns_risk', 0.0):.0f}%"
        )
        warnings = []
        if preview.get("gradient_overload"):
            warnings.append("gradient overload")
        if preview.get("pns_warning"):
            warnings.append("PNS warning")
        if not preview.get("shim_good", True):
            warnings.append("poor shim")
        if preview.get("rf_artifacts"):
            warnings.append("B1+ artifacts")
        if warnings:
            lines.append("  • Warnings: " + ", ".join(warnings))

    if isinstance(result, Mapping):
        lines.append("\nScan log:")
        for entry in result.get("log", []):
            lines.append(f"  > {entry['message']}")
        outcome = "SUCCESS" if result.get("success") else f"FAILED ({result.get('reason')})"
        lines.append(
            f"\nResult: {outcome} - +{result.get('money_delta', 0)} budget, +{result.get('prestige_delta', 0)} prestige"
        )

    return "\n".join(lines)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run an MRI scan simulation with friendly defaults.")
    parser.add_argument("--preset", choices=sorted(_PRESETS), default="starter", help="Which lab setup to use as a baseline")
    parser.add_argument("--sequence", choices=[item.value for item in SequenceType], help="Override the pulse sequence")
    parser.add_argument("--resolution", type=float, help="Override the voxel size in mm (0.2-3.0)")
    parser.add_argument("--duration", type=float, help="Override the acquisition time in minutes (1-20)")
    parser.add_argument("--model-count", type=int, dest="model_count", help="Virtual observation points for the SAR model")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the motion draw")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON payload instead of a summary")
    parser.add_argument("--list-presets", action="store_true", help="List built-in presets and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.list_presets:
        lines = ["Available presets:"]
        for name in sorted(_PRESETS):
            lines.append(f"  • {name}: {_PRESETS[name].description}")
        print("\n".join(lines))
        return 0

    try:
        payload = run_quickstart(
            args.preset,
            seed=args.seed,
            sequence=args.sequence,
            resolution=args.resolution,
            duration=args.duration,
            model_count_n=args.model_count,
        )
    except QuickstartError as exc:
        parser.error(str(exc))
        return 2

    if args.json:
        print(json.dumps(payload, indent=2, sort_keys=True, default=float))
    else:
        print(summarise_quickstart(payload))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
