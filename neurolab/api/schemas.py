"""Pydantic schemas used by the public API surface."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..engine.catalog import PurchaseCategory, SequenceType, SubjectType
from ..engine.formulas import ConsolePreview
from ..simulation.assets import ScientificRef
from ..simulation.debate import CardEffect, DebateState, EvidenceCard
from ..simulation.maze import MazeStep, MouseAction
from ..simulation.neuromod import NeuromodulationState, TreatmentMethod
from ..simulation.optical import LaserType, OpticalFrame
from ..simulation.scan import ExperimentResult
from ..state.lab import GameStage, LabStore
from ..state.neurofiles import NeuroFilesStore


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


class ErrorPayload(BaseModel):
    """Standard error envelope returned by API endpoints."""

    code: str = Field(..., description="Machine readable error identifier")
    message: str = Field(..., description="Human readable explanation")
    context: Dict[str, Any] = Field(default_factory=dict, description="Additional context")


class SessionCreateRequest(BaseModel):
    seed: Optional[int] = Field(default=None, description="Seed for the session random generator")


class SessionResponse(BaseModel):
    session_id: str
    lab: Dict[str, Any]
    neurofiles: Dict[str, Any]


# ---------------------------------------------------------------------------
# MRI lab
# ---------------------------------------------------------------------------


class LabStateResponse(BaseModel):
    """Snapshot of the lab store."""

    budget: int
    prestige: int
    day: int
    unlocked_magnets: List[str]
    lab: Dict[str, Any]
    subject: str
    model_count_n: int
    checklist: Dict[str, bool]
    scan: Dict[str, Any]
    shimming: Dict[str, float]
    stage: str
    last_result: Optional[Dict[str, Any]] = None
    tutorial_active: bool
    tutorial_step: int
    can_run_scan: bool

    @classmethod
    def from_store(cls, store: LabStore) -> "LabStateResponse":
        return cls.model_validate(store.snapshot())


class PurchaseRequest(BaseModel):
    category: PurchaseCategory
    item: str = Field(..., description="Catalogue label, e.g. '3T' or 'Superfluid'")


class PurchaseResponse(BaseModel):
    accepted: bool
    state: LabStateResponse


class ScanParamsUpdate(BaseModel):
    sequence: Optional[SequenceType] = None
    resolution: Optional[float] = Field(default=None, gt=0.0, description="Voxel size in mm")
    duration: Optional[float] = Field(default=None, ge=0.0, description="Acquisition time in minutes")


class ShimmingUpdate(BaseModel):
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None


class SafetyUpdate(BaseModel):
    model_count_n: Optional[int] = Field(default=None, description="Virtual observation points, clamped to 2-64")
    toggle: List[str] = Field(default_factory=list, description="Checklist items to toggle")


class SubjectRequest(BaseModel):
    subject: SubjectType


class SubjectResponse(BaseModel):
    accepted: bool
    available: List[SubjectType]
    state: LabStateResponse


class StageRequest(BaseModel):
    stage: GameStage


class TutorialRequest(BaseModel):
    action: str = Field(..., pattern="^(next|skip)$")


class BlurResponse(BaseModel):
    shim: float
    motion: float
    resolution: float
    total: float


class PreviewResponse(BaseModel):
    snr: float
    safety_factor: float
    power_clamp: float
    gradient_demand: float
    gradient_capacity: float
    gradient_load: float
    gradient_overload: bool
    pns_risk: float
    pns_warning: bool
    shim_error: float
    shim_good: bool
    blur: BlurResponse
    rf_artifacts: bool
    safety_curve: List[List[float]]

    @classmethod
    def from_domain(cls, preview: ConsolePreview) -> "PreviewResponse":
        return cls.model_validate(preview.as_dict())


class ScanLogEntryResponse(BaseModel):
    message: str
    delay_ms: int


class ExperimentResponse(BaseModel):
    success: bool
    snr: float
    reason: Optional[str] = None
    message: str
    prestige_delta: int
    money_delta: int
    artifacts: bool
    log: List[ScanLogEntryResponse]
    state: LabStateResponse

    @classmethod
    def from_domain(cls, result: ExperimentResult, store: LabStore) -> "ExperimentResponse":
        payload = result.as_dict()
        payload["state"] = LabStateResponse.from_store(store)
        return cls.model_validate(payload)


class ScientificRefResponse(BaseModel):
    key: str
    id: str
    term: str
    fact: str
    source: str

    @classmethod
    def from_domain(cls, ref: ScientificRef) -> "ScientificRefResponse":
        return cls(key=ref.key, id=ref.id, term=ref.term, fact=ref.fact, source=ref.source)


# ---------------------------------------------------------------------------
# Neuro-Files
# ---------------------------------------------------------------------------


class NeuroFilesStateResponse(BaseModel):
    chapter: str
    knowledge_points: int
    evidence: List[str]
    suspicion: int
    level: Dict[str, Any]
    led_spacing: float
    mouse: Dict[str, Any]
    maze_status: str
    pathway_identified: bool
    treatment: Dict[str, Any]
    neuromod: Dict[str, Any]
    treatment_result: Dict[str, Any]
    debate: Dict[str, Any]

    @classmethod
    def from_store(cls, store: NeuroFilesStore) -> "NeuroFilesStateResponse":
        return cls.model_validate(store.snapshot())


class ParticleRequest(BaseModel):
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)


class ParticleResponse(BaseModel):
    changed: bool
    remaining: int
    particles: List[List[int]]


class OpticalTickRequest(BaseModel):
    angle: float = Field(default=0.0, ge=-45.0, le=45.0)
    power: float = Field(default=50.0, ge=0.0, le=100.0)
    laser: LaserType = LaserType.NIR
    firing: bool = False
    include_grid: bool = False


class OpticalFrameResponse(BaseModel):
    path: List[List[int]]
    max_temperature: float
    activation: float
    status: str
    reason: Optional[str] = None
    message: str
    terrain: Optional[List[List[str]]] = None
    blue: Optional[List[List[float]]] = None
    nir: Optional[List[List[float]]] = None
    temperature: Optional[List[List[float]]] = None
    knowledge_points: int
    chapter: str

    @classmethod
    def from_domain(
        cls,
        frame: OpticalFrame,
        store: NeuroFilesStore,
        *,
        include_grid: bool = False,
    ) -> "OpticalFrameResponse":
        payload = frame.as_dict(include_grid=include_grid)
        payload["knowledge_points"] = store.knowledge_points
        payload["chapter"] = store.chapter.value
        return cls.model_validate(payload)


class MazeConfigRequest(BaseModel):
    led_spacing: float = Field(..., description="LED spacing in mm, clamped to 0.1-3.0")


class MazeActionRequest(BaseModel):
    action: MouseAction


class MazeTickRequest(BaseModel):
    ticks: int = Field(default=1, ge=1, le=1000)


class MazeResponse(BaseModel):
    status: str
    mouse: Dict[str, Any]
    message: Optional[str] = None
    led_spacing: float
    suspicion: int
    knowledge_points: int
    evidence: List[str]

    @classmethod
    def from_domain(cls, step: MazeStep, store: NeuroFilesStore) -> "MazeResponse":
        return cls(
            status=store.maze_status.value,
            mouse=store.mouse.as_dict(),
            message=step.message,
            led_spacing=store.led_spacing,
            suspicion=store.suspicion,
            knowledge_points=store.knowledge_points,
            evidence=list(store.evidence),
        )


class DiagnosisRequest(BaseModel):
    circuit: str


class DiagnosisResponse(BaseModel):
    correct: bool
    knowledge_points: int


class TreatmentRequest(BaseModel):
    method: TreatmentMethod


class NeuromodStepRequest(BaseModel):
    wavelength: Optional[float] = Field(default=None, ge=400.0, le=1100.0)
    power: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    frequency: Optional[float] = Field(default=None, ge=1.0, le=100.0)
    active: bool = True
    ticks: int = Field(default=1, ge=1, le=5000)


class NeuromodResponse(BaseModel):
    state: Dict[str, Any]
    treatment: Dict[str, Any]
    chapter: str
    treatment_result: Dict[str, Any]

    @classmethod
    def from_domain(cls, state: NeuromodulationState, store: NeuroFilesStore) -> "NeuromodResponse":
        return cls(
            state=state.as_dict(),
            treatment=store.treatment.as_dict(),
            chapter=store.chapter.value,
            treatment_result=store.treatment_result.as_dict(),
        )


class EvidenceCardResponse(BaseModel):
    id: str
    title: str
    description: str

    @classmethod
    def from_domain(cls, card: EvidenceCard) -> "EvidenceCardResponse":
        return cls(id=card.id, title=card.title, description=card.description)


class CardRequest(BaseModel):
    card_id: str


class DebateResponse(BaseModel):
    debate: Dict[str, Any]
    effective: Optional[bool] = None
    log: Optional[str] = None
    knowledge_points: int
    chapter: str

    @classmethod
    def from_domain(
        cls,
        state: DebateState,
        store: NeuroFilesStore,
        effect: CardEffect | None = None,
    ) -> "DebateResponse":
        return cls(
            debate=state.as_dict(),
            effective=effect.effective if effect else None,
            log=effect.log if effect else None,
            knowledge_points=store.knowledge_points,
            chapter=store.chapter.value,
        )
