"""FastAPI router exposing game sessions over HTTP."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..config import DEFAULT_GAME_CONFIG, GameConfig
from ..session import GameSession
from ..simulation.assets import ScientificRef, load_scientific_refs
from ..simulation import debate
from ..simulation.errors import PreconditionError
from ..simulation.maze import MazeStatus, MazeStep
from ..simulation.neuromod import LoopStatus
from ..simulation.optical import LaserControls, OpticalStatus
from ..telemetry import TelemetryManager
from . import schemas

LOGGER = logging.getLogger(__name__)


@dataclass
class ServiceRegistry:
    """Container bundling service layer dependencies for the API."""

    config: GameConfig = field(default_factory=lambda: DEFAULT_GAME_CONFIG)
    sessions: Dict[str, GameSession] = field(default_factory=dict)
    scientific_refs: Dict[str, ScientificRef] = field(default_factory=load_scientific_refs)
    telemetry: TelemetryManager | None = None

    def configure(
        self,
        *,
        config: GameConfig | None = None,
        scientific_refs: Dict[str, ScientificRef] | None = None,
        telemetry: TelemetryManager | None = None,
    ) -> None:
        if config is not None:
            self.config = config
        if scientific_refs is not None:
            self.scientific_refs = scientific_refs
        if telemetry is not None:
            self.telemetry = telemetry

    def record_event(self, kind: str, outcome: str) -> None:
        if self.telemetry is not None:
            self.telemetry.record_event(kind, outcome)

    def record_scan(self, snr: float, outcome: str) -> None:
        if self.telemetry is not None:
            self.telemetry.record_scan(snr, outcome)

    def create_session(self, seed: int | None = None) -> GameSession:
        session = GameSession(self.config, seed=seed)
        self.sessions[session.id] = session
        LOGGER.info("Created session %s", session.id)
        return session

    def drop_session(self, session_id: str) -> bool:
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        session.stop_all()
        return True


services = ServiceRegistry()


def configure_services(
    *,
    config: GameConfig | None = None,
    scientific_refs: Dict[str, ScientificRef] | None = None,
    telemetry: TelemetryManager | None = None,
) -> None:
    """Configure the shared service registry used by API routes."""

    services.configure(config=config, scientific_refs=scientific_refs, telemetry=telemetry)


def get_services() -> ServiceRegistry:
    return services


def _http_error(status_code: int, code: str, message: str, *, context: Dict[str, object] | None = None) -> HTTPException:
    payload = schemas.ErrorPayload(code=code, message=message, context=context or {})
    return HTTPException(status_code=status_code, detail=payload.model_dump())


def _precondition_error(exc: PreconditionError) -> HTTPException:
    return _http_error(status.HTTP_409_CONFLICT, exc.code, exc.message, context=exc.context)


def get_session(session_id: str, svc: ServiceRegistry = Depends(get_services)) -> GameSession:
    session = svc.sessions.get(session_id)
    if session is None:
        raise _http_error(
            status.HTTP_404_NOT_FOUND,
            "session_not_found",
            f"Session '{session_id}' does not exist.",
            context={"session_id": session_id},
        )
    return session


router = APIRouter()


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@router.post("/sessions", response_model=schemas.SessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    request: schemas.SessionCreateRequest | None = None,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.SessionResponse:
    seed = request.seed if request is not None else None
    session = svc.create_session(seed=seed)
    return schemas.SessionResponse(
        session_id=session.id,
        lab=session.lab.snapshot(),
        neurofiles=session.neurofiles.snapshot(),
    )


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, svc: ServiceRegistry = Depends(get_services)) -> Response:
    if not svc.drop_session(session_id):
        raise _http_error(
            status.HTTP_404_NOT_FOUND,
            "session_not_found",
            f"Session '{session_id}' does not exist.",
            context={"session_id": session_id},
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# MRI lab
# ---------------------------------------------------------------------------


@router.get("/sessions/{session_id}/lab", response_model=schemas.LabStateResponse)
def read_lab(session: GameSession = Depends(get_session)) -> schemas.LabStateResponse:
    return schemas.LabStateResponse.from_store(session.lab)


@router.post("/sessions/{session_id}/lab/purchase", response_model=schemas.PurchaseResponse)
def purchase(
    request: schemas.PurchaseRequest,
    session: GameSession = Depends(get_session),
) -> schemas.PurchaseResponse:
    try:
        accepted = session.purchase(request.category, request.item)
    except (KeyError, ValueError):
        raise _http_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "unknown_item",
            f"'{request.item}' is not sold as {request.category.value}.",
            context={"category": request.category.value, "item": request.item},
        )
    return schemas.PurchaseResponse(accepted=accepted, state=schemas.LabStateResponse.from_store(session.lab))


@router.patch("/sessions/{session_id}/lab/scan", response_model=schemas.LabStateResponse)
def update_scan(
    request: schemas.ScanParamsUpdate,
    session: GameSession = Depends(get_session),
) -> schemas.LabStateResponse:
    session.lab.set_scan_params(
        sequence=request.sequence,
        resolution=request.resolution,
        duration=request.duration,
    )
    return schemas.LabStateResponse.from_store(session.lab)


@router.patch("/sessions/{session_id}/lab/shimming", response_model=schemas.LabStateResponse)
def update_shimming(
    request: schemas.ShimmingUpdate,
    session: GameSession = Depends(get_session),
) -> schemas.LabStateResponse:
    session.lab.set_shimming(x=request.x, y=request.y, z=request.z)
    return schemas.LabStateResponse.from_store(session.lab)


@router.patch("/sessions/{session_id}/lab/safety", response_model=schemas.LabStateResponse)
def update_safety(
    request: schemas.SafetyUpdate,
    session: GameSession = Depends(get_session),
) -> schemas.LabStateResponse:
    if request.model_count_n is not None:
        session.lab.set_model_count(request.model_count_n)
    for item in request.toggle:
        try:
            session.lab.toggle_checklist(item)
        except ValueError as exc:
            raise _http_error(
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                "unknown_checklist_item",
                str(exc),
                context={"item": item},
            )
    return schemas.LabStateResponse.from_store(session.lab)


@router.post("/sessions/{session_id}/lab/subject", response_model=schemas.SubjectResponse)
def choose_subject(
    request: schemas.SubjectRequest,
    session: GameSession = Depends(get_session),
) -> schemas.SubjectResponse:
    accepted = session.set_subject(request.subject)
    return schemas.SubjectResponse(
        accepted=accepted,
        available=session.lab.available_subjects(),
        state=schemas.LabStateResponse.from_store(session.lab),
    )


@router.post("/sessions/{session_id}/lab/stage", response_model=schemas.LabStateResponse)
def change_stage(
    request: schemas.StageRequest,
    session: GameSession = Depends(get_session),
) -> schemas.LabStateResponse:
    session.lab.set_stage(request.stage)
    return schemas.LabStateResponse.from_store(session.lab)


@router.post("/sessions/{session_id}/lab/tutorial", response_model=schemas.LabStateResponse)
def tutorial(
    request: schemas.TutorialRequest,
    session: GameSession = Depends(get_session),
) -> schemas.LabStateResponse:
    if request.action == "skip":
        session.lab.skip_tutorial()
    else:
        session.lab.next_tutorial_step()
    return schemas.LabStateResponse.from_store(session.lab)


@router.get("/sessions/{session_id}/lab/preview", response_model=schemas.PreviewResponse)
def preview(session: GameSession = Depends(get_session)) -> schemas.PreviewResponse:
    return schemas.PreviewResponse.from_domain(session.preview())


@router.post("/sessions/{session_id}/lab/experiment", response_model=schemas.ExperimentResponse)
def run_experiment(
    session: GameSession = Depends(get_session),
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.ExperimentResponse:
    try:
        result = session.run_experiment()
    except PreconditionError as exc:
        raise _precondition_error(exc)
    svc.record_scan(result.snr, "success" if result.success else result.reason.value)
    return schemas.ExperimentResponse.from_domain(result, session.lab)


@router.post("/sessions/{session_id}/lab/next-round", response_model=schemas.LabStateResponse)
def next_round(session: GameSession = Depends(get_session)) -> schemas.LabStateResponse:
    session.next_round()
    return schemas.LabStateResponse.from_store(session.lab)


@router.post("/sessions/{session_id}/lab/reset", response_model=schemas.LabStateResponse)
def reset_lab(session: GameSession = Depends(get_session)) -> schemas.LabStateResponse:
    session.reset_lab()
    return schemas.LabStateResponse.from_store(session.lab)


# ---------------------------------------------------------------------------
# Reference facts
# ---------------------------------------------------------------------------


@router.get("/refs", response_model=List[schemas.ScientificRefResponse])
def list_refs(svc: ServiceRegistry = Depends(get_services)) -> List[schemas.ScientificRefResponse]:
    return [schemas.ScientificRefResponse.from_domain(ref) for ref in svc.scientific_refs.values()]


@router.get("/refs/{key}", response_model=schemas.ScientificRefResponse)
def read_ref(key: str, svc: ServiceRegistry = Depends(get_services)) -> schemas.ScientificRefResponse:
    ref = svc.scientific_refs.get(key)
    if ref is None:
        raise _http_error(
            status.HTTP_404_NOT_FOUND,
            "reference_not_found",
            f"No scientific reference for '{key}'.",
            context={"key": key},
        )
    return schemas.ScientificRefResponse.from_domain(ref)


# ---------------------------------------------------------------------------
# Neuro-Files
# ---------------------------------------------------------------------------


@router.get("/sessions/{session_id}/neurofiles", response_model=schemas.NeuroFilesStateResponse)
def read_neurofiles(session: GameSession = Depends(get_session)) -> schemas.NeuroFilesStateResponse:
    return schemas.NeuroFilesStateResponse.from_store(session.neurofiles)


@router.post("/sessions/{session_id}/neurofiles/reset", response_model=schemas.NeuroFilesStateResponse)
def reset_neurofiles(session: GameSession = Depends(get_session)) -> schemas.NeuroFilesStateResponse:
    session.reset_neurofiles()
    return schemas.NeuroFilesStateResponse.from_store(session.neurofiles)


@router.post("/sessions/{session_id}/optical/level", response_model=schemas.NeuroFilesStateResponse)
def new_level(session: GameSession = Depends(get_session)) -> schemas.NeuroFilesStateResponse:
    session.new_level()
    return schemas.NeuroFilesStateResponse.from_store(session.neurofiles)


@router.post("/sessions/{session_id}/optical/particles", response_model=schemas.ParticleResponse)
def toggle_particle(
    request: schemas.ParticleRequest,
    session: GameSession = Depends(get_session),
) -> schemas.ParticleResponse:
    changed = session.toggle_particle(request.x, request.y)
    particles = sorted(session.optical.particles.cells)
    return schemas.ParticleResponse(
        changed=changed,
        remaining=session.optical.particles.remaining,
        particles=[list(cell) for cell in particles],
    )


@router.post("/sessions/{session_id}/optical/tick", response_model=schemas.OpticalFrameResponse)
async def optical_tick(
    request: schemas.OpticalTickRequest,
    session: GameSession = Depends(get_session),
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.OpticalFrameResponse:
    session.set_laser(LaserControls(angle=request.angle, power=request.power, laser=request.laser))
    session.set_firing(request.firing)
    frame = session.optical_tick()
    if frame.status is not OpticalStatus.IDLE:
        svc.record_event("optical", frame.status.value)
    return schemas.OpticalFrameResponse.from_domain(frame, session.neurofiles, include_grid=request.include_grid)


@router.post("/sessions/{session_id}/maze/config", response_model=schemas.NeuroFilesStateResponse)
def configure_maze(
    request: schemas.MazeConfigRequest,
    session: GameSession = Depends(get_session),
) -> schemas.NeuroFilesStateResponse:
    session.set_led_spacing(request.led_spacing)
    return schemas.NeuroFilesStateResponse.from_store(session.neurofiles)


@router.post("/sessions/{session_id}/maze/start", response_model=schemas.MazeResponse)
def start_maze(session: GameSession = Depends(get_session)) -> schemas.MazeResponse:
    try:
        session.start_maze()
    except PreconditionError as exc:
        raise _precondition_error(exc)
    step = MazeStep(mouse=session.neurofiles.mouse, status=session.neurofiles.maze_status)
    return schemas.MazeResponse.from_domain(step, session.neurofiles)


@router.post("/sessions/{session_id}/maze/reset", response_model=schemas.MazeResponse)
def reset_maze(session: GameSession = Depends(get_session)) -> schemas.MazeResponse:
    session.reset_maze()
    step = MazeStep(mouse=session.neurofiles.mouse, status=session.neurofiles.maze_status)
    return schemas.MazeResponse.from_domain(step, session.neurofiles)


@router.post("/sessions/{session_id}/maze/action", response_model=schemas.MazeResponse)
async def maze_action(
    request: schemas.MazeActionRequest,
    session: GameSession = Depends(get_session),
) -> schemas.MazeResponse:
    step = session.maze_action(request.action)
    return schemas.MazeResponse.from_domain(step, session.neurofiles)


@router.post("/sessions/{session_id}/maze/tick", response_model=schemas.MazeResponse)
async def maze_tick(
    request: schemas.MazeTickRequest,
    session: GameSession = Depends(get_session),
) -> schemas.MazeResponse:
    step = MazeStep(mouse=session.neurofiles.mouse, status=session.neurofiles.maze_status)
    for _ in range(request.ticks):
        step = session.maze_tick()
        if step.status is not MazeStatus.ACTIVE:
            break
    return schemas.MazeResponse.from_domain(step, session.neurofiles)


@router.post("/sessions/{session_id}/neuromod/diagnose", response_model=schemas.DiagnosisResponse)
def diagnose(
    request: schemas.DiagnosisRequest,
    session: GameSession = Depends(get_session),
) -> schemas.DiagnosisResponse:
    try:
        correct = session.diagnose(request.circuit)
    except ValueError as exc:
        raise _http_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "unknown_circuit",
            str(exc),
            context={"circuit": request.circuit},
        )
    return schemas.DiagnosisResponse(correct=correct, knowledge_points=session.neurofiles.knowledge_points)


@router.post("/sessions/{session_id}/neuromod/treatment", response_model=schemas.NeuromodResponse)
def select_treatment(
    request: schemas.TreatmentRequest,
    session: GameSession = Depends(get_session),
) -> schemas.NeuromodResponse:
    try:
        session.select_treatment(request.method)
    except PreconditionError as exc:
        raise _precondition_error(exc)
    return schemas.NeuromodResponse.from_domain(session.neurofiles.neuromod, session.neurofiles)


@router.post("/sessions/{session_id}/neuromod/step", response_model=schemas.NeuromodResponse)
def neuromod_step(
    request: schemas.NeuromodStepRequest,
    session: GameSession = Depends(get_session),
) -> schemas.NeuromodResponse:
    session.set_treatment(wavelength=request.wavelength, power=request.power, frequency=request.frequency)
    try:
        state = session.set_treatment_active(request.active)
    except PreconditionError as exc:
        raise _precondition_error(exc)
    for _ in range(request.ticks):
        state = session.neuromod_tick()
        if state.status is not LoopStatus.ACTIVE:
            break
    return schemas.NeuromodResponse.from_domain(state, session.neurofiles)


@router.get("/debate/cards", response_model=List[schemas.EvidenceCardResponse])
def list_cards() -> List[schemas.EvidenceCardResponse]:
    return [schemas.EvidenceCardResponse.from_domain(card) for card in debate.list_cards()]


@router.post("/sessions/{session_id}/debate/play", response_model=schemas.DebateResponse)
def play_card(
    request: schemas.CardRequest,
    session: GameSession = Depends(get_session),
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.DebateResponse:
    try:
        state, effect = session.play_card(request.card_id)
    except PreconditionError as exc:
        raise _precondition_error(exc)
    except KeyError:
        raise _http_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "unknown_card",
            f"No evidence card '{request.card_id}'.",
            context={"card_id": request.card_id},
        )
    if state.outcome is not None:
        svc.record_event("debate", state.outcome.value)
    return schemas.DebateResponse.from_domain(state, session.neurofiles, effect)


@router.post("/sessions/{session_id}/debate/reset", response_model=schemas.DebateResponse)
def reset_debate(session: GameSession = Depends(get_session)) -> schemas.DebateResponse:
    session.reset_debate()
    return schemas.DebateResponse.from_domain(session.neurofiles.debate, session.neurofiles)


__all__ = [
    "ServiceRegistry",
    "configure_services",
    "get_services",
    "get_session",
    "router",
    "services",
]
