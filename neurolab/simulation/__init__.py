"""Game engines.

The :mod:`neurolab.simulation` package holds the pure computational cores of
the game: MRI scan resolution, optical ray propagation and its level
generator, wireless maze steering, closed-loop neuromodulation and the
courtroom debate.  Engines take plain dataclasses and an injected random
source and return structured result dataclasses; the stores in
:mod:`neurolab.state` decide what to do with them.
"""

from .errors import FailureReason, PreconditionError, SimulationError
from .loop import TickLoop
from .scan import ExperimentResult, ScanLogEntry, resolve_experiment, stream_scan

__all__ = [
    "ExperimentResult",
    "FailureReason",
    "PreconditionError",
    "ScanLogEntry",
    "SimulationError",
    "TickLoop",
    "resolve_experiment",
    "stream_scan",
]
