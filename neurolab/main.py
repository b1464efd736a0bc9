"""FastAPI application entrypoint for the NeuroLab game backend."""

from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import configure_services, router as api_router
from .config import DEFAULT_GAME_CONFIG, DEFAULT_TELEMETRY_CONFIG
from .simulation.assets import load_scientific_refs
from .telemetry import configure_telemetry


API_DESCRIPTION = """
The NeuroLab API runs the simulation core of two educational games.  Each
client opens a session and then drives it through named transitions:

* build and tune an MRI lab, preview the console and run scans (`/sessions/{id}/lab/...`)
* steer light through cortex with upconversion nanoparticles (`/sessions/{id}/optical/...`)
* navigate a mouse with a wireless implant (`/sessions/{id}/maze/...`)
* run a closed-loop neuromodulation treatment (`/sessions/{id}/neuromod/...`)
* argue the ethics case in court (`/sessions/{id}/debate/...`)
* read the literature facts behind each control (`/refs`)

Use the OpenAPI schema for complete request/response examples.
"""


telemetry = configure_telemetry(DEFAULT_TELEMETRY_CONFIG)


app = FastAPI(title="NeuroLab Simulation API", description=API_DESCRIPTION, version=__version__)
telemetry.instrument_app(app)


origins = os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


configure_services(config=DEFAULT_GAME_CONFIG, scientific_refs=load_scientific_refs(), telemetry=telemetry)


app.include_router(api_router)


@app.get("/")
def read_root() -> dict[str, str]:
    """Basic health check used by the frontend shell."""

    return {"status": "ok", "version": __version__}


@app.get("/health")
def health() -> dict[str, str]:
    """Alias of :func:`read_root` for compatibility with uptime monitors."""

    return {"status": "ok", "version": __version__}


__all__ = ["app"]
