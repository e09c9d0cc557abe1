# kettle/readout.py
"""Derived display values. Read-only: nothing here feeds back into the model."""
from __future__ import annotations

from typing import Literal

from .process import ProcessConfig, evaporation, viscosity
from .state import ProcessState


Status = Literal["CRITICAL", "OVERTEMP", "STOPPED", "OK"]


def format_elapsed(seconds: int) -> str:
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def temperature_delta(state: ProcessState) -> float:
    return state.temperature - state.setpoint


def evaporation_pct(state: ProcessState, cfg: ProcessConfig | None = None) -> float:
    cfg = cfg or ProcessConfig()
    return 100.0 * evaporation(cfg, state.temperature)


def viscosity_pct(state: ProcessState, cfg: ProcessConfig | None = None) -> float:
    cfg = cfg or ProcessConfig()
    return 100.0 * viscosity(cfg, state.brix)


def status(state: ProcessState, overload: float = 90.0, temp_margin_c: float = 5.0) -> Status:
    # precedence: motor first, then temperature, then run state
    if state.torque >= overload:
        return "CRITICAL"
    if state.temperature > state.setpoint + temp_margin_c:
        return "OVERTEMP"
    if not state.running:
        return "STOPPED"
    return "OK"
