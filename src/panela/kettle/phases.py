# kettle/phases.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .state import PHASE_ORDER, Phase


@dataclass(frozen=True)
class PhaseSpec:
    label: str
    setpoint: float                      # °C
    brix_range: Tuple[float, float]      # expected Brix band while in this phase
    phase_factor: float                  # evaporation multiplier
    description: str = ""
    entry_alarm: str = ""                # info alarm when the recipe enters this phase


def default_phases() -> Dict[Phase, PhaseSpec]:
    return {
        "CLARIFICATION": PhaseSpec("Clarification", 95.0, (20.0, 35.0), 0.8, "Impurity removal",
                                   "Starting Clarification phase"),
        "CONCENTRATION": PhaseSpec("Concentration", 115.0, (35.0, 75.0), 1.2, "Water evaporation",
                                   "Starting Concentration phase"),
        "POINT": PhaseSpec("Point", 118.0, (75.0, 85.0), 1.5, "Product finishing",
                           "Reaching ideal point"),
        "FINISHED": PhaseSpec("Finished", 60.0, (85.0, 85.0), 0.8, "Controlled cooling",
                              "Process finished successfully"),
    }


@dataclass
class PhaseThresholds:
    clarification_temp: float = 85.0     # CLARIFICATION -> CONCENTRATION when T >= ...
    clarification_brix: float = 26.0     # ... or brix >= ...
    concentration_brix: float = 55.0     # CONCENTRATION -> POINT when brix >= ...
    concentration_torque: float = 70.0   # ... or torque >= ...
    point_brix: float = 75.0             # POINT -> FINISHED when brix >= ...


@dataclass
class PhaseConfig:
    table: Dict[Phase, PhaseSpec] = field(default_factory=default_phases)
    thresholds: PhaseThresholds = field(default_factory=PhaseThresholds)


def phase_index(phase: Phase) -> int:
    return PHASE_ORDER.index(phase)


def phase_progress(phase: Phase) -> Tuple[int, int]:
    """(phases completed, total phases). FINISHED counts as complete."""
    idx = phase_index(phase)
    total = len(PHASE_ORDER)
    return (total if phase == "FINISHED" else idx), total


class PhaseSequencer:
    """
    Automatic recipe: strictly forward, at most one step per tick.
    FINISHED is terminal.
    """

    def __init__(self, cfg: PhaseConfig | None = None):
        self.cfg = cfg or PhaseConfig()

    def spec(self, phase: Phase) -> PhaseSpec:
        return self.cfg.table[phase]

    def next_phase(self, phase: Phase, temperature: float, brix: float, torque: float) -> Optional[Phase]:
        th = self.cfg.thresholds

        if phase == "CLARIFICATION":
            if temperature >= th.clarification_temp or brix >= th.clarification_brix:
                return "CONCENTRATION"
        elif phase == "CONCENTRATION":
            if brix >= th.concentration_brix or torque >= th.concentration_torque:
                return "POINT"
        elif phase == "POINT":
            if brix >= th.point_brix:
                return "FINISHED"
        return None
