# kettle/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from .alarms import AlarmLog
from .history import HistoryBuffer


Phase = Literal["CLARIFICATION", "CONCENTRATION", "POINT", "FINISHED"]
ProtectionMode = Literal["NORMAL", "PROTECTING", "RECOVERING"]

PHASE_ORDER: tuple = ("CLARIFICATION", "CONCENTRATION", "POINT", "FINISHED")

AMBIENT_C = 25.0
DEFAULT_BRIX = 20.0
DEFAULT_RPM = 40.0
DEFAULT_TORQUE = 10.0
DEFAULT_SETPOINT = 95.0


# default clamp function
def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


@dataclass
class ProtectionState:
    mode: ProtectionMode = "NORMAL"
    active: bool = False
    saved_rpm: float = DEFAULT_RPM
    # speed command received while protecting, applied on release
    pending_rpm: Optional[float] = None


@dataclass
class ProcessState:
    """
    Canonical kettle state.
    Data only: physics lives in process.py, sequencing in phases.py,
    motor protection in protection.py. Only ProcessController mutates it.
    """

    # ======================================================
    # THERMAL
    # ======================================================
    temperature: float = AMBIENT_C          # °C, >= ambient
    setpoint: float = DEFAULT_SETPOINT      # °C, target of current phase / manual

    # ======================================================
    # STIRRER
    # ======================================================
    commanded_rpm: float = DEFAULT_RPM
    effective_rpm: float = DEFAULT_RPM
    torque: float = DEFAULT_TORQUE          # % of rated load, 0..100
    protection: ProtectionState = field(default_factory=ProtectionState)

    # ======================================================
    # PRODUCT
    # ======================================================
    brix: float = DEFAULT_BRIX              # 0..85
    phase: Phase = "CLARIFICATION"
    efficiency: float = 100.0               # derived, never fed back

    # ======================================================
    # RUN CONTROL
    # ======================================================
    auto_mode: bool = False
    running: bool = False
    elapsed_seconds: int = 0
    clock_accum_s: float = 0.0              # fractional part of elapsed time

    # previous tick values (edge-triggered alarms)
    temperature_prev: float = AMBIENT_C
    step_setpoint: float = DEFAULT_SETPOINT     # setpoint the committed temperature was stepped toward
    torque_prev: float = DEFAULT_TORQUE

    alarms: AlarmLog = field(default_factory=AlarmLog)
    history: HistoryBuffer = field(default_factory=HistoryBuffer)
