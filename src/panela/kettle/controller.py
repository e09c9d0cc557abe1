# kettle/controller.py
from __future__ import annotations

import copy
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict

import pandas as pd

from . import process as physics
from .alarms import AlarmConfig, AlarmLog, AlarmMonitor, Severity
from .history import HISTORY_MAX, HistoryBuffer, HistorySample
from .phases import PhaseConfig, PhaseSequencer
from .process import ProcessConfig
from .protection import MotorProtection, ProtectionConfig
from .state import PHASE_ORDER, Phase, ProcessState, ProtectionState, clamp

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_LOG_LEVEL = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class KettleConfig:
    process: ProcessConfig = field(default_factory=ProcessConfig)
    protection: ProtectionConfig = field(default_factory=ProtectionConfig)
    phases: PhaseConfig = field(default_factory=PhaseConfig)
    alarms: AlarmConfig = field(default_factory=AlarmConfig)
    history_capacity: int = HISTORY_MAX

    # command bounds
    setpoint_min: float = 60.0
    setpoint_max: float = 130.0
    rpm_min: float = 10.0
    rpm_max: float = 100.0

    # defaults restored by reset()
    initial_brix: float = 20.0
    initial_rpm: float = 40.0
    initial_torque: float = 10.0

    # elapsed time keeps counting while paused
    clock_runs_while_paused: bool = False


class ProcessController:
    """
    Owns the kettle ProcessState and runs the per-tick pipeline:

        physics -> motor protection (+ torque recompute) -> phase sequencer
        -> threshold alarms -> commit -> history sample

    Commands return True when applied and False when rejected; a rejected
    command leaves the state untouched. Not thread-safe on its own: callers
    that tick from several tasks must serialize through one lock (see
    runner.py).
    """

    def __init__(
        self,
        cfg: KettleConfig | None = None,
        state: ProcessState | None = None,
        clock: Clock | None = None,
    ):
        self.cfg = cfg or KettleConfig()
        self.clock = clock or utc_now

        self.motor_protection = MotorProtection(self.cfg.protection)
        self.sequencer = PhaseSequencer(self.cfg.phases)
        self.monitor = AlarmMonitor(self.cfg.alarms)

        self._state = state if state is not None else self.initial_state()

        # operator acknowledgment lives outside the process state; reset keeps it
        self.safety_acknowledged: bool = False

    # ======================================================
    # STATE
    # ======================================================
    def initial_state(self) -> ProcessState:
        cfg = self.cfg
        ambient = cfg.process.ambient_c
        rpm = cfg.initial_rpm
        return ProcessState(
            temperature=ambient,
            setpoint=self.sequencer.spec("CLARIFICATION").setpoint,
            commanded_rpm=rpm,
            effective_rpm=rpm,
            torque=cfg.initial_torque,
            protection=ProtectionState(saved_rpm=rpm),
            brix=cfg.initial_brix,
            phase="CLARIFICATION",
            efficiency=100.0,
            auto_mode=False,
            running=False,
            elapsed_seconds=0,
            temperature_prev=ambient,
            step_setpoint=self.sequencer.spec("CLARIFICATION").setpoint,
            torque_prev=cfg.initial_torque,
            alarms=AlarmLog(capacity=cfg.alarms.capacity),
            history=HistoryBuffer(capacity=cfg.history_capacity),
        )

    def snapshot(self) -> ProcessState:
        """Detached copy; mutating it never affects the controller."""
        return copy.deepcopy(self._state)

    @property
    def state(self) -> ProcessState:
        return self.snapshot()

    def history_frame(self) -> pd.DataFrame:
        return self._state.history.to_frame()

    def to_dict(self) -> Dict[str, Any]:
        s = self._state
        return {
            "elapsed_seconds": s.elapsed_seconds,
            "running": s.running,
            "auto_mode": s.auto_mode,
            "phase": s.phase,
            "temperature": round(s.temperature, 2),
            "setpoint": s.setpoint,
            "brix": round(s.brix, 2),
            "torque": round(s.torque, 2),
            "commanded_rpm": s.commanded_rpm,
            "effective_rpm": round(s.effective_rpm, 2),
            "efficiency": round(s.efficiency, 1),
            "protection": asdict(s.protection),
            "alarms": [
                {"id": a.id, "message": a.message, "severity": a.severity, "ts": a.timestamp.isoformat()}
                for a in s.alarms
            ],
        }

    # ======================================================
    # COMMANDS
    # ======================================================
    def start(self) -> bool:
        s = self._state
        if s.running:
            logger.debug("start ignored: already running")
            return False

        s.running = True
        s.auto_mode = True
        s.phase = "CLARIFICATION"
        s.setpoint = self.sequencer.spec("CLARIFICATION").setpoint
        logger.info("[CMD] start (auto) setpoint=%.0f", s.setpoint)
        self._alarm("System started in automatic mode", "info")
        return True

    def pause(self) -> bool:
        s = self._state
        if not s.running:
            logger.debug("pause ignored: not running")
            return False

        s.running = False
        logger.info("[CMD] pause at %ss", s.elapsed_seconds)
        self._alarm("System paused", "warning")
        return True

    def reset(self) -> None:
        self._state = self.initial_state()
        logger.info("[CMD] reset")

    def set_manual_setpoint(self, value: float) -> bool:
        s = self._state
        if s.auto_mode:
            logger.debug("setpoint %.1f rejected: auto mode", value)
            return False

        s.setpoint = clamp(float(value), self.cfg.setpoint_min, self.cfg.setpoint_max)
        logger.info("[CMD] setpoint=%.1f", s.setpoint)
        return True

    def set_commanded_rpm(self, value: float) -> bool:
        s = self._state
        rpm = clamp(float(value), self.cfg.rpm_min, self.cfg.rpm_max)

        if s.protection.active:
            s.protection.pending_rpm = rpm
            logger.debug("rpm %.0f latched: motor protection active", rpm)
            return False

        s.commanded_rpm = rpm
        s.effective_rpm = rpm
        s.protection.saved_rpm = rpm
        logger.info("[CMD] rpm=%.0f", rpm)
        return True

    def set_auto_mode(self, enabled: bool) -> bool:
        s = self._state
        s.auto_mode = bool(enabled)
        logger.info("[CMD] auto_mode=%s", s.auto_mode)
        return True

    def set_phase(self, phase: Phase) -> bool:
        s = self._state
        if s.auto_mode or phase not in PHASE_ORDER:
            logger.debug("phase %s rejected", phase)
            return False

        s.phase = phase
        logger.info("[CMD] phase=%s", phase)
        return True

    def acknowledge_safety(self) -> None:
        self.safety_acknowledged = True

    # ======================================================
    # TICKS
    # ======================================================
    def tick(self, dt: float) -> None:
        s = self._state
        if not s.running or dt <= 0:
            return

        pcfg = self.cfg.process
        scale = physics.time_scale(pcfg, dt)
        setpoint = s.setpoint

        # 1) physics (raw)
        temperature = physics.step_temperature(pcfg, s.temperature, setpoint, s.protection.active, scale)
        brix = physics.step_brix(pcfg, s.brix, temperature, self.sequencer.spec(s.phase).phase_factor, scale)
        torque = physics.compute_torque(pcfg, brix, s.effective_rpm, s.phase)

        # 2) motor protection, then torque at the speed actually applied
        rpm, event = self.motor_protection.update(s.protection, s.commanded_rpm, s.effective_rpm, torque, scale)
        if event == "deactivated":
            s.commanded_rpm = rpm
        if rpm != s.effective_rpm:
            torque = physics.compute_torque(pcfg, brix, rpm, s.phase)
        s.effective_rpm = rpm

        if event == "activated":
            self._alarm(f"Motor protection activated: speed reduced to {rpm:.0f} rpm", "warning")
        elif event == "deactivated":
            self._alarm("Motor protection deactivated", "info")

        efficiency = physics.compute_efficiency(temperature, setpoint, torque)

        # 3) recipe
        if s.auto_mode:
            nxt = self.sequencer.next_phase(s.phase, temperature, brix, torque)
            if nxt is not None:
                spec = self.sequencer.spec(nxt)
                s.phase = nxt
                s.setpoint = spec.setpoint
                self._alarm(spec.entry_alarm or f"Phase {spec.label}", "info")

        # 4) threshold alarms (against the setpoint this step heated toward)
        for message, severity in self.monitor.evaluate(
            temperature_prev=s.temperature,
            setpoint_prev=s.step_setpoint,
            temperature=temperature,
            setpoint=setpoint,
            torque_prev=s.torque,
            torque=torque,
            protection_active=s.protection.active,
        ):
            self._alarm(message, severity)

        # 5) commit
        s.temperature_prev = s.temperature
        s.torque_prev = s.torque
        s.step_setpoint = setpoint
        s.temperature = temperature
        s.brix = brix
        s.torque = torque
        s.efficiency = efficiency

        s.history.append(
            HistorySample(
                timestamp=self.clock(),
                temperature=temperature,
                torque=torque,
                brix=brix,
                setpoint=s.setpoint,
            )
        )

    def tick_clock(self, dt: float = 1.0) -> None:
        s = self._state
        if dt <= 0:
            return
        if not s.running and not self.cfg.clock_runs_while_paused:
            return

        s.clock_accum_s += float(dt)
        if s.clock_accum_s >= 1.0:
            inc = int(s.clock_accum_s)
            s.elapsed_seconds += inc
            s.clock_accum_s -= inc

    # ======================================================
    # Helpers
    # ======================================================
    def _alarm(self, message: str, severity: Severity) -> None:
        alarm = self._state.alarms.push(message, severity, self.clock())
        logger.log(_LOG_LEVEL[severity], "[ALARM #%d] %s", alarm.id, message)

    # ======================================================
    # Read accessors
    # ======================================================
    @property
    def temperature(self) -> float:
        return self._state.temperature

    @property
    def setpoint(self) -> float:
        return self._state.setpoint

    @property
    def commanded_rpm(self) -> float:
        return self._state.commanded_rpm

    @property
    def effective_rpm(self) -> float:
        return self._state.effective_rpm

    @property
    def torque(self) -> float:
        return self._state.torque

    @property
    def brix(self) -> float:
        return self._state.brix

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def auto_mode(self) -> bool:
        return self._state.auto_mode

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def efficiency(self) -> float:
        return self._state.efficiency

    @property
    def elapsed_seconds(self) -> int:
        return self._state.elapsed_seconds

    @property
    def protection(self) -> ProtectionState:
        return copy.deepcopy(self._state.protection)

    @property
    def alarms(self) -> list:
        return [copy.copy(a) for a in self._state.alarms]

    @property
    def history(self) -> list:
        return [copy.copy(h) for h in self._state.history]
