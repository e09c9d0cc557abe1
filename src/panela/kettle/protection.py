# kettle/protection.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Tuple

from .state import ProtectionState


ProtectionEvent = Literal["activated", "deactivated"]


@dataclass
class ProtectionConfig:
    # torque thresholds (% rated load)
    overload: float = 90.0          # NORMAL -> PROTECTING
    sustain: float = 85.0           # keep ramping down at/above this
    clear: float = 75.0             # below this -> RECOVERING

    # rpm ramps (per reference tick)
    ramp_down: float = 2.0
    ramp_up: float = 5.0
    initial_cut_factor: float = 0.7
    min_rpm: float = 10.0


class MotorProtection:
    """
    Closed-loop stirrer overload protection.

    NORMAL -> PROTECTING -> RECOVERING -> NORMAL, keyed on torque.
    Holds no state of its own: everything lives in ProtectionState, so the
    same instance can serve any number of ticks (or kettles).
    """

    def __init__(self, cfg: ProtectionConfig | None = None):
        self.cfg = cfg or ProtectionConfig()

    def update(
        self,
        p: ProtectionState,
        commanded_rpm: float,
        effective_rpm: float,
        torque: float,
        scale: float = 1.0,
    ) -> Tuple[float, Optional[ProtectionEvent]]:
        """
        Inspect this tick's raw torque and return (effective_rpm, event).
        Mutates ``p``. The caller must recompute torque when the returned
        rpm differs from the one passed in.
        """
        cfg = self.cfg

        if p.mode == "NORMAL":
            if torque < cfg.overload:
                return commanded_rpm, None

            p.mode = "PROTECTING"
            p.active = True
            p.saved_rpm = commanded_rpm
            p.pending_rpm = None
            return max(cfg.min_rpm, commanded_rpm * cfg.initial_cut_factor), "activated"

        # PROTECTING / RECOVERING
        if torque >= cfg.sustain:
            p.mode = "PROTECTING"
            return max(cfg.min_rpm, effective_rpm - cfg.ramp_down * scale), None

        if torque >= cfg.clear:
            # dead band: hold speed
            return effective_rpm, None

        p.mode = "RECOVERING"
        rpm = min(p.saved_rpm, effective_rpm + cfg.ramp_up * scale)
        if rpm < p.saved_rpm:
            return rpm, None

        return self.release(p, commanded_rpm), "deactivated"

    def release(self, p: ProtectionState, commanded_rpm: float) -> float:
        """Leave protection; returns the rpm to apply (latched command wins)."""
        rpm = p.pending_rpm if p.pending_rpm is not None else commanded_rpm
        p.mode = "NORMAL"
        p.active = False
        p.saved_rpm = rpm
        p.pending_rpm = None
        return rpm
