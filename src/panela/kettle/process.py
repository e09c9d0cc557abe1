# kettle/process.py
"""
Physical model of the kettle.

Stateless step functions: each one takes current values and returns the
candidate next value. Nothing here touches ProcessState; the controller
decides what gets committed.

All gains are tuned per reference tick (``reference_dt_s``). A step of
``dt`` seconds scales them by ``dt / reference_dt_s``, so at the reference
period the formulas are applied exactly as written.
"""
from __future__ import annotations

from dataclasses import dataclass

from .state import AMBIENT_C, Phase, clamp


@dataclass
class ProcessConfig:
    # =========================
    # Environment / limits
    # =========================
    ambient_c: float = AMBIENT_C
    max_brix: float = 85.0
    overshoot_c: float = 10.0            # temperature never exceeds setpoint + overshoot

    # =========================
    # Gains (per reference tick)
    # =========================
    reference_dt_s: float = 0.3
    heat_k: float = 0.3
    cool_k: float = 0.04
    brix_k: float = 0.6
    protected_heat_factor: float = 0.8   # less agitation while motor protection holds rpm down

    # =========================
    # Evaporation: clamp((T - start) / span, 0, max)
    # =========================
    evap_start_c: float = 80.0
    evap_span_c: float = 50.0
    evap_max: float = 2.0

    # =========================
    # Viscosity: clamp((brix - base) / span, 0, 1)
    # =========================
    visc_base_brix: float = 20.0
    visc_span_brix: float = 60.0

    # =========================
    # Torque = base + a*visc + b*rpm + c*visc*rpm (+ d*visc in POINT)
    # =========================
    torque_base: float = 5.0
    torque_visc: float = 50.0
    torque_rpm: float = 20.0
    torque_cross: float = 40.0
    torque_point_visc: float = 5.0


def time_scale(cfg: ProcessConfig, dt: float) -> float:
    if cfg.reference_dt_s <= 0:
        return 1.0
    return max(0.0, float(dt)) / cfg.reference_dt_s


def evaporation(cfg: ProcessConfig, temperature: float) -> float:
    return clamp((temperature - cfg.evap_start_c) / cfg.evap_span_c, 0.0, cfg.evap_max)


def viscosity(cfg: ProcessConfig, brix: float) -> float:
    return clamp((brix - cfg.visc_base_brix) / cfg.visc_span_brix, 0.0, 1.0)


def step_temperature(
    cfg: ProcessConfig,
    temperature: float,
    setpoint: float,
    protected: bool = False,
    scale: float = 1.0,
) -> float:
    heat = cfg.heat_k * (cfg.protected_heat_factor if protected else 1.0)
    k_heat = clamp(heat * scale, 0.0, 1.0)
    k_cool = clamp(cfg.cool_k * scale, 0.0, 1.0)

    toward = temperature + k_heat * (setpoint - temperature)
    cooled = toward - k_cool * (temperature - cfg.ambient_c)
    # setpoint may sit below ambient in manual mode; ambient floor wins
    hi = max(cfg.ambient_c, setpoint + cfg.overshoot_c)
    return clamp(cooled, cfg.ambient_c, hi)


def step_brix(
    cfg: ProcessConfig,
    brix: float,
    temperature: float,
    phase_factor: float,
    scale: float = 1.0,
) -> float:
    """``temperature`` is the already stepped value of this tick."""
    evap = evaporation(cfg, temperature)
    return clamp(brix + cfg.brix_k * scale * evap * phase_factor, 0.0, cfg.max_brix)


def compute_torque(cfg: ProcessConfig, brix: float, effective_rpm: float, phase: Phase) -> float:
    """
    Stirrer torque (% rated) for a given concentration and applied speed.

    Evaluated twice per tick by the controller: once with the speed the
    tick started with, and again after motor protection has changed
    ``effective_rpm``, so the committed torque matches the applied speed.
    """
    visc = viscosity(cfg, brix)
    rpm_factor = effective_rpm / 100.0

    torque = (
        cfg.torque_base
        + cfg.torque_visc * visc
        + cfg.torque_rpm * rpm_factor
        + cfg.torque_cross * visc * rpm_factor
    )
    if phase == "POINT":
        torque += cfg.torque_point_visc * visc
    return clamp(torque, 0.0, 100.0)


def compute_efficiency(temperature: float, setpoint: float, torque: float) -> float:
    temp_eff = 100.0 - 0.5 * abs(temperature - setpoint)
    torque_eff = 100.0 - 2.0 * max(0.0, torque - 80.0)
    return clamp((temp_eff + torque_eff) / 2.0, 0.0, 100.0)
