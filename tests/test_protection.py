import pytest

from panela.kettle.protection import MotorProtection, ProtectionConfig
from panela.kettle.state import ProtectionState


@pytest.fixture
def mp():
    return MotorProtection()


def protecting(saved=100.0, mode="PROTECTING"):
    return ProtectionState(mode=mode, active=True, saved_rpm=saved)


def test_normal_passes_commanded_speed(mp):
    p = ProtectionState()
    rpm, event = mp.update(p, commanded_rpm=60.0, effective_rpm=60.0, torque=89.9)
    assert (rpm, event) == (60.0, None)
    assert p.mode == "NORMAL" and not p.active


def test_overload_cuts_speed(mp):
    p = ProtectionState()
    rpm, event = mp.update(p, commanded_rpm=100.0, effective_rpm=100.0, torque=90.0)
    assert event == "activated"
    assert rpm == pytest.approx(70.0)
    assert p.active and p.mode == "PROTECTING"
    assert p.saved_rpm == 100.0


def test_initial_cut_respects_min_rpm(mp):
    p = ProtectionState()
    rpm, _ = mp.update(p, commanded_rpm=12.0, effective_rpm=12.0, torque=95.0)
    assert rpm == pytest.approx(10.0)


def test_sustained_load_ramps_down(mp):
    p = protecting()
    rpm, event = mp.update(p, 100.0, 70.0, torque=88.0)
    assert rpm == pytest.approx(68.0)
    assert event is None


def test_ramp_down_floor(mp):
    p = protecting()
    rpm, _ = mp.update(p, 100.0, 11.0, torque=99.0)
    assert rpm == pytest.approx(10.0)


def test_dead_band_holds_speed(mp):
    p = protecting()
    rpm, event = mp.update(p, 100.0, 70.0, torque=80.0)
    assert rpm == 70.0
    assert event is None
    assert p.mode == "PROTECTING"


def test_clear_starts_recovery(mp):
    p = protecting()
    rpm, event = mp.update(p, 100.0, 70.0, torque=70.0)
    assert rpm == pytest.approx(75.0)
    assert event is None
    assert p.mode == "RECOVERING" and p.active


def test_recovery_relapse(mp):
    p = protecting(mode="RECOVERING")
    rpm, _ = mp.update(p, 100.0, 80.0, torque=86.0)
    assert rpm == pytest.approx(78.0)
    assert p.mode == "PROTECTING"


def test_recovery_completes_at_saved_speed(mp):
    p = protecting(mode="RECOVERING")
    rpm, event = mp.update(p, 100.0, 97.0, torque=60.0)
    assert event == "deactivated"
    assert rpm == 100.0
    assert p.mode == "NORMAL" and not p.active


def test_latched_command_applied_on_release(mp):
    p = protecting(mode="RECOVERING")
    p.pending_rpm = 50.0
    rpm, event = mp.update(p, 100.0, 98.0, torque=40.0)
    assert event == "deactivated"
    assert rpm == 50.0
    assert p.pending_rpm is None
    assert p.saved_rpm == 50.0


def test_ramp_scales_with_dt():
    mp = MotorProtection(ProtectionConfig(ramp_up=5.0))
    p = protecting()
    rpm, _ = mp.update(p, 100.0, 70.0, torque=50.0, scale=0.5)
    assert rpm == pytest.approx(72.5)
