import pytest

from panela.kettle.readout import evaporation_pct, format_elapsed, status, temperature_delta, viscosity_pct
from panela.kettle.state import ProcessState


@pytest.mark.parametrize(
    "seconds,text",
    [(0, "00:00:00"), (59, "00:00:59"), (61, "00:01:01"), (3725, "01:02:05"), (-4, "00:00:00")],
)
def test_format_elapsed(seconds, text):
    assert format_elapsed(seconds) == text


def test_derived_percentages():
    s = ProcessState(temperature=105.0, setpoint=115.0, brix=50.0)
    assert temperature_delta(s) == pytest.approx(-10.0)
    assert evaporation_pct(s) == pytest.approx(50.0)
    assert viscosity_pct(s) == pytest.approx(50.0)


def test_status_precedence():
    assert status(ProcessState(running=True)) == "OK"
    assert status(ProcessState(running=False)) == "STOPPED"
    assert status(ProcessState(running=True, temperature=101.0, setpoint=95.0)) == "OVERTEMP"
    assert status(ProcessState(running=False, torque=92.0, temperature=101.0, setpoint=95.0)) == "CRITICAL"
