import pytest

from panela.kettle.phases import (
    PhaseConfig,
    PhaseSequencer,
    PhaseThresholds,
    default_phases,
    phase_index,
    phase_progress,
)
from panela.kettle.state import PHASE_ORDER


@pytest.fixture
def seq():
    return PhaseSequencer()


def test_phase_table():
    table = default_phases()
    assert list(table) == list(PHASE_ORDER)
    assert [table[p].setpoint for p in PHASE_ORDER] == [95.0, 115.0, 118.0, 60.0]
    assert table["CONCENTRATION"].brix_range == (35.0, 75.0)
    assert table["POINT"].label == "Point"


@pytest.mark.parametrize(
    "temperature,brix,expected",
    [
        (84.9, 25.9, None),
        (85.0, 20.0, "CONCENTRATION"),
        (30.0, 26.0, "CONCENTRATION"),
    ],
)
def test_clarification_exit(seq, temperature, brix, expected):
    assert seq.next_phase("CLARIFICATION", temperature, brix, torque=10.0) == expected


def test_concentration_exit_on_brix_or_torque(seq):
    assert seq.next_phase("CONCENTRATION", 105.0, 54.9, 69.9) is None
    assert seq.next_phase("CONCENTRATION", 105.0, 55.0, 40.0) == "POINT"
    assert seq.next_phase("CONCENTRATION", 105.0, 40.0, 70.0) == "POINT"


def test_point_exit(seq):
    assert seq.next_phase("POINT", 108.0, 74.9, 99.0) is None
    assert seq.next_phase("POINT", 108.0, 75.0, 50.0) == "FINISHED"


def test_one_step_at_a_time(seq):
    # values satisfying every later predicate still move only one phase
    assert seq.next_phase("CLARIFICATION", 120.0, 85.0, 100.0) == "CONCENTRATION"


def test_finished_is_terminal(seq):
    assert seq.next_phase("FINISHED", 120.0, 85.0, 100.0) is None


def test_thresholds_are_configurable():
    seq = PhaseSequencer(PhaseConfig(thresholds=PhaseThresholds(point_brix=80.0)))
    assert seq.next_phase("POINT", 108.0, 79.0, 50.0) is None
    assert seq.next_phase("POINT", 108.0, 80.0, 50.0) == "FINISHED"


def test_progress():
    assert phase_index("POINT") == 2
    assert phase_progress("CLARIFICATION") == (0, 4)
    assert phase_progress("POINT") == (2, 4)
    assert phase_progress("FINISHED") == (4, 4)
