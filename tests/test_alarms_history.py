from datetime import datetime, timezone

import pytest

from panela.kettle.alarms import AlarmLog, AlarmMonitor
from panela.kettle.history import COLUMNS, HistoryBuffer, HistorySample

TS = datetime(2024, 1, 1, tzinfo=timezone.utc)


def sample(i):
    return HistorySample(timestamp=TS, temperature=25.0 + i, torque=10.0, brix=20.0, setpoint=95.0)


class TestAlarmLog:
    def test_keeps_last_five(self):
        log = AlarmLog()
        for i in range(8):
            log.push(f"a{i}", "info", TS)
        assert len(log) == 5
        assert [a.message for a in log] == ["a3", "a4", "a5", "a6", "a7"]

    def test_ids_increase(self):
        log = AlarmLog(capacity=3)
        ids = [log.push("x", "warning", TS).id for _ in range(6)]
        assert ids == [1, 2, 3, 4, 5, 6]
        assert [a.id for a in log] == [4, 5, 6]
        assert log.latest().id == 6


class TestAlarmMonitor:
    def evaluate(self, **kw):
        base = dict(
            temperature_prev=90.0,
            setpoint_prev=95.0,
            temperature=91.0,
            setpoint=95.0,
            torque_prev=50.0,
            torque=50.0,
            protection_active=False,
        )
        base.update(kw)
        return AlarmMonitor().evaluate(**base)

    def test_quiet(self):
        assert self.evaluate() == []

    def test_over_temperature_edge(self):
        out = self.evaluate(temperature_prev=99.0, temperature=70.0, setpoint=60.0)
        assert out == [("Temperature exceeding limit: 70.0°C", "warning")]

    def test_over_temperature_not_repeated(self):
        assert self.evaluate(temperature_prev=70.0, setpoint_prev=60.0, temperature=68.0, setpoint=60.0) == []

    def test_torque_warning_edge(self):
        out = self.evaluate(torque_prev=84.0, torque=86.0)
        assert [s for _, s in out] == ["warning"]
        assert self.evaluate(torque_prev=86.0, torque=87.0) == []

    def test_torque_warning_suppressed_by_protection(self):
        assert self.evaluate(torque_prev=84.0, torque=86.0, protection_active=True) == []

    def test_torque_critical_regardless_of_protection(self):
        out = self.evaluate(torque_prev=90.0, torque=96.0, protection_active=True)
        assert out == [("Critical motor overload: 96%", "error")]


class TestHistoryBuffer:
    @pytest.mark.parametrize("requested,actual", [(10, 100), (110, 110), (500, 120)])
    def test_capacity_bounds(self, requested, actual):
        assert HistoryBuffer(capacity=requested).capacity == actual

    def test_fifo_eviction(self):
        buf = HistoryBuffer(capacity=100)
        for i in range(130):
            buf.append(sample(i))
        assert len(buf) == 100
        temps = [s.temperature for s in buf]
        assert temps[0] == 25.0 + 30
        assert temps[-1] == 25.0 + 129

    def test_frame(self):
        buf = HistoryBuffer()
        assert list(buf.to_frame().columns) == COLUMNS
        assert buf.to_frame().empty

        buf.append(sample(1))
        buf.append(sample(2))
        df = buf.to_frame()
        assert list(df.columns) == COLUMNS
        assert df["temperature"].tolist() == [26.0, 27.0]
