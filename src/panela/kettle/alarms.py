# kettle/alarms.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Iterator, List, Literal, Tuple


Severity = Literal["info", "warning", "error"]


@dataclass
class Alarm:
    id: int
    message: str
    severity: Severity
    timestamp: datetime


@dataclass
class AlarmLog:
    """
    Bounded alarm log, oldest evicted first.
    Ids keep increasing while the log lives; reset builds a new log.
    """

    capacity: int = 5
    entries: Deque[Alarm] = field(default_factory=deque)
    next_id: int = 1

    def __post_init__(self) -> None:
        self.capacity = max(1, int(self.capacity))
        self.entries = deque(self.entries, maxlen=self.capacity)

    def push(self, message: str, severity: Severity, timestamp: datetime) -> Alarm:
        alarm = Alarm(id=self.next_id, message=message, severity=severity, timestamp=timestamp)
        self.next_id += 1
        self.entries.append(alarm)
        return alarm

    def latest(self) -> Alarm | None:
        return self.entries[-1] if self.entries else None

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Alarm]:
        return iter(self.entries)


@dataclass
class AlarmConfig:
    capacity: int = 5
    temp_margin_c: float = 5.0       # warning above setpoint + margin
    torque_warning: float = 85.0
    torque_critical: float = 95.0


class AlarmMonitor:
    """
    Threshold alarms, edge-triggered:
    a condition fires on the tick it becomes true, not while it holds.
    """

    def __init__(self, cfg: AlarmConfig | None = None):
        self.cfg = cfg or AlarmConfig()

    def evaluate(
        self,
        *,
        temperature_prev: float,
        setpoint_prev: float,
        temperature: float,
        setpoint: float,
        torque_prev: float,
        torque: float,
        protection_active: bool,
    ) -> List[Tuple[str, Severity]]:
        cfg = self.cfg
        out: List[Tuple[str, Severity]] = []

        # the limit moves with the setpoint, so compare each side against its own tick
        was_over = temperature_prev > setpoint_prev + cfg.temp_margin_c
        if temperature > setpoint + cfg.temp_margin_c and not was_over:
            out.append((f"Temperature exceeding limit: {temperature:.1f}°C", "warning"))

        if torque >= cfg.torque_warning and torque_prev < cfg.torque_warning and not protection_active:
            out.append((f"High motor torque: {torque:.0f}%", "warning"))

        if torque >= cfg.torque_critical and torque_prev < cfg.torque_critical:
            out.append((f"Critical motor overload: {torque:.0f}%", "error"))

        return out
