# kettle/history.py
from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Deque, Iterator

import pandas as pd


HISTORY_MIN = 100
HISTORY_MAX = 120

COLUMNS = ["timestamp", "temperature", "torque", "brix", "setpoint"]


@dataclass
class HistorySample:
    timestamp: datetime
    temperature: float
    torque: float
    brix: float
    setpoint: float


@dataclass
class HistoryBuffer:
    """Ring buffer of sampled state for charts (FIFO, fixed capacity)."""

    capacity: int = HISTORY_MAX
    samples: Deque[HistorySample] = field(default_factory=deque)

    def __post_init__(self) -> None:
        self.capacity = max(HISTORY_MIN, min(HISTORY_MAX, int(self.capacity)))
        self.samples = deque(self.samples, maxlen=self.capacity)

    def append(self, sample: HistorySample) -> None:
        self.samples.append(sample)

    def clear(self) -> None:
        self.samples.clear()

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[HistorySample]:
        return iter(self.samples)

    def to_frame(self) -> pd.DataFrame:
        if not self.samples:
            return pd.DataFrame(columns=COLUMNS)
        return pd.DataFrame([asdict(s) for s in self.samples], columns=COLUMNS)
