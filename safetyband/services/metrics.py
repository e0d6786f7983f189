import math
from dataclasses import dataclass
from typing import Iterable

from safetyband.services.normalizer import NormalizedSample


@dataclass(frozen=True)
class DerivedMetrics:
    total_acceleration: float  # g
    total_rotation: float  # deg/s


def magnitude(vec: Iterable[float]) -> float:
    return math.sqrt(sum(x * x for x in vec))


def compute_derived_metrics(sample: NormalizedSample) -> DerivedMetrics:
    return DerivedMetrics(
        total_acceleration=magnitude(sample.accelerometer.as_tuple()),
        total_rotation=magnitude(sample.gyroscope.as_tuple()),
    )
