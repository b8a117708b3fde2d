"""
Per-measure synthetic waveform generator.

Every measure gets its own oscillator (base level, phase, period, amplitude)
drawn once at the start of a run. Each step advances the phase by the elapsed
fraction of the period, adds uniform noise, clamps to the configured bounds
and draws a quality code that is GOOD about 90% of the time.
"""

import math
import random
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .errors import ValidationError

QUALITY_GOOD = 192
QUALITY_BAD = 0
GOOD_QUALITY_PROBABILITY = 0.9

PERIOD_MINUTES_RANGE = (60, 359)
AMPLITUDE_FRACTION_RANGE = (0.25, 0.65)

TWO_PI = 2.0 * math.pi


@dataclass(frozen=True)
class GeneratorBounds:
    """Value bounds and noise amplitude shared by all measures of a run."""

    min_value: float = 40.0
    max_value: float = 95.0
    noise_amplitude: float = 0.5

    def validate(self) -> None:
        for name in ("min_value", "max_value", "noise_amplitude"):
            if not math.isfinite(getattr(self, name)):
                raise ValidationError(f"{name} must be a finite number")
        if self.min_value > self.max_value:
            raise ValidationError(
                f"Value lower bound ({self.min_value}) is greater than upper bound ({self.max_value})"
            )
        if self.noise_amplitude < 0:
            raise ValidationError(f"Noise amplitude must be >= 0, got {self.noise_amplitude}")

    @property
    def span(self) -> float:
        return self.max_value - self.min_value


@dataclass
class MeasureState:
    """Oscillator state of one measure. Only ``phase`` changes during a run."""

    base: float
    phase: float
    period_minutes: int
    amplitude: float


class WaveformGenerator:
    """Produces bounded, noisy periodic values and quality codes.

    The random source is owned by the generator and never shared with module
    level state; pass a seeded ``random.Random`` to get repeatable output.
    """

    def __init__(self, bounds: GeneratorBounds, rng: Optional[random.Random] = None):
        bounds.validate()
        self.bounds = bounds
        self.rng = rng if rng is not None else random.Random()

    def initialize(self, measure: str) -> MeasureState:
        """Draw the fixed parameters and starting phase for ``measure``."""
        rng = self.rng
        low, high = AMPLITUDE_FRACTION_RANGE
        return MeasureState(
            base=self.bounds.min_value + rng.random() * self.bounds.span,
            phase=rng.random() * TWO_PI,
            period_minutes=rng.randint(*PERIOD_MINUTES_RANGE),
            amplitude=self.bounds.span * (low + rng.random() * (high - low)),
        )

    def initialize_all(self, measures: Iterable[str]) -> Dict[str, MeasureState]:
        return {m: self.initialize(m) for m in measures}

    def advance(self, state: MeasureState, interval_minutes: float) -> Tuple[float, int]:
        """Move ``state`` forward by ``interval_minutes`` and return (value, quality code)."""
        state.phase += TWO_PI * (interval_minutes / state.period_minutes)

        value = state.base + state.amplitude * math.sin(state.phase)
        value += (self.rng.random() - 0.5) * self.bounds.noise_amplitude
        value = min(max(value, self.bounds.min_value), self.bounds.max_value)

        quality = QUALITY_GOOD if self.rng.random() < GOOD_QUALITY_PROBABILITY else QUALITY_BAD
        return float(value), quality
