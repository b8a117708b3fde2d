"""Synthetic SCADA data-logger time series for existing database tables."""

from .databases import DialectAdapter, get_adapter, supported_providers
from .driver import SimulationParameters, SimulationResult, TimeSeriesSimulator
from .errors import ConfigurationError, ExecutionError, SchemaError, SimulatorError, ValidationError
from .waveform import GeneratorBounds, MeasureState, WaveformGenerator

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DialectAdapter",
    "ExecutionError",
    "GeneratorBounds",
    "MeasureState",
    "SchemaError",
    "SimulationParameters",
    "SimulationResult",
    "SimulatorError",
    "TimeSeriesSimulator",
    "ValidationError",
    "WaveformGenerator",
    "get_adapter",
    "supported_providers",
]
