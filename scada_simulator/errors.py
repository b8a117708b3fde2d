"""Error kinds raised by the simulator. All of them end the run."""


class SimulatorError(Exception):
    """Base class for simulator failures."""


class ConfigurationError(SimulatorError):
    """Missing or invalid connection descriptor, settings file or provider."""


class ValidationError(SimulatorError):
    """Malformed run parameters (interval, dates, bounds, batch size)."""


class SchemaError(SimulatorError):
    """Target table missing, without columns, or not following the _<measure>_Q convention."""


class ExecutionError(SimulatorError):
    """Failure while talking to the database (cleanup, insert, connectivity)."""
