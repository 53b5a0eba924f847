from .config import Config, load_yaml
from .errors import (
    ConfigurationError,
    DimensionMismatch,
    InvalidIndex,
    NumericInstability,
    ScratchformerError,
    SerializationError,
    report_instability,
)
from .logging import configure_logging, get_logger
from .random import set_seed

__all__ = [
    "Config",
    "ConfigurationError",
    "DimensionMismatch",
    "InvalidIndex",
    "NumericInstability",
    "ScratchformerError",
    "SerializationError",
    "configure_logging",
    "get_logger",
    "load_yaml",
    "report_instability",
    "set_seed",
]
