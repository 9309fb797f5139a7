"""build-small: turn an issue description into a validated change proposal."""

from .config import AgentSettings
from .errors import (
    ApplyError,
    ConfigurationError,
    EnvironmentSetupError,
    ParseError,
    PipelineError,
    TransportError,
)
from .pipeline import Pipeline, PipelineResult, run_pipeline

__all__ = [
    "AgentSettings",
    "ApplyError",
    "ConfigurationError",
    "EnvironmentSetupError",
    "ParseError",
    "Pipeline",
    "PipelineResult",
    "PipelineError",
    "TransportError",
    "run_pipeline",
]

__version__ = "0.1.0"
