"""Package a web app into one self-contained SVG document."""

from .config import BuildConfiguration, default_config, load_config
from .errors import CompositionError
from .models import BuildResult, ValidationIssue
from .pipeline import Pipeline

__version__ = "0.1.0"

__all__ = [
    "BuildConfiguration",
    "BuildResult",
    "CompositionError",
    "Pipeline",
    "ValidationIssue",
    "default_config",
    "load_config",
]
