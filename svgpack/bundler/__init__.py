"""Logic and style bundling."""

from .core import BundleOutput, CodeBundler
from .minify import minify_css, minify_js
from .shim import CAPABILITIES, CAPABILITY_SHIM, declared_capabilities

__all__ = [
    "BundleOutput",
    "CAPABILITIES",
    "CAPABILITY_SHIM",
    "CodeBundler",
    "declared_capabilities",
    "minify_css",
    "minify_js",
]
