"""Binary asset embedding."""

from .embedder import ASSET_MAP_VARIABLE, AssetEmbedder, EmbedResult, make_data_uri, render_asset_map
from .mime import DEFAULT_MIME_TYPE, MIME_TYPES
from .svg import optimize_svg

__all__ = [
    "ASSET_MAP_VARIABLE",
    "AssetEmbedder",
    "DEFAULT_MIME_TYPE",
    "EmbedResult",
    "MIME_TYPES",
    "make_data_uri",
    "optimize_svg",
    "render_asset_map",
]
