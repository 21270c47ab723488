"""Configuration loading for svgpack (.svgpack.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

CONFIG_FILENAME = ".svgpack.yml"
STATE_DIRNAME = ".svgpack"

DEFAULT_SOURCE_DIR = "src"
DEFAULT_OUTPUT = "dist/app.svg"
DEFAULT_SIZE_CEILING = 10 * 1024 * 1024


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass(frozen=True)
class DevConfig:
    """Settings for the live-preview dev server."""

    host: str = "127.0.0.1"
    port: int = 8000
    debounce: float = 0.2
    poll_interval: float = 0.5
    channel_size: int = 256


@dataclass(frozen=True)
class BuildConfiguration:
    """Immutable settings for one build of one output target."""

    source_root: Path
    output_path: Path
    template_path: Optional[Path] = None
    minify: bool = False
    optimize: bool = True
    strict: bool = False
    size_ceiling: int = DEFAULT_SIZE_CEILING
    bundle_order: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    manifest: Mapping[str, Any] = field(default_factory=dict)
    cache_path: Optional[Path] = None
    dev: DevConfig = field(default_factory=DevConfig)

    def with_overrides(self, **changes: Any) -> "BuildConfiguration":
        """Return a copy with ``changes`` applied, skipping ``None`` values."""
        applied = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **applied) if applied else self


def default_config(root: Path) -> BuildConfiguration:
    """Return the configuration used when no .svgpack.yml exists."""
    root = root.expanduser().resolve()
    return _apply_env_overrides(
        BuildConfiguration(
            source_root=root / DEFAULT_SOURCE_DIR,
            output_path=root / DEFAULT_OUTPUT,
            cache_path=root / STATE_DIRNAME / "cache.json",
        )
    )


def load_config(config_path: Path) -> BuildConfiguration:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return default_config(root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    build_data = _as_dict(data.get("build"))
    source_root = _resolve_path(root, _as_str(data.get("source")) or DEFAULT_SOURCE_DIR)
    output_path = _resolve_path(root, _as_str(data.get("output")) or DEFAULT_OUTPUT)
    template = _as_str(data.get("template"))
    template_path = _resolve_path(root, template) if template else None

    size_ceiling = _as_int(build_data.get("size_ceiling"))
    if size_ceiling is None:
        size_ceiling = DEFAULT_SIZE_CEILING
    if size_ceiling <= 0:
        raise ConfigError("build.size_ceiling must be a positive number of bytes")

    cache_setting = build_data.get("cache")
    if cache_setting is False:
        cache_path = None
    elif isinstance(cache_setting, str):
        cache_path = _resolve_path(root, cache_setting)
    else:
        cache_path = root / STATE_DIRNAME / "cache.json"

    manifest_data = data.get("manifest")
    if manifest_data is not None and not isinstance(manifest_data, dict):
        raise ConfigError("manifest must be a mapping of manifest fields")

    dev_data = _as_dict(data.get("dev"))
    defaults = DevConfig()
    dev = DevConfig(
        host=_as_str(dev_data.get("host")) or defaults.host,
        port=_as_int(dev_data.get("port")) or defaults.port,
        debounce=_as_float(dev_data.get("debounce"), defaults.debounce),
        poll_interval=_as_float(dev_data.get("poll_interval"), defaults.poll_interval),
        channel_size=_as_int(dev_data.get("channel_size")) or defaults.channel_size,
    )

    config = BuildConfiguration(
        source_root=source_root,
        output_path=output_path,
        template_path=template_path,
        minify=_as_bool(build_data.get("minify"), False),
        optimize=_as_bool(build_data.get("optimize"), True),
        strict=_as_bool(build_data.get("strict"), False),
        size_ceiling=size_ceiling,
        bundle_order=tuple(_as_str_list(build_data.get("order"))),
        exclude=tuple(_as_str_list(data.get("exclude"))),
        manifest=dict(manifest_data or {}),
        cache_path=cache_path,
        dev=dev,
    )
    return _apply_env_overrides(config)


def _apply_env_overrides(config: BuildConfiguration) -> BuildConfiguration:
    strict_env = os.getenv("SVGPACK_STRICT")
    ceiling_env = os.getenv("SVGPACK_SIZE_CEILING")
    strict = _parse_env_bool(strict_env) if strict_env is not None else None
    ceiling = _as_int(ceiling_env) if ceiling_env is not None else None
    if ceiling is not None and ceiling <= 0:
        raise ConfigError("SVGPACK_SIZE_CEILING must be a positive number of bytes")
    return config.with_overrides(strict=strict, size_ceiling=ceiling)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _resolve_path(root: Path, value: str) -> Path:
    candidate = Path(value).expanduser()
    if not candidate.is_absolute():
        candidate = root / candidate
    return candidate.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _parse_env_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        parsed = _parse_env_bool(value)
        if parsed is not None:
            return parsed
    return default


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "BuildConfiguration",
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_SIZE_CEILING",
    "DevConfig",
    "STATE_DIRNAME",
    "default_config",
    "load_config",
]
