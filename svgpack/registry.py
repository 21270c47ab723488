"""Per-configuration component registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import metadata as importlib_metadata
from typing import Callable, Dict, Iterable, List, Sequence, Set

from .assets import AssetEmbedder
from .bundler import CodeBundler
from .collector import SourceCollector
from .config import BuildConfiguration
from .logging import get_logger
from .metadata import MetadataGenerator
from .stores import BuildCache
from .validators import FeatureValidator, SizeValidator, StructureValidator, Validator

_ENTRY_POINT_GROUP = "svgpack.validators"

_BUILTIN_VALIDATORS: Dict[str, Callable[[], Validator]] = {
    "structure": StructureValidator,
    "features": FeatureValidator,
    "size": SizeValidator,
}

logger = get_logger("registry")


def discover_validators(enabled: Sequence[str] | None = None) -> List[Validator]:
    """Return instantiated validators, honoring optional enabled names."""
    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    validators: List[Validator] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Validator]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not callable(getattr(instance, "validate", None)):
            raise TypeError(f"Validator factory for '{name}' did not return a validator")
        validators.append(instance)
        seen.add(key)

    for name, factory in _BUILTIN_VALIDATORS.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - plugin import failure
            raise RuntimeError(f"Failed to load validator entry point '{entry.name}': {exc}") from exc
        _add(entry.name, loaded)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set - seen))
        if missing:
            raise ValueError(f"Unknown validators requested: {missing}")

    return validators


def _iter_entry_points() -> Iterable[importlib_metadata.EntryPoint]:
    return importlib_metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


@dataclass
class ComponentRegistry:
    """The pipeline components owned by one build configuration.

    A registry is built for a single configuration and never shared: two
    output targets get two registries, each with its own cache.
    """

    config: BuildConfiguration
    cache: BuildCache
    collector: SourceCollector
    bundler: CodeBundler
    embedder: AssetEmbedder
    metadata: MetadataGenerator
    validators: List[Validator] = field(default_factory=list)

    @classmethod
    def for_config(
        cls, config: BuildConfiguration, *, cache: BuildCache | None = None
    ) -> "ComponentRegistry":
        cache = cache if cache is not None else BuildCache(config.cache_path)
        templates_dir = config.template_path.parent if config.template_path else None
        registry = cls(
            config=config,
            cache=cache,
            collector=SourceCollector(),
            bundler=CodeBundler(cache),
            embedder=AssetEmbedder(cache),
            metadata=MetadataGenerator(templates_dir),
            validators=discover_validators(),
        )
        logger.debug(
            "Registry for %s with validators: %s",
            config.output_path,
            ", ".join(validator.name for validator in registry.validators),
        )
        return registry

    def register_validator(self, validator: Validator) -> None:
        names = {existing.name for existing in self.validators}
        if validator.name in names:
            raise ValueError(f"Validator '{validator.name}' is already registered")
        self.validators.append(validator)


__all__ = ["ComponentRegistry", "discover_validators"]
