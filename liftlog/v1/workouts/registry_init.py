"""
Extractor registry initialization.

Registers the available extractor factories and builds the one selected
by settings.
"""

from liftlog.config.settings import Settings
from liftlog.v1.core.registries import Extractor, ExtractorRegistry, extractor_registry
from liftlog.v1.workouts.extractor import LLMExtractor, RulesExtractor, WitExtractor


def init_extractor_registry(registry: ExtractorRegistry = extractor_registry) -> None:
    """Register extractor factories (idempotent, no-op once frozen)."""
    if registry.is_frozen():
        return
    if "rules" not in registry.list():
        registry.register("rules", lambda settings: RulesExtractor())
    if "wit" not in registry.list():
        registry.register("wit", WitExtractor.from_settings)
    if "llm" not in registry.list():
        registry.register("llm", LLMExtractor.from_settings)


def build_extractor(settings: Settings) -> Extractor:
    """Build the extractor configured by EXTRACTOR."""
    init_extractor_registry()
    try:
        factory = extractor_registry.get(settings.extractor.value)
    except KeyError as e:
        available = extractor_registry.list()
        raise RuntimeError(
            f"Configured extractor '{settings.extractor.value}' not available. "
            f"Available extractors: {available}"
        ) from e
    return factory(settings)
