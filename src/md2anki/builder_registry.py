"""Builder registry mapping card syntax names to builder factories."""

import logging
from typing import Callable, Dict, List, Optional

from .builders import BaseBuilder, ClozeBuilder, InlineBuilder, SpacedBuilder, TagBuilder
from .config import BuilderName, Config
from .media import AudioPolicy
from .normalize import Normalizer

logger = logging.getLogger(__name__)

BuilderFactory = Callable[..., BaseBuilder]


class BuilderRegistry:
    """Registry for mapping builder names to builder factories."""

    def __init__(self):
        self._builders: Dict[str, BuilderFactory] = {}
        self._register_default_builders()

    def register_builder(self, name: str, factory: BuilderFactory) -> None:
        """
        Register a builder factory.

        Args:
            name: Builder name
            factory: Callable taking ``(config, normalizer=None, audio_policy=None)``
                and returning a BaseBuilder
        """
        self._builders[name] = factory
        logger.debug(f"Registered builder: {name}")

    def create_builder(
        self,
        name: str,
        config: Config,
        normalizer: Optional[Normalizer] = None,
        audio_policy: Optional[AudioPolicy] = None,
    ) -> Optional[BaseBuilder]:
        """
        Create a builder instance.

        Returns:
            BaseBuilder instance or None if the name is not registered
        """
        factory = self._builders.get(name)
        if not factory:
            logger.error(f"Builder '{name}' not found in registry")
            return None
        return factory(config, normalizer=normalizer, audio_policy=audio_policy)

    def list_builders(self) -> List[str]:
        """List all registered builder names."""
        return list(self._builders.keys())

    def _register_default_builders(self) -> None:
        self.register_builder(BuilderName.TAG.value, TagBuilder)
        self.register_builder(BuilderName.INLINE.value, InlineBuilder)
        self.register_builder(BuilderName.SPACED.value, SpacedBuilder)
        self.register_builder(BuilderName.CLOZE.value, ClozeBuilder)


# Global registry instance
_global_registry = BuilderRegistry()


def get_builder_registry() -> BuilderRegistry:
    """Get the global builder registry instance."""
    return _global_registry


def register_builder(name: str, factory: BuilderFactory) -> None:
    """Register a builder factory on the global registry."""
    _global_registry.register_builder(name, factory)


def create_builder(name: str, config: Config, **kwargs) -> Optional[BaseBuilder]:
    """Convenience function to create a builder."""
    return _global_registry.create_builder(name, config, **kwargs)


def list_available_builders() -> List[str]:
    """List all available builders."""
    return _global_registry.list_builders()
