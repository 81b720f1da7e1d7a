"""
Plugin registry for job board plugins.
"""
import logging
from typing import Dict, Iterable, List, Optional, Union
from .base import ExtractionPlugin, ScrapedListing, SourceName

logger = logging.getLogger(__name__)

# Global registry instance
_registry: Optional['PluginRegistry'] = None


class UnknownSourceError(ValueError):
    """Raised when a source name has no registered plugin."""


class PluginRegistry:
    """Registry of job board plugins, keyed by source name"""

    def __init__(self):
        self._plugins: Dict[SourceName, ExtractionPlugin] = {}

    def register(self, plugin: ExtractionPlugin):
        """Register a plugin"""
        if plugin.source in self._plugins:
            logger.warning(f"Plugin {plugin.name} already registered, replacing")

        self._plugins[plugin.source] = plugin
        logger.info(f"Registered plugin: {plugin.name} (browser={plugin.requires_browser})")

    def get_plugin(self, source: Union[SourceName, str]) -> ExtractionPlugin:
        """Get plugin by source name; raises UnknownSourceError if missing"""
        try:
            return self._plugins[SourceName(source)]
        except (ValueError, KeyError):
            raise UnknownSourceError(f"Unknown source: {source}")

    def resolve_sources(self, names: Optional[Iterable[str]] = None) -> List[SourceName]:
        """
        Validate requested source names.

        Args:
            names: Requested names, or None for every registered source

        Returns:
            Source names in registration order, without repeats
        """
        if not names:
            return list(self._plugins.keys())

        resolved = []
        for name in names:
            source = self.get_plugin(name).source
            if source not in resolved:
                resolved.append(source)
        return resolved

    def extract(self, source: Union[SourceName, str], html: str) -> List[ScrapedListing]:
        """Extract listings from a page of the given source"""
        plugin = self.get_plugin(source)
        listings = plugin.extract(html)
        logger.debug(f"Plugin {plugin.name} extracted {len(listings)} listings")
        return listings

    def list_plugins(self) -> List[Dict]:
        """List all registered plugins"""
        return [
            {
                'source': plugin.source.value,
                'name': plugin.name,
                'base_url': plugin.base_url,
                'requires_browser': plugin.requires_browser,
                'class': plugin.__class__.__name__
            }
            for plugin in self._plugins.values()
        ]


def get_plugin_registry() -> PluginRegistry:
    """Get or create the global plugin registry"""
    global _registry
    if _registry is None:
        _registry = PluginRegistry()
        _register_builtin_plugins(_registry)
    return _registry


def _register_builtin_plugins(registry: PluginRegistry):
    """Register all built-in plugins"""
    from .stellenmarkt import StellenmarktPlugin
    from .aerzteblatt import AerzteblattPlugin
    from .praktischarzt import PraktischArztPlugin
    from .xing import XingPlugin
    from .stepstone import StepStonePlugin

    for plugin_cls in (StellenmarktPlugin, AerzteblattPlugin, PraktischArztPlugin, XingPlugin, StepStonePlugin):
        registry.register(plugin_cls())
