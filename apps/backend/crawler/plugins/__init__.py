"""
Job board plugin system for Klaro ingestion.

Plugins provide board-specific knowledge:
- Results page URLs and pagination
- Listing extraction from page HTML
- Aggregator domains and apply-redirect endpoints
"""

from .base import ExtractionPlugin, ScrapedListing, SourceName, clean_text
from .registry import PluginRegistry, UnknownSourceError, get_plugin_registry

__all__ = [
    'ExtractionPlugin',
    'ScrapedListing',
    'SourceName',
    'clean_text',
    'PluginRegistry',
    'UnknownSourceError',
    'get_plugin_registry'
]
