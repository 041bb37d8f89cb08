"""
Plugin registry - routes query text to the provider that should answer it.
"""
from typing import Dict, List, Optional, Tuple

from jogger.plugins.base import Plugin


class PluginRegistry:
    """Ordered collection of providers with one default."""

    def __init__(self):
        self._plugins: Dict[str, Plugin] = {}
        self._default: Optional[str] = None

    def register(self, plugin: Plugin, default: bool = False) -> None:
        self._plugins[plugin.name] = plugin
        if default or self._default is None:
            self._default = plugin.name

    def get(self, name: str) -> Optional[Plugin]:
        return self._plugins.get(name)

    def list_plugins(self) -> List[Plugin]:
        return list(self._plugins.values())

    def route(self, text: str) -> Tuple[Optional[Plugin], str]:
        """
        Pick the provider for ``text``.

        The provider whose prefix starts the text wins (longest prefix
        first) and receives the text without it; otherwise the default
        provider gets the text unchanged.
        """
        prefixed = [p for p in self._plugins.values() if p.prefix()]
        for plugin in sorted(prefixed, key=lambda p: len(p.prefix()), reverse=True):
            prefix = plugin.prefix()
            if text.startswith(prefix):
                return plugin, text[len(prefix):].lstrip()
        default = self._plugins.get(self._default) if self._default else None
        return default, text


def build_default_registry(database=None) -> PluginRegistry:
    """Registry with the applications provider as the default."""
    from jogger.plugins.applications import ApplicationsPlugin

    registry = PluginRegistry()
    registry.register(ApplicationsPlugin(database), default=True)
    return registry
