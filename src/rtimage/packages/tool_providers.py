"""In-process tool provider registry.

A tool provider is an object exposing a `name` and a
`run(out, err, *args) -> int` method that writes to the two given text
streams. Providers are found by name either from explicit registration or
from the "rtimage.tool_providers" entry-point group of installed
distributions, e.g.:

    [options.entry_points]
    rtimage.tool_providers =
        jlink = mypkg.linker:JLinkProvider
"""

import logging
from importlib.metadata import entry_points
from typing import Dict, Optional, Protocol, TextIO, Tuple, runtime_checkable

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "rtimage.tool_providers"


@runtime_checkable
class ToolProvider(Protocol):
    """Capability implemented by in-process linkers."""

    name: str

    def run(self, out: TextIO, err: TextIO, *args: str) -> int:
        ...


class ToolProviderRegistry:
    """Looks up tool providers by name."""

    def __init__(self, use_entry_points: bool = True):
        """Initialize registry.

        Args:
            use_entry_points: Also consult installed entry points
        """
        self.use_entry_points = use_entry_points
        self._providers: Dict[str, ToolProvider] = {}

    def register(self, provider: ToolProvider) -> None:
        """Register a provider under its own name."""
        if not isinstance(provider, ToolProvider):
            raise TypeError(f"{provider!r} does not implement the tool provider protocol")
        self._providers[provider.name] = provider

    def find_first(self, name: str) -> Optional[ToolProvider]:
        """Find the first provider registered for `name`.

        Explicit registrations win over entry points.
        """
        if name in self._providers:
            return self._providers[name]

        if not self.use_entry_points:
            return None

        for ep in self._entry_points():
            if ep.name != name:
                continue
            try:
                loaded = ep.load()
            except (ImportError, AttributeError) as e:
                logger.warning(f"Unable to load tool provider {ep.value}: {e}")
                continue
            provider = loaded() if isinstance(loaded, type) else loaded
            if isinstance(provider, ToolProvider):
                return provider
            logger.warning(f"Entry point {ep.value} is not a tool provider")

        return None

    @staticmethod
    def _entry_points() -> Tuple:
        return tuple(entry_points(group=ENTRY_POINT_GROUP))
