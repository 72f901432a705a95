"""Tool adapters and the registry that dispatches to them."""

from typing import Optional

from ..config import Config
from .base import ToolAdapter
from .health import HealthAdapter
from .registry import AdapterRegistry, ToolStats
from .validation import validate_arguments

__all__ = [
    "AdapterRegistry",
    "HealthAdapter",
    "ToolAdapter",
    "ToolStats",
    "get_builtin_adapters",
    "validate_arguments",
]


def get_builtin_adapters(config: Optional[Config] = None) -> list[ToolAdapter]:
    """Create the adapters shipped with the server package."""
    if config is None:
        return [HealthAdapter()]
    return [
        HealthAdapter(
            repository_path=config.repository_path,
            vector_store_path=config.vector_store_path,
        ),
    ]
