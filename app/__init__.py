"""Action Varied Stremio add-on application package."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "1.0.0"
__all__ = ["app", "create_app"]


def __getattr__(name: str) -> Any:
    # Defer importing the FastAPI app so ``app.config`` and friends load cheaply.
    if name in __all__:
        return getattr(import_module("app.main"), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
