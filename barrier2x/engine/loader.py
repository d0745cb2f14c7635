"""Protocol engine factory loading."""

from __future__ import annotations

import importlib
import logging

from barrier2x.engine.host import EngineFactory

logger = logging.getLogger(__name__)


def engineFactory_load(path: str) -> EngineFactory:
    """
    Import a protocol engine factory from a ``module:attribute`` path.

    Args:
        path:
            Dotted module path and attribute name, e.g.
            ``"ubarrier.engine:engine_create"``.

    Returns:
        The factory callable.

    Raises:
        ValueError:
            Raised when the path is malformed or the attribute is not callable.
        ImportError:
            Raised when the module cannot be imported.
        AttributeError:
            Raised when the module has no such attribute.
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Engine path must be in format module:attribute, got {path!r}")

    module = importlib.import_module(module_name)
    factory = module
    for part in attribute.split("."):
        factory = getattr(factory, part)
    if not callable(factory):
        raise ValueError(f"Engine factory {path!r} is not callable")

    logger.debug("Loaded protocol engine factory %s", path)
    return factory
