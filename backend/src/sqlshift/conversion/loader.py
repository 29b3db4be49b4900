"""
Load pluggable collaborators from ``"module:attr"`` paths.

Used for the ``converter`` and ``deployer`` settings so deployments can swap
the OpenAI converter for another implementation without code changes.
"""

import logging
from importlib import import_module
from typing import Any

from sqlshift.config import settings

logger = logging.getLogger(__name__)


def load_object(path: str) -> Any:
    """
    Import the object named by a ``"package.module:attr"`` path.

    Classes are instantiated with no arguments; any other attribute is
    returned as-is.

    Args:
        path: Import path with a colon between module and attribute

    Returns:
        The loaded object (instance for classes)

    Raises:
        ValueError: If the path is malformed or the attribute is missing
        ImportError: If the module cannot be imported
    """
    module_path, sep, attr = path.partition(":")
    if not sep or not module_path or not attr:
        raise ValueError(f"Expected 'module:attr', got {path!r}")

    module = import_module(module_path)
    target = getattr(module, attr, None)
    if target is None:
        raise ValueError(f"Module {module_path} has no attribute {attr!r}")

    if isinstance(target, type):
        target = target()
    logger.debug(f"Loaded {attr} from {module_path}")
    return target


def load_converter(path: str | None = None):
    """Load the configured converter."""
    return load_object(path or settings.converter)


def load_deployer(path: str | None = None):
    """Load the configured deployer."""
    return load_object(path or settings.deployer)
