# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shape function registry.

A shape function maps a token to a coarse signature ("shape key") that groups
rare and unseen tokens for fallback embeddings. The toolkit that consumes the
ledger owns its canonical shape function; this module only provides a way to
plug one in by config string, plus two small built-ins that are handy for
tests and ad-hoc corpora.

A config value is either a registered name (``"character_class"``) or an
import path of the form ``"package.module:callable"``.
"""

import importlib
import logging
from typing import Callable

ShapeFunction = Callable[[str], str]

SHAPE_PREFIX = "#SHAPE_"

logger = logging.getLogger(__name__)

_SHAPE_REGISTRY: dict[str, ShapeFunction] = {}


def register_shape_function(name: str, fn: ShapeFunction) -> None:
    """
    Register a shape function under a unique name.

    Raises:
        ValueError: If ``name`` is already registered.
    """
    if name in _SHAPE_REGISTRY:
        raise ValueError(f"Shape function '{name}' is already registered")
    _SHAPE_REGISTRY[name] = fn
    logger.debug("Registered shape function", extra={"shape_function": name})


def get_shape_function(name: str) -> ShapeFunction:
    """
    Look up a registered shape function.

    Raises:
        KeyError: If ``name`` is not registered.
    """
    if name not in _SHAPE_REGISTRY:
        available = sorted(_SHAPE_REGISTRY.keys())
        raise KeyError(f"Unknown shape function '{name}'. Available: {available}")
    return _SHAPE_REGISTRY[name]


def list_shape_functions() -> list[str]:
    """Return sorted list of all registered shape function names."""
    return sorted(_SHAPE_REGISTRY.keys())


def resolve_shape_function(spec: str) -> ShapeFunction:
    """
    Turn a config string into a callable.

    ``"name"`` is looked up in the registry, ``"module:attr"`` is imported.

    Raises:
        KeyError: Unknown registry name.
        ImportError: The module part of an import path cannot be imported.
        ValueError: The import path does not point at a callable.
    """
    if ":" not in spec:
        return get_shape_function(spec)

    module_name, _, attr = spec.partition(":")
    module = importlib.import_module(module_name)
    fn = getattr(module, attr, None)
    if not callable(fn):
        raise ValueError(f"'{spec}' does not name a callable shape function")
    return fn


def character_class_shape(token: str) -> str:
    """
    Reference classifier: upper -> A, lower -> a, digit -> 0, anything else
    kept as is, with runs of the same class collapsed.

    ``"Cat"`` becomes ``"#SHAPE_Aa"``, ``"1999"`` becomes ``"#SHAPE_0"``.
    """
    classes: list[str] = []
    for char in token:
        if char.isupper():
            cls = "A"
        elif char.islower():
            cls = "a"
        elif char.isdigit():
            cls = "0"
        else:
            cls = char
        if not classes or classes[-1] != cls:
            classes.append(cls)
    return SHAPE_PREFIX + "".join(classes)


def identity_shape(token: str) -> str:
    """Shape of a token is the token itself, which switches shape fallback off."""
    return token


register_shape_function("character_class", character_class_shape)
register_shape_function("identity", identity_shape)
