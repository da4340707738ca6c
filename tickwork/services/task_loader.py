"""Resolve ``"package.module:callable"`` references into task callables."""
from __future__ import annotations

import importlib
from typing import Callable


def load_task(reference: str) -> Callable[[], None]:
    """Import the callable named by ``reference``.

    The attribute part may be dotted (``"pkg.mod:Class.method"``).  Import and
    lookup failures are reported as :class:`ValueError` so configuration
    problems surface the same way as the YAML loader's.
    """

    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"task reference must look like 'module:callable': {reference!r}")
    try:
        target = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValueError(f"cannot import task module {module_name!r}: {exc}") from exc
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ValueError(f"{reference!r} does not resolve: missing {part!r}") from exc
    if not callable(target):
        raise ValueError(f"{reference!r} is not callable")
    return target
