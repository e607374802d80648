"""
_context.py
===========
Scoped overrides for a wastrid run: logger levels, warning filters and the
accumulation backend.  Each one is undone when the ``with`` block exits,
whether it exits normally or by raising.
"""

import logging
import warnings
from contextlib import contextmanager
from typing import Optional, Type

_PACKAGE_LOGGER = "wastrid"

# Set by use_backend; read by _backend.resolve_backend.
_forced_backend: Optional[str] = None


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """Raise *logger_name* to *level* for the duration of the block."""
    target = logging.getLogger(logger_name)
    previous = target.level
    target.setLevel(level)
    try:
        yield
    finally:
        target.setLevel(previous)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Silence the whole package.

    Module loggers propagate to ``wastrid``, so only that one is touched.

    >>> with quiet():
    ...     newick = estimate_species_tree(trees, config)
    """
    with suppress_logger(_PACKAGE_LOGGER, level):
        yield


@contextmanager
def suppress_warnings(category: Optional[Type[Warning]] = None):
    """
    Ignore warnings of *category* inside the block; None ignores them all.

    >>> with suppress_warnings(ImputationFallbackWarning):
    ...     tree, report = upgma_star(dm)
    """
    with warnings.catch_warnings():
        if category is None:
            warnings.simplefilter("ignore")
        else:
            warnings.simplefilter("ignore", category)
        yield


@contextmanager
def use_backend(backend: str):
    """
    Make every backend request inside the block resolve to *backend*.

    *backend* is ``"best"`` or a name from ``get_available_backends()``;
    anything else raises ValueError before the block runs.

    The override is process-wide rather than per thread.  reduce_trees
    resolves its backend before handing chunks to workers, so wrapping a
    reducer call is enough to pin the backend for all of them.
    """
    global _forced_backend

    from wastrid._backend import get_available_backends

    known = get_available_backends()
    if backend != "best" and backend not in known:
        raise ValueError(
            f"Unknown backend {backend!r}; choose 'best' or one of {known}"
        )

    previous = _forced_backend
    _forced_backend = backend
    try:
        yield
    finally:
        _forced_backend = previous


def get_backend_override() -> Optional[str]:
    return _forced_backend
