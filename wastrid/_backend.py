"""
_backend.py
===========
Accumulation backend names and selection.

Two backends produce identical SUM/COUNT matrices:

  'python'  Pure-Python reference implementation of the per-node
            sparse-list algorithm.  Always available, debuggable.
  'numba'   JIT-compiled kernel from ``_cpu_kernels``.  Releases the GIL,
            so it scales across reducer threads.

'best' resolves to the most optimized backend, which is 'numba'.

Functions in this module have NO side effects; the caller logs.
"""

from typing import List

from wastrid._context import get_backend_override

BACKENDS: List[str] = ["python", "numba"]


def get_available_backends() -> List[str]:
    """Backends in preference order; the last entry is the best."""
    return list(BACKENDS)


def get_best_backend() -> str:
    return BACKENDS[-1]


def resolve_backend(backend: str = "best") -> str:
    """
    Resolve a backend specification to a concrete backend name.

    A ``use_backend`` context-manager override, if active, takes precedence.

    Raises
    ------
    ValueError   if *backend* is not 'best' or a known backend.
    """
    override = get_backend_override()
    if override is not None:
        backend = override

    if backend == "best":
        return get_best_backend()
    if backend not in BACKENDS:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(BACKENDS)}"
        )
    return backend
