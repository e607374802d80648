"""
conftest.py
===========
Session-level pytest configuration.

Custom marks
------------
large_scale
    Applied to tests that accumulate collections big enough to take several
    seconds with the pure-Python backend.  Deselect with
    ``-m 'not large_scale'``.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  The test
collections are tiny, so the warnings are expected and say nothing about
correctness.
"""

import warnings


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    This runs before any test module is imported, which matters for
    warnings raised while numba compiles the accumulation kernel.
    """
    config.addinivalue_line(
        "markers",
        "large_scale: accumulation over larger generated collections "
        "(deselect with -m 'not large_scale')",
    )

    from numba.core.errors import NumbaPerformanceWarning

    warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)


def pytest_unconfigure(config):
    """Restore default warning behaviour after the run."""
    warnings.resetwarnings()
