"""
_logging.py
===========
Logging functions for wastrid.

All functions in this module have NO side effects except logging.  They take
computed data as parameters and format/emit log messages, so computation
stays separate from reporting and logging can be silenced or mocked in tests.
"""

import logging
import os
import platform
import warnings

logger = logging.getLogger(__name__)


# ============================================================================ #
# System and Backend Logging (called at module import time)
# ============================================================================ #


def log_backend_status(backends_available) -> None:
    """
    Log system capabilities and the accumulation backends at INFO level.

    Called once when the distance module is first imported.
    """
    cpu_count = os.cpu_count() or 1
    logger.info(
        f"System: {platform.machine()} ({platform.system()}), "
        f"{cpu_count} CPU cores, Python {platform.python_version()}"
    )

    import numba

    logger.info(f"Numba {numba.__version__} loaded successfully")
    try:
        logger.info(f"Numba threading: {numba.get_num_threads()} threads available")
    except Exception:
        pass  # threading info unavailable in some configs

    logger.info(f"Available backends: {', '.join(backends_available)}")
    logger.info(f"Default backend='best' will use: {backends_available[-1]}")


def install_numba_warning_filter() -> None:
    """
    Route NumbaPerformanceWarning through our logger at WARNING level so it
    appears in the same stream as the other wastrid diagnostics.
    """
    from numba.core.errors import NumbaPerformanceWarning

    original_showwarning = warnings.showwarning

    def custom_showwarning(message, category, filename, lineno, file=None, line=None):
        if issubclass(category, NumbaPerformanceWarning):
            logger.warning(f"Numba performance issue: {message}")
            logger.warning(f"  at {filename}:{lineno}")
            return
        original_showwarning(message, category, filename, lineno, file, line)

    warnings.showwarning = custom_showwarning


# ============================================================================ #
# Run Logging
# ============================================================================ #


def log_run_configuration(config) -> None:
    """Log the distance mode, support scheme and thread count of a run."""
    logger.info(
        "Analysis started with mode %s using %d thread(s)",
        config.mode.value,
        config.threads,
    )
    if config.mode.value == "support":
        logger.info(
            "Support normalization: linearly from [%g, %g] to [0, 1]",
            config.lower_bound,
            config.upper_bound,
        )


def log_collection_statistics(
    n_trees: int, n_taxa: int, mean_leaves: float, n_fake_root: int
) -> None:
    """
    Log gene-tree collection statistics.

    Parameters
    ----------
    n_trees     : int     Number of gene trees read.
    n_taxa      : int     Number of distinct taxa.
    mean_leaves : float   Average leaves per gene tree.
    n_fake_root : int     Trees whose root was a 2-child artificial root.
    """
    logger.info("Read %d gene trees with %d taxa", n_trees, n_taxa)
    if n_trees == 0:
        logger.warning("No gene trees found in input")
        return
    logger.info("  %.1f leaves/tree (avg)", mean_leaves)
    if n_fake_root:
        logger.info(
            "  %d tree(s) rooted at a 2-child node; root edges unified",
            n_fake_root,
        )
    if n_taxa > 0 and mean_leaves < 0.5 * n_taxa:
        logger.warning(
            "Low taxon coverage: gene trees hold %.1f of %d taxa on average. "
            "Expect missing distances to be imputed.",
            mean_leaves,
            n_taxa,
        )


def log_accumulation_plan(
    n_trees: int,
    n_taxa: int,
    n_workers: int,
    chunk_size: int,
    n_chunks: int,
    backend: str,
) -> None:
    """Log how the accumulation stage is split across worker threads."""
    matrix_mb = 2 * n_taxa * n_taxa * 8 / (1024**2)
    logger.info(
        "Accumulating %d trees (backend=%r): %d chunk(s) of <=%d trees on "
        "%d worker(s)",
        n_trees,
        backend,
        n_chunks,
        chunk_size,
        n_workers,
    )
    logger.info(
        "  Per-worker matrix memory: %.1f MB (peak %.1f MB)",
        matrix_mb,
        matrix_mb * min(n_workers, n_chunks),
    )


def log_missing_statistics(n_missing: int, n_pairs: int) -> None:
    """Log how many taxon pairs never co-occurred in any gene tree."""
    if n_missing == 0:
        logger.info("Distance matrix complete: all %d taxon pairs observed", n_pairs)
        return
    logger.info(
        "Found missing data: %d of %d taxon pairs (%.2f%%) never co-occur",
        n_missing,
        n_pairs,
        100.0 * n_missing / n_pairs,
    )


def log_imputation_fallbacks(n_fallbacks: int, n_merges: int) -> None:
    """Warn when UPGMA* had to join clusters with no known distance."""
    if n_fallbacks == 0:
        return
    logger.warning(
        "UPGMA* joined %d of %d cluster pairs at distance 0 because no known "
        "distance connected the remaining clusters. The imputed topology is "
        "arbitrary at those merges.",
        n_fallbacks,
        n_merges,
    )
