"""
_reducer.py
===========
Thread-pool accumulation of a gene-tree collection.

The tree sequence is cut into contiguous chunks.  Each worker thread creates
one private ``DistanceAccumulator`` the first time it picks up a chunk and
reuses it for every later chunk, so the hot loop touches no shared state.
After the pool has drained, the private accumulators are summed on the
calling thread.  Matrix addition is commutative, so the order in which
workers finish does not matter.

The numba kernel is compiled with ``nogil=True``; with the 'python' backend
the threads serialise on the GIL and the pool only adds overhead.
"""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence

import numpy as np

from wastrid._backend import resolve_backend
from wastrid._config import Mode
from wastrid._distance import DistanceAccumulator, accumulate_tree, edge_weights
from wastrid._logging import log_accumulation_plan
from wastrid._tree import Tree

logger = logging.getLogger(__name__)

# (max taxa, minimum trees per chunk); bounds per-thread matrix memory
_CHUNK_FLOORS = ((50, 10000), (500, 2000), (1000, 500))
_CHUNK_FLOOR_LARGE = 200


def chunk_size(n_trees: int, n_taxa: int, threads: int) -> int:
    """
    Trees per chunk: ``max(ceil(n_trees / threads), floor(n_taxa))``.

    >>> chunk_size(100, 10, 4)
    10000
    >>> chunk_size(100000, 2000, 4)
    25000
    """
    floor = _CHUNK_FLOOR_LARGE
    for max_taxa, size in _CHUNK_FLOORS:
        if n_taxa <= max_taxa:
            floor = size
            break
    per_thread = math.ceil(n_trees / max(1, threads))
    return max(per_thread, floor)


def first_norm_factor(
    trees: Sequence[Tree], n_taxa: int, backend: str = "best"
) -> Optional[float]:
    """
    Largest raw pairwise length distance of the first tree where it is
    positive, or None if no tree has one.

    This is the NLength normalisation factor a sequential run would settle
    on.  Resolving it before the pool starts makes every worker scale
    against the same tree.
    """
    scratch_sum = np.zeros((n_taxa, n_taxa), dtype=np.float64)
    scratch_count = np.zeros((n_taxa, n_taxa), dtype=np.int64)
    for tree in trees:
        max_dis = accumulate_tree(
            tree,
            edge_weights(tree, Mode.NLENGTH),
            scratch_sum,
            scratch_count,
            backend,
        )
        if max_dis > 0.0:
            return max_dis
        ids = tree.taxon_ids()
        scratch_sum[np.ix_(ids, ids)] = 0.0
        scratch_count[np.ix_(ids, ids)] = 0
    return None


def reduce_trees(
    trees: Sequence[Tree],
    n_taxa: int,
    mode: Mode,
    threads: int = 1,
    backend: str = "best",
    norm_factor: Optional[float] = None,
) -> DistanceAccumulator:
    """
    Accumulate *trees* on up to *threads* workers and return the merged
    accumulator.

    Parameters
    ----------
    trees       : sequence of Tree
    n_taxa      : int     Size of the shared TaxonSet.
    mode        : Mode
    threads     : int     Worker count (>= 1).
    backend     : str     'best', 'numba' or 'python'.
    norm_factor : float   NLength only; resolved with ``first_norm_factor``
                          when None.

    Returns
    -------
    DistanceAccumulator   Not yet flattened.
    """
    backend = resolve_backend(backend)
    mode = Mode(mode)
    trees = list(trees)

    if mode == Mode.NLENGTH and norm_factor is None:
        norm_factor = first_norm_factor(trees, n_taxa, backend)

    size = chunk_size(len(trees), n_taxa, threads)
    chunks = [trees[i : i + size] for i in range(0, len(trees), size)]
    n_workers = max(1, min(threads, len(chunks)))
    log_accumulation_plan(
        len(trees), n_taxa, n_workers, size, len(chunks), backend
    )

    if n_workers == 1:
        acc = DistanceAccumulator(n_taxa, mode, backend, norm_factor)
        for chunk in chunks:
            acc.add_trees(chunk)
        return acc

    local = threading.local()
    workers: List[DistanceAccumulator] = []
    registry_lock = threading.Lock()

    def work(chunk: List[Tree]) -> int:
        acc = getattr(local, "acc", None)
        if acc is None:
            acc = DistanceAccumulator(n_taxa, mode, backend, norm_factor)
            local.acc = acc
            with registry_lock:
                workers.append(acc)
        acc.add_trees(chunk)
        return len(chunk)

    done = 0
    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        futures = [executor.submit(work, chunk) for chunk in chunks]
        for future in as_completed(futures):
            done += future.result()
            logger.debug("Accumulated %d/%d trees", done, len(trees))

    total = DistanceAccumulator(n_taxa, mode, backend, norm_factor)
    for acc in workers:
        total.merge(acc)
    logger.debug("Merged %d worker accumulator(s)", len(workers))
    return total
