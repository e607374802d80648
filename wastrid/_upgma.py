"""
_upgma.py
=========
UPGMA*: size-weighted average-linkage clustering over the *known* entries
of an incomplete distance matrix.

The tree it returns is only used to estimate the missing cells; observed
cells are never replaced.

Algorithm
---------
Clusters 0..n-1 are the taxa; merge k creates cluster n+k, and the last
merge creates the root 2n-2.  Cluster IDs double as node IDs of the output
tree.

A min-heap holds (distance, a, b) for every pair whose distance is known.
Each step pops the closest pair of live clusters u, v and merges them into
w.  For each other live cluster i:

  d(i,u) and d(i,v) known   d(i,w) = (|u| d(i,u) + |v| d(i,v)) / |w|
  only one known            d(i,w) = that one
  neither known             d(i,w) stays unknown

When the heap runs dry before n-1 merges (the known-pair graph is
disconnected) the first two live clusters by ID are joined at distance 0.
Such joins are counted in the returned ``ImputationReport`` and announced
with an ``ImputationFallbackWarning``.

Merge distances along a root-to-leaf path need not be monotone when
knowledge is incomplete.
"""

import heapq
import logging
import warnings
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from wastrid._distance import DistanceMatrix
from wastrid._exceptions import (
    ImputationFallbackWarning,
    NumericError,
    WastridError,
)
from wastrid._logging import log_imputation_fallbacks
from wastrid._tree import Tree, TreeBuilder

logger = logging.getLogger(__name__)


@dataclass
class ImputationReport:
    """Outcome of one UPGMA* run."""

    n_taxa: int
    merges: int = 0
    fallback_joins: int = 0

    @property
    def degraded(self) -> bool:
        return self.fallback_joins > 0


def _push(heap: List[Tuple[float, int, int]], d: float, a: int, b: int) -> None:
    if not np.isfinite(d):
        raise NumericError(
            f"Non-finite distance {d!r} between clusters {a} and {b}"
        )
    heapq.heappush(heap, (float(d), a, b))


def upgma_star(dm: DistanceMatrix) -> Tuple[Tree, ImputationReport]:
    """
    Cluster the taxa of *dm* into a rooted binary tree.

    Parameters
    ----------
    dm : DistanceMatrix
        NaN marks an unknown distance.

    Returns
    -------
    (Tree, ImputationReport)
        Leaves carry taxon IDs 0..n-1; the root is node 2n-2.  Each merged
        cluster's edge length is its merge distance, except at the root
        where the two root edges share their combined length evenly.

    Raises
    ------
    NumericError   if an infinite distance would enter the queue.
    WastridError   if *dm* has no taxa.
    """
    n = dm.n_taxa
    if n == 0:
        raise WastridError("Cannot cluster an empty distance matrix.")

    report = ImputationReport(n_taxa=n)
    b = TreeBuilder()
    for i in range(n):
        b.add_node(taxon=i, support=1.0)
    if n == 1:
        return b.build(root=0), report
    for _ in range(n - 1):
        b.add_node()

    n_clusters = 2 * n - 1
    m = np.full((n_clusters, n_clusters), np.nan, dtype=np.float64)
    m[:n, :n] = dm.values
    sizes = np.ones(n_clusters, dtype=np.int64)
    absorbed = np.zeros(n_clusters, dtype=bool)

    heap: List[Tuple[float, int, int]] = []
    for i in range(n - 1):
        for j in range(i + 1, n):
            if not np.isnan(m[i, j]):
                _push(heap, m[i, j], i, j)

    next_cluster = n
    u = v = -1
    while next_cluster < n_clusters:
        if heap:
            d, u, v = heapq.heappop(heap)
            if absorbed[u] or absorbed[v]:
                continue
        else:
            live = np.flatnonzero(~absorbed[:next_cluster])
            u, v = int(live[0]), int(live[1])
            d = 0.0
            report.fallback_joins += 1
            logger.debug(
                "No known distance left; joining clusters %d and %d at 0", u, v
            )

        w = next_cluster
        next_cluster += 1
        absorbed[u] = True
        absorbed[v] = True
        sizes[w] = sizes[u] + sizes[v]
        b.attach(w, u)
        b.attach(w, v)
        b.lengths[u] = d
        b.lengths[v] = d
        report.merges += 1

        for i in range(w):
            if absorbed[i]:
                continue
            du = m[i, u]
            dv = m[i, v]
            u_known = not np.isnan(du)
            v_known = not np.isnan(dv)
            if u_known and v_known:
                dw = (sizes[u] * du + sizes[v] * dv) / sizes[w]
            elif u_known:
                dw = du
            elif v_known:
                dw = dv
            else:
                continue
            m[i, w] = dw
            m[w, i] = dw
            _push(heap, dw, i, w)

    # the root's two edges form one unrooted edge
    half = (b.lengths[u] + b.lengths[v]) / 2.0
    b.lengths[u] = half
    b.lengths[v] = half

    if report.fallback_joins:
        log_imputation_fallbacks(report.fallback_joins, report.merges)
        warnings.warn(
            f"UPGMA* made {report.fallback_joins} arbitrary zero-distance "
            f"join(s); imputed distances across them are unreliable.",
            ImputationFallbackWarning,
            stacklevel=2,
        )

    return b.build(root=n_clusters - 1, fake_root=False), report
