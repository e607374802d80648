"""
_distance.py
============
Conversion of gene trees into pairwise taxon distances, and the averaged
matrix built from them.

Public API
----------
  DistanceAccumulator(n_taxa, mode, backend='best', norm_factor=None)
      .add_tree(tree)         add one gene tree's contributions
      .add_trees(trees)
      .merge(other)           elementwise SUM/COUNT addition
      .flatten()              -> DistanceMatrix (cached; see ``minted``)

  DistanceMatrix
      .values                 float64 (n, n), symmetric, NaN where missing
      .observed               bool (n, n), True where COUNT > 0
      .has_missing
      .impute_from(tree, mode)  fill only the missing cells from a tree
      .to_phylip(taxon_set)

  edge_weights(tree, mode)    per-node weight of the edge above each node

Matrices
--------
SUM (float64) and COUNT (int64) are n×n, but only the upper triangle
(row < column) is ever written.  Every unordered taxon pair present in a
gene tree is counted exactly once, at its nearest common ancestor.

Distance modes
--------------
  Mode.INTERNODE   each edge weighs 1.0
  Mode.SUPPORT     each edge weighs its rescaled support
  Mode.NLENGTH     each edge weighs its length, and each tree is rescaled so
                   that its largest pairwise distance is comparable to that of
                   the first tree with a positive largest distance

NLength normalisation
---------------------
A tree's raw distances go into a scratch matrix first while its largest
pairwise distance ``max_dis`` is tracked.  The first tree with
``max_dis > 0`` fixes ``norm_factor = max_dis`` for the rest of the run;
the scratch entries of every tree are divided by ``max_dis / norm_factor``
before being added to SUM.  A tree with ``max_dis == 0`` contributes nothing.
The result therefore depends on which tree comes first.  Callers that
accumulate in several places (the reducer) must resolve ``norm_factor``
once up front and pass it to every accumulator.
"""

import logging
from typing import Iterable, List, Optional

import numpy as np

from wastrid._backend import get_available_backends, resolve_backend
from wastrid._config import Mode
from wastrid._cpu_kernels import _accumulate_tree_njit
from wastrid._exceptions import WastridError
from wastrid._logging import install_numba_warning_filter, log_backend_status
from wastrid._taxa import TaxonSet
from wastrid._tree import Tree

logger = logging.getLogger(__name__)

log_backend_status(get_available_backends())
install_numba_warning_filter()


def edge_weights(tree: Tree, mode: Mode) -> np.ndarray:
    """
    Return float64 [n_nodes]: the weight of the edge above each node.

    The root's entry is never read.
    """
    if mode == Mode.INTERNODE:
        return np.ones(tree.n_nodes, dtype=np.float64)
    if mode == Mode.SUPPORT:
        return tree.support
    if mode == Mode.NLENGTH:
        return tree.lengths
    raise ValueError(f"Unknown distance mode: {mode!r}")


def accumulate_tree(
    tree: Tree,
    weights: np.ndarray,
    sum_out: np.ndarray,
    count_out: np.ndarray,
    backend: str = "best",
) -> float:
    """
    Add every leaf-pair distance of *tree* into *sum_out* / *count_out*.

    Returns the largest pairwise distance seen (0.0 for a one-leaf tree).
    """
    backend = resolve_backend(backend)
    if backend == "numba":
        return float(
            _accumulate_tree_njit(
                tree.postorder_array(),
                tree.taxa,
                tree.firstchild,
                tree.nextsib,
                tree.childcount,
                weights,
                tree.root,
                tree.fake_root,
                sum_out,
                count_out,
            )
        )
    return _accumulate_tree_python(tree, weights, sum_out, count_out)


def _accumulate_tree_python(
    tree: Tree,
    weights: np.ndarray,
    sum_out: np.ndarray,
    count_out: np.ndarray,
) -> float:
    """
    **Private.**  Reference implementation.

    One postorder pass.  Every node holds a list of (taxon, partial) pairs,
    one per leaf below it, where partial is the weighted path length from
    that leaf up to the node.

      leaf      [(taxon, 0.0)]
      internal  add each child's edge weight to that child's list (at a
                fake root only the first child's edge counts); pair up
                leaves from every two distinct children, since this node is
                their nearest common ancestor; concatenate the lists.
    """
    leaf_dists: List[Optional[list]] = [None] * tree.n_nodes
    max_dis = 0.0

    for node in tree.postorder():
        if tree.is_leaf(node):
            leaf_dists[node] = [(int(tree.taxa[node]), 0.0)]
            continue

        kids = list(tree.children(node))
        single_root_edge = tree.is_root(node) and tree.fake_root
        for k, c in enumerate(kids):
            if single_root_edge and k > 0:
                continue
            w = float(weights[c])
            leaf_dists[c] = [(t, d + w) for t, d in leaf_dists[c]]

        for a in range(len(kids) - 1):
            left = leaf_dists[kids[a]]
            for b in range(a + 1, len(kids)):
                right = leaf_dists[kids[b]]
                for tu, du in left:
                    for tv, dv in right:
                        dist = du + dv
                        if tu < tv:
                            l, r = tu, tv
                        else:
                            l, r = tv, tu
                        sum_out[l, r] += dist
                        count_out[l, r] += 1
                        if dist > max_dis:
                            max_dis = dist

        merged = leaf_dists[kids[0]]
        leaf_dists[kids[0]] = None
        for c in kids[1:]:
            merged.extend(leaf_dists[c])
            leaf_dists[c] = None
        leaf_dists[node] = merged

    return max_dis


class DistanceAccumulator:
    """
    A SUM/COUNT matrix pair that gene trees are added into.

    Parameters
    ----------
    n_taxa      : int     Size of the full taxon set.
    mode        : Mode    Distance definition.
    backend     : str     'best', 'numba' or 'python'.  Resolved once here.
    norm_factor : float   NLength only: a pre-resolved normalisation factor.
                          If None, the first tree with a positive largest
                          distance sets it.

    Attributes
    ----------
    sum, count  : float64 / int64 (n_taxa, n_taxa), upper triangle only
    n_trees     : int    trees added (including merged accumulators)
    minted      : bool   True once ``flatten`` has run; further adds fail
    """

    def __init__(
        self,
        n_taxa: int,
        mode: Mode = Mode.SUPPORT,
        backend: str = "best",
        norm_factor: Optional[float] = None,
    ) -> None:
        self.n_taxa = int(n_taxa)
        self.mode = Mode(mode)
        self.backend = resolve_backend(backend)
        self.norm_factor = norm_factor
        self.sum = np.zeros((self.n_taxa, self.n_taxa), dtype=np.float64)
        self.count = np.zeros((self.n_taxa, self.n_taxa), dtype=np.int64)
        self.n_trees = 0
        self._flat: Optional["DistanceMatrix"] = None

        if self.mode == Mode.NLENGTH:
            self._temp = np.zeros_like(self.sum)
            self._temp_count = np.zeros_like(self.count)
        else:
            self._temp = None
            self._temp_count = None

    @property
    def minted(self) -> bool:
        return self._flat is not None

    def add_tree(self, tree: Tree) -> None:
        """Add one gene tree's pairwise contributions."""
        if self.minted:
            raise RuntimeError("Cannot add trees to a flattened accumulator.")

        weights = edge_weights(tree, self.mode)
        self.n_trees += 1

        if self.mode != Mode.NLENGTH:
            accumulate_tree(tree, weights, self.sum, self.count, self.backend)
            return

        max_dis = accumulate_tree(
            tree, weights, self._temp, self._temp_count, self.backend
        )
        if self.norm_factor is None and max_dis > 0.0:
            self.norm_factor = max_dis
            logger.debug("NLength normalisation factor fixed at %g", max_dis)

        ids = tree.taxon_ids()
        block = np.ix_(ids, ids)
        if max_dis > 0.0:
            scale = max_dis / self.norm_factor
            self.sum[block] += self._temp[block] / scale
            self.count[block] += self._temp_count[block]
        self._temp[block] = 0.0
        self._temp_count[block] = 0

    def add_trees(self, trees: Iterable[Tree]) -> None:
        for t in trees:
            self.add_tree(t)

    def merge(self, other: "DistanceAccumulator") -> None:
        """Add *other*'s SUM/COUNT into this accumulator."""
        if other.n_taxa != self.n_taxa:
            raise ValueError(
                f"Cannot merge accumulators of {other.n_taxa} and "
                f"{self.n_taxa} taxa."
            )
        if self.minted:
            raise RuntimeError("Cannot merge into a flattened accumulator.")
        self.sum += other.sum
        self.count += other.count
        self.n_trees += other.n_trees
        if self.norm_factor is None:
            self.norm_factor = other.norm_factor

    def flatten(self) -> "DistanceMatrix":
        """
        Average SUM by COUNT.  Cells with COUNT == 0 are flagged missing
        (NaN in ``values``) rather than read as zero.

        The first call mints the matrix; later calls return the same object.
        """
        if self._flat is not None:
            return self._flat

        n = self.n_taxa
        iu = np.triu_indices(n, 1)
        upper_sum = self.sum[iu]
        upper_count = self.count[iu]
        observed_upper = upper_count > 0
        avg = np.full(upper_sum.shape, np.nan, dtype=np.float64)
        np.divide(upper_sum, upper_count, out=avg, where=observed_upper)

        values = np.zeros((n, n), dtype=np.float64)
        values[iu] = avg
        values.T[iu] = avg
        observed = np.zeros((n, n), dtype=bool)
        observed[iu] = observed_upper
        observed.T[iu] = observed_upper

        self._flat = DistanceMatrix(values, observed)
        return self._flat


class DistanceMatrix:
    """
    Averaged pairwise taxon distances with a missing-data mask.

    Attributes
    ----------
    values   : float64 (n, n)   symmetric; NaN where missing; diagonal 0
    observed : bool (n, n)      symmetric; True where at least one gene tree
                                held both taxa; diagonal False
    imputed  : bool (n, n)      True where a value was filled by impute_from
    """

    def __init__(self, values: np.ndarray, observed: np.ndarray) -> None:
        self.values = values
        self.observed = observed
        self.imputed = np.zeros_like(observed)
        self.n_taxa = int(values.shape[0])

    @property
    def n_pairs(self) -> int:
        return self.n_taxa * (self.n_taxa - 1) // 2

    def missing_pairs(self) -> np.ndarray:
        """int64 (k, 2) array of (l, r), l < r, for every still-unknown pair."""
        iu = np.triu_indices(self.n_taxa, 1)
        unknown = np.isnan(self.values[iu])
        return np.stack([iu[0][unknown], iu[1][unknown]], axis=1).astype(np.int64)

    @property
    def has_missing(self) -> bool:
        iu = np.triu_indices(self.n_taxa, 1)
        return bool(np.isnan(self.values[iu]).any())

    def impute_from(
        self, tree: Tree, mode: Mode = Mode.INTERNODE, backend: str = "best"
    ) -> int:
        """
        Fill the missing cells with distances read off *tree*.

        Observed cells are left untouched.  Returns the number of unordered
        pairs filled.

        Raises
        ------
        WastridError   if *tree* does not contain a taxon of a missing pair.
        """
        pairs = self.missing_pairs()
        if pairs.shape[0] == 0:
            return 0

        acc = DistanceAccumulator(self.n_taxa, mode, backend=backend)
        acc.add_tree(tree)
        l, r = pairs[:, 0], pairs[:, 1]
        counts = acc.count[l, r]
        if np.any(counts == 0):
            raise WastridError(
                "Imputation tree does not cover every taxon with missing "
                "distances."
            )
        est = acc.sum[l, r] / counts
        self.values[l, r] = est
        self.values[r, l] = est
        self.imputed[l, r] = True
        self.imputed[r, l] = True
        return int(pairs.shape[0])

    def to_phylip(self, taxon_set: TaxonSet) -> str:
        """Square PHYLIP text: taxon count, then one row per taxon."""
        lines = [str(self.n_taxa)]
        for i, name in enumerate(taxon_set.names):
            row = " ".join(f"{v:.10g}" for v in self.values[i])
            lines.append(f"{name} {row}")
        return "\n".join(lines) + "\n"

    def __repr__(self) -> str:
        return (
            f"DistanceMatrix(n_taxa={self.n_taxa}, "
            f"missing={len(self.missing_pairs())})"
        )
