"""
_optimizer.py
=============
Adapter around scikit-bio's distance-based tree search.

The completed matrix is handed to ``skbio.tree.bme`` (balanced minimum
evolution, greedy insertion) and the result is refined with
``skbio.tree.nni`` (nearest-neighbour interchange under the balanced
objective).  scikit-bio sees placeholder labels ``"0" .. "n-1"``; the
returned tree is converted back into a ``Tree`` whose leaves carry the
matching taxon IDs, so names come from the caller's TaxonSet again when the
tree is written out.
"""

import logging

import numpy as np
from skbio import DistanceMatrix as SkbioDistanceMatrix
from skbio import TreeNode
from skbio.tree import bme, nni

from wastrid._distance import DistanceMatrix
from wastrid._exceptions import WastridError
from wastrid._taxa import TaxonSet
from wastrid._tree import Tree, TreeBuilder

logger = logging.getLogger(__name__)

# NNI needs at least one internal edge
_MIN_TAXA_NNI = 4


def optimize_tree(dm: DistanceMatrix) -> Tree:
    """
    Estimate an unrooted binary tree from a complete distance matrix.

    One and two taxa are answered directly.  Otherwise the root of the
    returned tree is the trifurcation scikit-bio uses to draw an unrooted
    tree.

    Raises
    ------
    WastridError   if *dm* still has missing cells or no taxa.
    """
    n = dm.n_taxa
    if n == 0:
        raise WastridError("Cannot build a tree over zero taxa.")
    if dm.has_missing:
        raise WastridError("Distance matrix still has missing cells.")

    if n == 1:
        b = TreeBuilder()
        b.add_node(taxon=0, support=1.0)
        return b.build(root=0)
    if n == 2:
        half = float(dm.values[0, 1]) / 2.0
        b = TreeBuilder()
        root = b.add_node()
        b.add_node(parent=root, taxon=0, support=1.0, length=half)
        b.add_node(parent=root, taxon=1, support=1.0, length=half)
        return b.build(root=root)

    ids = TaxonSet.placeholders(n).names
    sk_dm = SkbioDistanceMatrix(np.ascontiguousarray(dm.values), ids)
    logger.info("Building balanced minimum evolution tree over %d taxa", n)
    tree = bme(sk_dm)
    if n >= _MIN_TAXA_NNI:
        logger.info("Refining topology with nearest-neighbour interchange")
        tree = nni(tree, sk_dm)
    return from_skbio(tree, n)


def from_skbio(sk_tree: TreeNode, n_taxa: int) -> Tree:
    """
    Convert a scikit-bio tree with placeholder tip names into a ``Tree``.

    Raises
    ------
    WastridError   if a tip name is not an integer in ``0 .. n_taxa-1``.
    """
    b = TreeBuilder()
    index = {}
    for node in sk_tree.preorder(include_self=True):
        parent = -1 if node.is_root() else index[id(node.parent)]
        length = float(node.length) if node.length is not None else 0.0
        if node.is_tip():
            try:
                taxon = int(node.name)
            except (TypeError, ValueError):
                raise WastridError(
                    f"Optimizer returned unexpected tip label {node.name!r}"
                ) from None
            if not 0 <= taxon < n_taxa:
                raise WastridError(
                    f"Optimizer returned out-of-range tip label {node.name!r}"
                )
            index[id(node)] = b.add_node(
                parent=parent, taxon=taxon, support=1.0, length=length
            )
        else:
            index[id(node)] = b.add_node(parent=parent, length=length)
    return b.build(root=index[id(sk_tree)])
