"""
tests/test_kernel_agreement.py
==============================

Cross-validation between the wastrid accumulation backends and against an
independent pairwise path computation.

Validation layers
-----------------
1. Backend agreement  (TestBackendAgreement)
   Accumulate every reference collection with 'python' and 'numba' in every
   mode and assert identical COUNT and matching SUM.  Both backends visit
   nodes, child pairs and leaf pairs in the same order, so SUM agrees to
   the last bit in practice; the assertion allows rounding slack anyway.

2. Path agreement  (TestPathAgreement)
   For Internode mode, each SUM entry from one tree must equal the number
   of edges on the path between the two leaves in the *unrooted* tree,
   computed here by walking parent pointers to the LCA and subtracting one
   edge when the path crosses a fake root.

Test collection
---------------
genes_8taxa.tre holds 10 trees over taxa a-h: binary trees rooted at a
2-child node, multifurcating roots, a star tree, a caterpillar, trees
missing some taxa, and zero-length internal edges.
"""

import os
import sys

import numpy as np
import pytest

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from wastrid._collection import TreeCollection
from wastrid._config import Mode, WastridConfig
from wastrid._distance import DistanceAccumulator

COLLECTIONS = [
    "quartet_4leaf.tre",
    "balanced_4leaf.tre",
    "caterpillar_5leaf.tre",
    "missing_5taxa.tre",
    "genes_8taxa.tre",
]


def load(filename):
    cfg = WastridConfig(lower_bound=0.0, upper_bound=1.0)
    return TreeCollection.from_newick(os.path.join(_TREES_DIR, filename), cfg)


def run(collection, mode, backend):
    acc = DistanceAccumulator(collection.ntaxa(), mode, backend)
    acc.add_trees(collection.trees)
    return acc


def unrooted_edges(tree, u, v):
    """Edges between leaf nodes *u* and *v*, treating a fake root as one edge."""
    ancestors_u = []
    n = u
    while n != -1:
        ancestors_u.append(n)
        n = int(tree.parent[n])
    depth = {n: i for i, n in enumerate(ancestors_u)}
    steps_v = 0
    n = v
    while n not in depth:
        n = int(tree.parent[n])
        steps_v += 1
    edges = depth[n] + steps_v
    if n == tree.root and tree.fake_root:
        edges -= 1
    return edges


# ======================================================================== #
# 1. Backend agreement                                                      #
# ======================================================================== #


class TestBackendAgreement:
    @pytest.mark.parametrize("filename", COLLECTIONS)
    @pytest.mark.parametrize("mode", list(Mode))
    def test_python_vs_numba(self, filename, mode):
        col = load(filename)
        py = run(col, mode, "python")
        nb = run(col, mode, "numba")
        np.testing.assert_array_equal(py.count, nb.count)
        np.testing.assert_allclose(py.sum, nb.sum, rtol=1e-12, atol=0.0)
        if mode == Mode.NLENGTH:
            assert py.norm_factor == nb.norm_factor

    @pytest.mark.parametrize("mode", list(Mode))
    def test_flattened_agree(self, mode):
        col = load("genes_8taxa.tre")
        py = run(col, mode, "python").flatten()
        nb = run(col, mode, "numba").flatten()
        np.testing.assert_array_equal(py.observed, nb.observed)
        np.testing.assert_allclose(py.values, nb.values, rtol=1e-12)


# ======================================================================== #
# 2. Path agreement                                                         #
# ======================================================================== #


class TestPathAgreement:
    @pytest.mark.parametrize("backend", ["python", "numba"])
    def test_internode_matches_path_length(self, backend):
        col = load("genes_8taxa.tre")
        for tree in col.trees:
            acc = DistanceAccumulator(col.ntaxa(), Mode.INTERNODE, backend)
            acc.add_tree(tree)
            leaves = tree.leaves()
            for i, u in enumerate(leaves):
                for v in leaves[i + 1 :]:
                    tu, tv = int(tree.taxa[u]), int(tree.taxa[v])
                    l, r = min(tu, tv), max(tu, tv)
                    assert acc.sum[l, r] == unrooted_edges(tree, u, v), (
                        f"{col.taxon_set.names[l]}-{col.taxon_set.names[r]} "
                        f"in {tree!r}"
                    )
                    assert acc.count[l, r] == 1
