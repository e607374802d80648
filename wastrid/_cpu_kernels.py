"""
_cpu_kernels.py
===============
Numba-compiled distance accumulation kernel.

This module contains ONLY numba code and imports no other project modules,
to keep import-time dependencies simple.

Exported Functions
------------------
_accumulate_tree_njit : njit function
    Adds one gene tree's pairwise leaf distances into SUM/COUNT matrices.

Notes
-----
- ``nogil=True`` lets the thread-pool reducer run several kernels at once.
- ``cache=True`` persists the compiled binary to disk for later runs.

Contiguous-run layout
---------------------
The pure-Python backend keeps a per-node list of (leaf, partial distance)
pairs and concatenates children's lists.  The kernel avoids those lists:
in the postorder produced by ``Tree.postorder`` every subtree is a
contiguous run, and children's runs follow ``children()`` order.  Numbering
leaves in postorder therefore gives each node a half-open slot range
[lo, hi), and "concatenate children's lists" becomes "take lo of the first
child and hi of the last child".  A single ``partial`` array indexed by slot
holds each leaf's distance up to the current node.
"""

import numpy as np
from numba import njit


@njit(cache=True, nogil=True)
def _accumulate_tree_njit(
        order,
        taxa,
        firstchild,
        nextsib,
        childcount,
        weights,
        root,
        fake_root,
        sum_out,
        count_out):
    """
    Accumulate all leaf-pair distances of one tree.

    Parameters
    ----------
    order      : int64[n_nodes]     postorder node sequence
    taxa       : int32[n_nodes]     taxon ID per node (-1 internal)
    firstchild : int32[n_nodes]
    nextsib    : int32[n_nodes]
    childcount : int32[n_nodes]
    weights    : float64[n_nodes]   weight of the edge above each node
    root       : int
    fake_root  : bool               only the first root edge is weighted
    sum_out    : float64[n, n]      upper triangle updated in place
    count_out  : int64[n, n]        upper triangle updated in place

    Returns
    -------
    float   Largest pairwise distance seen in this tree (0.0 if none).
    """
    n_nodes = order.shape[0]
    lo = np.zeros(n_nodes, dtype=np.int64)
    hi = np.zeros(n_nodes, dtype=np.int64)
    n_leaves = 0
    for k in range(n_nodes):
        if childcount[k] == 0:
            n_leaves += 1
    partial = np.zeros(n_leaves, dtype=np.float64)
    slot_taxon = np.zeros(n_leaves, dtype=np.int64)

    n_slots = 0
    max_dis = 0.0

    for k in range(n_nodes):
        node = order[k]

        if childcount[node] == 0:
            lo[node] = n_slots
            partial[n_slots] = 0.0
            slot_taxon[n_slots] = taxa[node]
            n_slots += 1
            hi[node] = n_slots
            continue

        # Add the child edge weight to every leaf below each child
        first = True
        c = firstchild[node]
        last = c
        while c != -1:
            if first or not (node == root and fake_root):
                w = weights[c]
                for s in range(lo[c], hi[c]):
                    partial[s] += w
            first = False
            last = c
            c = nextsib[c]

        # This node is the LCA of every pair drawn from two distinct children
        c1 = firstchild[node]
        while c1 != -1:
            c2 = nextsib[c1]
            while c2 != -1:
                for i in range(lo[c1], hi[c1]):
                    ti = slot_taxon[i]
                    di = partial[i]
                    for j in range(lo[c2], hi[c2]):
                        tj = slot_taxon[j]
                        dist = di + partial[j]
                        if ti < tj:
                            sum_out[ti, tj] += dist
                            count_out[ti, tj] += 1
                        else:
                            sum_out[tj, ti] += dist
                            count_out[tj, ti] += 1
                        if dist > max_dis:
                            max_dis = dist
                c2 = nextsib[c2]
            c1 = nextsib[c1]

        lo[node] = lo[firstchild[node]]
        hi[node] = hi[last]

    return max_dis
