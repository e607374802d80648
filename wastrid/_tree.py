"""
_tree.py
========
A single rooted phylogenetic tree stored as a set of parallel numpy arrays.

Public API
----------
  Tree
      Immutable arena of nodes.  Built by ``TreeBuilder`` (the Newick parser,
      the UPGMA* imputer and the optimizer adapter all use it).

  .children(node)      lazy iterator over direct children
  .postorder()         lazy iterator, descendants strictly before ancestors
  .postorder_array()   same order as an int64 array (cached)
  .is_leaf(node) / .is_root(node)
  .leaves()            leaf node IDs in postorder

Memory layout
-------------
Child lists are singly linked through ``firstchild`` / ``nextsib`` so that a
parser can attach a child in O(1) without growing per-node arrays.  All
per-node data lives in flat arrays indexed by node ID:

  taxa       : int32   [n_nodes]   taxon ID for leaves; -1 for internal nodes
  parent     : int32   [n_nodes]   parent ID; -1 for the root
  firstchild : int32   [n_nodes]   first child; -1 for leaves
  nextsib    : int32   [n_nodes]   next sibling; -1 for the last child
  childcount : int32   [n_nodes]   length of the firstchild/nextsib chain
  support    : float64 [n_nodes]   rescaled support of the edge to the parent
  lengths    : float64 [n_nodes]   length of the edge to the parent

The root index is stored explicitly in ``root``; node 0 is never treated as
a sentinel.

numba notes
-----------
Kernels in ``_cpu_kernels`` accept these arrays directly.  The postorder
produced here has the property that every subtree occupies a contiguous run
of the sequence, and children's runs appear in ``children()`` order.
"""

from typing import Iterator, List

import numpy as np


class Tree:
    """
    A rooted tree with arbitrary out-degree.

    Attributes (all read-only after construction)
    ----------------------------------------------
    n_nodes   : int    Number of nodes.
    n_leaves  : int    Number of leaves.
    root      : int    Node ID of the root.
    fake_root : bool   True when the root is an artificial bifurcation of an
                       unrooted input; its two child edges are one logical
                       edge.
    """

    def __init__(
        self,
        taxa,
        parent,
        firstchild,
        nextsib,
        childcount,
        support,
        lengths,
        root: int,
        fake_root: bool,
    ) -> None:
        self.taxa = np.asarray(taxa, dtype=np.int32)
        self.parent = np.asarray(parent, dtype=np.int32)
        self.firstchild = np.asarray(firstchild, dtype=np.int32)
        self.nextsib = np.asarray(nextsib, dtype=np.int32)
        self.childcount = np.asarray(childcount, dtype=np.int32)
        self.support = np.asarray(support, dtype=np.float64)
        self.lengths = np.asarray(lengths, dtype=np.float64)
        self.root: int = int(root)
        self.fake_root: bool = bool(fake_root)

        self.n_nodes: int = int(self.taxa.shape[0])
        self.n_leaves: int = int(np.count_nonzero(self.childcount == 0))

        for arr in (
            self.taxa,
            self.parent,
            self.firstchild,
            self.nextsib,
            self.childcount,
            self.support,
            self.lengths,
        ):
            arr.setflags(write=False)

        self._postorder_cache = None

    # ================================================================== #
    # Traversal                                                            #
    # ================================================================== #

    def children(self, node: int) -> Iterator[int]:
        """
        Yield the direct children of *node* in attachment order.

        Each call walks the firstchild/nextsib chain afresh, so the iterator
        is cheap to restart.
        """
        c = int(self.firstchild[node])
        nextsib = self.nextsib
        while c != -1:
            yield c
            c = int(nextsib[c])

    def postorder(self) -> Iterator[int]:
        """
        Yield every node exactly once, all descendants before their ancestor.

        Two-stack algorithm: pop from the work stack into an order buffer,
        pushing the popped node's children; the buffer reversed is a
        postorder.  No recursion, so depth is not bounded by the call stack.
        """
        work = [self.root]
        order: List[int] = []
        while work:
            n = work.pop()
            order.append(n)
            work.extend(self.children(n))
        while order:
            yield order.pop()

    def postorder_array(self) -> np.ndarray:
        """Return ``postorder()`` as a cached, read-only int64 array."""
        if self._postorder_cache is None:
            arr = np.fromiter(self.postorder(), dtype=np.int64, count=self.n_nodes)
            arr.setflags(write=False)
            self._postorder_cache = arr
        return self._postorder_cache

    def is_leaf(self, node: int) -> bool:
        return int(self.childcount[node]) == 0

    def is_root(self, node: int) -> bool:
        return node == self.root

    def leaves(self) -> List[int]:
        """Leaf node IDs in postorder."""
        return [n for n in self.postorder() if self.is_leaf(n)]

    def taxon_ids(self) -> np.ndarray:
        """Taxon IDs present in this tree, sorted ascending."""
        return np.sort(self.taxa[self.childcount == 0])

    def __repr__(self) -> str:
        return (
            f"Tree(n_nodes={self.n_nodes}, n_leaves={self.n_leaves}, "
            f"root={self.root}, fake_root={self.fake_root})"
        )


class TreeBuilder:
    """
    Mutable staging area for a ``Tree``.

    Nodes are appended with ``add_node`` and may be attached to a parent at
    creation time or later with ``attach``.  ``build`` freezes the arrays
    into a ``Tree``.
    """

    def __init__(self) -> None:
        self.taxa: List[int] = []
        self.parent: List[int] = []
        self.firstchild: List[int] = []
        self.nextsib: List[int] = []
        self.childcount: List[int] = []
        self.support: List[float] = []
        self.lengths: List[float] = []
        # last child per node, so attach() is O(1)
        self._lastchild: List[int] = []

    def __len__(self) -> int:
        return len(self.taxa)

    def add_node(
        self,
        parent: int = -1,
        taxon: int = -1,
        support: float = 0.0,
        length: float = 0.0,
    ) -> int:
        """Append a node and return its ID; attach it to *parent* if given."""
        node = len(self.taxa)
        self.taxa.append(taxon)
        self.parent.append(-1)
        self.firstchild.append(-1)
        self.nextsib.append(-1)
        self.childcount.append(0)
        self.support.append(support)
        self.lengths.append(length)
        self._lastchild.append(-1)
        if parent != -1:
            self.attach(parent, node)
        return node

    def attach(self, parent: int, child: int) -> None:
        """Append *child* to the end of *parent*'s child list."""
        last = self._lastchild[parent]
        if last == -1:
            self.firstchild[parent] = child
        else:
            self.nextsib[last] = child
        self._lastchild[parent] = child
        self.parent[child] = parent
        self.childcount[parent] += 1

    def child_list(self, node: int) -> List[int]:
        out = []
        c = self.firstchild[node]
        while c != -1:
            out.append(c)
            c = self.nextsib[c]
        return out

    def build(self, root: int = 0, fake_root: bool = False) -> Tree:
        return Tree(
            self.taxa,
            self.parent,
            self.firstchild,
            self.nextsib,
            self.childcount,
            self.support,
            self.lengths,
            root=root,
            fake_root=fake_root,
        )
