"""
_newick.py
==========
Newick reader and writer for ``Tree``.

Reader
------
A single left-to-right character scan with a "current node" cursor:

  (   open a new child of the cursor and descend into it
  )   ascend to the parent
  ,   close the cursor and open a sibling
  :   branch length, terminated by one of  , ) ; [
  [   comment, skipped up to the matching ]
  ;   end of tree

Any other run of characters is a label.  On a node without children it is a
taxon name (interned through the TaxonSet); on an internal node it is a raw
support value, rescaled through the run configuration.

When the root has exactly two children the input is taken to be an unrooted
tree drawn with an arbitrary root.  The tree is flagged ``fake_root`` and the
two root edges are unified: both get the larger support and the summed length.

Writer
------
``to_newick`` builds one string per node in postorder, joining children's
strings inside parentheses.  Branch lengths are written only on request.
"""

import logging
from typing import List, Optional

from wastrid._config import WastridConfig
from wastrid._exceptions import NewickParseError
from wastrid._taxa import TaxonSet
from wastrid._tree import Tree, TreeBuilder

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = WastridConfig()

# characters that end a label token
_LABEL_STOP = "(),:;["
# characters that end a branch-length token
_LENGTH_STOP = ",);["
_WHITESPACE = " \t\r\n"


def parse_newick(
    newick: str,
    taxon_set: TaxonSet,
    config: Optional[WastridConfig] = None,
) -> Tree:
    """
    Parse one Newick line into a ``Tree``.

    Parameters
    ----------
    newick    : str            One tree; the trailing ';' is optional.
    taxon_set : TaxonSet       Leaf names are interned here.
    config    : WastridConfig  Supplies the support rescaling bounds.

    Returns
    -------
    Tree

    Raises
    ------
    NewickParseError
        Empty input, unbalanced parentheses, an unparsable length or support
        token, an unlabelled leaf, or a taxon repeated within the tree.
    """
    if config is None:
        config = _DEFAULT_CONFIG

    s = newick.strip()
    n_chars = len(s)
    if n_chars == 0 or s == ";":
        raise NewickParseError("empty tree")

    b = TreeBuilder()
    root = b.add_node()
    n = root
    depth = 0
    seen_taxa = set()

    i = 0
    while i < n_chars:
        c = s[i]

        if c in _WHITESPACE:
            i += 1
            continue

        if c == ";":
            break

        if c == "[":
            j = s.find("]", i + 1)
            if j < 0:
                raise NewickParseError("unterminated comment", i)
            i = j + 1
            continue

        if c == "(":
            if b.childcount[n] > 0 or b.taxa[n] != -1:
                raise NewickParseError("unexpected '('", i)
            n = b.add_node(parent=n)
            depth += 1
            i += 1
            continue

        if c == ")":
            if depth == 0:
                raise NewickParseError("unbalanced ')'", i)
            n = b.parent[n]
            depth -= 1
            i += 1
            continue

        if c == ",":
            if depth == 0:
                raise NewickParseError("',' outside of parentheses", i)
            n = b.add_node(parent=b.parent[n])
            i += 1
            continue

        if c == ":":
            j = i + 1
            while j < n_chars and s[j] not in _LENGTH_STOP:
                j += 1
            token = s[i + 1 : j].strip()
            if token:
                try:
                    b.lengths[n] = float(token)
                except ValueError:
                    raise NewickParseError(
                        f"invalid branch length {token!r}", i + 1
                    ) from None
            i = j
            continue

        # Label: quoted or bare
        start = i
        if c == "'":
            token, i = _read_quoted(s, i)
        else:
            j = i
            while j < n_chars and s[j] not in _LABEL_STOP:
                j += 1
            token = s[i:j].strip()
            i = j

        if b.childcount[n] == 0:
            if b.taxa[n] != -1:
                raise NewickParseError(f"second label {token!r} on leaf", start)
            tid = taxon_set.request(token)
            if tid in seen_taxa:
                raise NewickParseError(f"taxon {token!r} appears twice", start)
            seen_taxa.add(tid)
            b.taxa[n] = tid
            b.support[n] = 1.0
        else:
            try:
                raw = float(token)
            except ValueError:
                raise NewickParseError(
                    f"invalid support value {token!r}", start
                ) from None
            b.support[n] = config.rescale_support(raw)

    if depth != 0:
        raise NewickParseError(f"unterminated tree ({depth} unclosed '(')")

    for node in range(len(b)):
        if b.childcount[node] == 0 and b.taxa[node] == -1:
            raise NewickParseError(f"unlabelled leaf (node {node})")

    fake_root = False
    if b.childcount[root] == 2:
        c1, c2 = b.child_list(root)
        fake_root = True
        supp = max(b.support[c1], b.support[c2])
        b.support[c1] = supp
        b.support[c2] = supp
        length = b.lengths[c1] + b.lengths[c2]
        b.lengths[c1] = length
        b.lengths[c2] = length

    return b.build(root=root, fake_root=fake_root)


def to_newick(tree: Tree, taxon_set: TaxonSet, lengths: bool = False) -> str:
    """
    Serialise *tree* to a Newick string terminated by ';'.

    Parameters
    ----------
    tree      : Tree
    taxon_set : TaxonSet   Maps leaf taxon IDs back to names.
    lengths   : bool       Emit ':length' on every non-root edge.
    """
    reps: List[Optional[str]] = [None] * tree.n_nodes
    names = taxon_set.names
    for node in tree.postorder():
        if tree.is_leaf(node):
            rep = _format_label(names[int(tree.taxa[node])])
        else:
            parts = []
            for c in tree.children(node):
                parts.append(reps[c])
                reps[c] = None
            rep = "(" + ",".join(parts) + ")"
        if lengths and node != tree.root:
            rep += ":" + repr(float(tree.lengths[node]))
        reps[node] = rep
    return reps[tree.root] + ";"


def _read_quoted(s: str, i: int):
    """Read a single-quoted label starting at ``s[i] == "'"``; '' escapes a quote."""
    n_chars = len(s)
    buf = []
    j = i + 1
    while j < n_chars:
        if s[j] == "'":
            if j + 1 < n_chars and s[j + 1] == "'":
                buf.append("'")
                j += 2
                continue
            return "".join(buf), j + 1
        buf.append(s[j])
        j += 1
    raise NewickParseError("unterminated quoted label", i)


def _format_label(name: str) -> str:
    if any(ch in name for ch in "(),:;[]' \t"):
        return "'" + name.replace("'", "''") + "'"
    return name
