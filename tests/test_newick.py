"""
tests/test_newick.py
====================
Newick reader and writer.

Covers support rescaling, fake-root unification, comments and quoted
labels, every ParseError path, and writer round-trips.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from wastrid._config import WastridConfig
from wastrid._exceptions import NewickParseError
from wastrid._newick import parse_newick, to_newick
from wastrid._taxa import TaxonSet


def parse(newick, config=None):
    taxa = TaxonSet()
    return parse_newick(newick, taxa, config), taxa


def node_of(tree, taxa, name):
    tid = taxa.retrieve(name)
    return int(np.flatnonzero((tree.taxa == tid) & (tree.childcount == 0))[0])


def clusters(tree, taxa):
    """Leaf-name sets below every non-root internal node."""
    below = {}
    out = set()
    for n in tree.postorder():
        if tree.is_leaf(n):
            below[n] = frozenset([taxa.names[int(tree.taxa[n])]])
            continue
        below[n] = frozenset().union(*(below[c] for c in tree.children(n)))
        if n != tree.root:
            out.add(below[n])
    return out


# ======================================================================== #
# 1. Labels, lengths and support                                            #
# ======================================================================== #


class TestParse:
    def test_taxa_interned_in_order(self):
        tree, taxa = parse("((A,B),(C,D));")
        assert taxa.names == ["A", "B", "C", "D"]
        assert tree.n_leaves == 4

    def test_lengths(self):
        tree, taxa = parse("(A:0.1,B:0.2,(C:0.3,D:0.4):0.5);")
        assert tree.lengths[node_of(tree, taxa, "A")] == pytest.approx(0.1)
        assert tree.lengths[node_of(tree, taxa, "D")] == pytest.approx(0.4)
        cd = int(tree.parent[node_of(tree, taxa, "C")])
        assert tree.lengths[cd] == pytest.approx(0.5)

    def test_leaf_support_is_one(self):
        tree, taxa = parse("(A,B,(C,D)0.3);")
        for name in "ABCD":
            assert tree.support[node_of(tree, taxa, name)] == 1.0

    def test_internal_support_rescaled(self):
        cfg = WastridConfig(lower_bound=0.0, upper_bound=100.0)
        tree, taxa = parse("(A,B,(C,D)75);", cfg)
        cd = int(tree.parent[node_of(tree, taxa, "C")])
        assert tree.support[cd] == pytest.approx(0.75)

    def test_support_clamped_at_zero(self):
        cfg = WastridConfig(lower_bound=50.0, upper_bound=100.0)
        tree, taxa = parse("(A,B,(C,D)20);", cfg)
        cd = int(tree.parent[node_of(tree, taxa, "C")])
        assert tree.support[cd] == 0.0

    def test_unlabelled_internal_support_zero(self):
        tree, taxa = parse("(A,B,(C,D));")
        cd = int(tree.parent[node_of(tree, taxa, "C")])
        assert tree.support[cd] == 0.0

    def test_comments_skipped(self):
        tree, taxa = parse("(A[&x=1],B,[note](C,D)0.5[y]);")
        assert taxa.names == ["A", "B", "C", "D"]
        assert tree.n_leaves == 4

    def test_whitespace_tolerated(self):
        tree, taxa = parse("  ( A : 1 , B : 2 , C : 3 ) ;  ")
        assert taxa.names == ["A", "B", "C"]
        assert tree.lengths[node_of(tree, taxa, "B")] == pytest.approx(2.0)

    def test_quoted_label(self):
        tree, taxa = parse("('Homo sapiens',B,'it''s');")
        assert taxa.names == ["Homo sapiens", "B", "it's"]

    def test_missing_semicolon_tolerated(self):
        tree, taxa = parse("(A,B,C)")
        assert tree.n_leaves == 3

    def test_single_leaf(self):
        tree, taxa = parse("A;")
        assert tree.n_nodes == 1
        assert tree.is_leaf(tree.root)
        assert taxa.names == ["A"]

    def test_shared_taxon_set(self):
        taxa = TaxonSet()
        parse_newick("(A,B,C);", taxa)
        t2 = parse_newick("(C,D,A);", taxa)
        assert taxa.names == ["A", "B", "C", "D"]
        assert sorted(t2.taxon_ids()) == [0, 2, 3]


# ======================================================================== #
# 2. Fake root                                                              #
# ======================================================================== #


class TestFakeRoot:
    def test_two_child_root_flagged(self):
        tree, _ = parse("((A,B),(C,D));")
        assert tree.fake_root

    def test_three_child_root_not_flagged(self):
        tree, _ = parse("(A,B,(C,D));")
        assert not tree.fake_root

    def test_root_edges_unified(self):
        tree, _ = parse("((A:0.1,B:0.2)0.95:0.5,(C:0.3,D:0.4)0.87:0.6);")
        c1, c2 = tree.children(tree.root)
        assert tree.support[c1] == pytest.approx(0.95)
        assert tree.support[c2] == pytest.approx(0.95)
        assert tree.lengths[c1] == pytest.approx(1.1)
        assert tree.lengths[c2] == pytest.approx(1.1)

    def test_leaf_child_of_fake_root(self):
        tree, taxa = parse("(A:1,(B:1,C:1)0.4:2);")
        a = node_of(tree, taxa, "A")
        bc = int(tree.parent[node_of(tree, taxa, "B")])
        # max(1.0 for the leaf, 0.4)
        assert tree.support[a] == 1.0
        assert tree.support[bc] == 1.0
        assert tree.lengths[a] == pytest.approx(3.0)
        assert tree.lengths[bc] == pytest.approx(3.0)


# ======================================================================== #
# 3. Errors                                                                 #
# ======================================================================== #


class TestParseErrors:
    @pytest.mark.parametrize(
        "newick",
        [
            "",
            ";",
            "   ",
            "((A,B),(C,D);",
            "(A,B));",
            "(A:abc,B);",
            "(A,B)xyz;",
            "(A,B,A);",
            "(A,,B);",
            "(A,B)[unclosed;",
            "('A,B);",
            "A,B;",
        ],
    )
    def test_malformed(self, newick):
        with pytest.raises(NewickParseError):
            parse(newick)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            parse("(A:x,B);")

    def test_position_reported(self):
        with pytest.raises(NewickParseError) as info:
            parse("(A:x,B);")
        assert info.value.position == 3
        assert "char 3" in str(info.value)

    def test_frozen_taxon_set_rejects_new_name(self):
        taxa = TaxonSet.from_names(["A", "B"])
        taxa.freeze()
        with pytest.raises(KeyError):
            parse_newick("(A,B,C);", taxa)


# ======================================================================== #
# 4. Writer                                                                 #
# ======================================================================== #


class TestWriter:
    def test_topology_only(self):
        tree, taxa = parse("((A:1,B:2)0.9:3,(C:1,D:1):1,E:5);")
        assert to_newick(tree, taxa) == "((A,B),(C,D),E);"

    def test_exact_round_trip_with_lengths(self):
        src = "(A:0.1,B:0.2,(C:0.3,D:0.4):0.5);"
        tree, taxa = parse(src)
        assert to_newick(tree, taxa, lengths=True) == src

    def test_round_trip_preserves_clusters_and_lengths(self):
        src = "(a:0.25,((b:1.5,c:2.0):0.75,(d:0.1,e:0.2,f:0.3):0.4):1.0,g:3.0);"
        tree, taxa = parse(src)
        again, taxa2 = parse(to_newick(tree, taxa, lengths=True))
        assert clusters(tree, taxa) == clusters(again, taxa2)
        for name in "abcdefg":
            assert again.lengths[node_of(again, taxa2, name)] == pytest.approx(
                tree.lengths[node_of(tree, taxa, name)]
            )

    def test_round_trip_fake_root_topology(self):
        tree, taxa = parse("((A,B),(C,(D,E)));")
        again, taxa2 = parse(to_newick(tree, taxa))
        assert again.fake_root
        assert clusters(tree, taxa) == clusters(again, taxa2)

    def test_special_names_quoted(self):
        tree, taxa = parse("('x y',B,C);")
        assert to_newick(tree, taxa) == "('x y',B,C);"

    def test_single_leaf(self):
        tree, taxa = parse("A;")
        assert to_newick(tree, taxa) == "A;"
