"""
_collection.py
==============
An ordered, immutable collection of gene trees over one shared TaxonSet.

Public API
----------
  TreeCollection.from_newick(path, config)
  TreeCollection.from_strings(newicks, config)

  .taxon_set   TaxonSet (frozen after construction)
  .trees       list[Tree], one per non-blank input line
  .ngenes()    number of gene trees
  .ntaxa()     number of distinct taxa
"""

import logging
from typing import Iterable, List, Optional, Tuple

import numpy as np

from wastrid._config import WastridConfig
from wastrid._exceptions import NewickParseError
from wastrid._logging import log_collection_statistics
from wastrid._newick import parse_newick
from wastrid._taxa import TaxonSet
from wastrid._tree import Tree
from wastrid._utils import read_newick_lines

logger = logging.getLogger(__name__)


class TreeCollection:
    """
    Gene trees plus the TaxonSet their leaves are interned into.

    Parameters
    ----------
    taxon_set : TaxonSet
    trees     : list[Tree]

    Prefer the ``from_newick`` / ``from_strings`` constructors, which parse
    the trees and freeze the TaxonSet.
    """

    def __init__(self, taxon_set: TaxonSet, trees: List[Tree]) -> None:
        self.taxon_set = taxon_set
        self.trees = trees

    @classmethod
    def from_newick(
        cls, path, config: Optional[WastridConfig] = None
    ) -> "TreeCollection":
        """
        Read newline-delimited Newick gene trees from *path*.

        Raises
        ------
        OSError            if the file cannot be read.
        NewickParseError   on the first malformed line (with its line number).
        """
        logger.info("Reading gene trees from %s", path)
        return cls._from_numbered(read_newick_lines(path), config)

    @classmethod
    def from_strings(
        cls, newicks: Iterable[str], config: Optional[WastridConfig] = None
    ) -> "TreeCollection":
        """Build a collection from an iterable of Newick strings; blank entries are skipped."""
        numbered = (
            (i, s.strip()) for i, s in enumerate(newicks, start=1) if s.strip()
        )
        return cls._from_numbered(numbered, config)

    @classmethod
    def _from_numbered(
        cls,
        numbered: Iterable[Tuple[int, str]],
        config: Optional[WastridConfig],
    ) -> "TreeCollection":
        taxon_set = TaxonSet()
        trees = []
        for line_no, newick in numbered:
            try:
                trees.append(parse_newick(newick, taxon_set, config))
            except NewickParseError as e:
                raise e.at_line(line_no) from None
        taxon_set.freeze()

        collection = cls(taxon_set, trees)
        collection._log_statistics()
        return collection

    def ngenes(self) -> int:
        return len(self.trees)

    def ntaxa(self) -> int:
        return len(self.taxon_set)

    def presence_counts(self) -> np.ndarray:
        """int64 [ntaxa]: number of gene trees each taxon appears in."""
        counts = np.zeros(self.ntaxa(), dtype=np.int64)
        for t in self.trees:
            counts[t.taxon_ids()] += 1
        return counts

    def _log_statistics(self) -> None:
        n_fake = sum(1 for t in self.trees if t.fake_root)
        mean_leaves = (
            float(self.presence_counts().sum()) / self.ngenes()
            if self.trees
            else 0.0
        )
        log_collection_statistics(
            self.ngenes(), self.ntaxa(), mean_leaves, n_fake
        )

    def __len__(self) -> int:
        return len(self.trees)

    def __repr__(self) -> str:
        return f"TreeCollection(ngenes={self.ngenes()}, ntaxa={self.ntaxa()})"
