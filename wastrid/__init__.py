"""
wastrid
=======

Species tree estimation from a collection of gene trees.

Every gene tree is converted into pairwise taxon distances (internode
counts, support-weighted path lengths, or normalised branch lengths).  The
distances are averaged over all gene trees, pairs that never co-occur are
imputed with UPGMA*, and the completed matrix is handed to a balanced
minimum-evolution search.

Main Classes
------------
TreeCollection : Gene trees read from a Newick file, over one TaxonSet
Tree : Single rooted tree stored as parallel numpy arrays
TaxonSet : Taxon name <-> dense integer ID
WastridConfig : Run configuration (distance mode, support bounds, threads)
DistanceAccumulator : SUM/COUNT matrices that gene trees are added into
DistanceMatrix : Averaged distances with a missing-data mask

Pipeline
--------
estimate_species_tree : Gene trees -> Newick species tree
build_distance_matrix : Gene trees -> completed DistanceMatrix
upgma_star : Impute a clustering tree from an incomplete matrix

Context Managers
----------------
quiet : Suppress logging during operations
suppress_logger : Suppress specific logger
suppress_warnings : Suppress specific warnings
use_backend : Force a specific accumulation backend

Examples
--------
>>> from wastrid import TreeCollection, WastridConfig, Mode, estimate_species_tree
>>> trees = TreeCollection.from_strings(
...     ['((A,B),(C,D));', '((A,B),(C,E));'], WastridConfig(mode=Mode.INTERNODE)
... )
>>> newick = estimate_species_tree(trees, WastridConfig(mode=Mode.INTERNODE))
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._taxa import TaxonSet
from ._tree import Tree, TreeBuilder
from ._collection import TreeCollection
from ._config import Mode, WastridConfig
from ._distance import DistanceAccumulator, DistanceMatrix
from ._upgma import ImputationReport, upgma_star

# Errors
from ._exceptions import (
    WastridError,
    NewickParseError,
    NumericError,
    ImputationFallbackWarning,
)

# Pipeline
from ._newick import parse_newick, to_newick
from ._reducer import reduce_trees
from ._optimizer import optimize_tree
from ._pipeline import (
    build_distance_matrix,
    estimate_species_tree,
    distance_matrix_text,
)

# Context managers
from ._context import (
    suppress_logger,
    quiet,
    suppress_warnings,
    use_backend,
)

# Backend information
from ._backend import get_available_backends

__all__ = [
    # Main classes
    "TaxonSet",
    "Tree",
    "TreeBuilder",
    "TreeCollection",
    "Mode",
    "WastridConfig",
    "DistanceAccumulator",
    "DistanceMatrix",
    "ImputationReport",
    # Errors
    "WastridError",
    "NewickParseError",
    "NumericError",
    "ImputationFallbackWarning",
    # Pipeline
    "parse_newick",
    "to_newick",
    "reduce_trees",
    "upgma_star",
    "optimize_tree",
    "build_distance_matrix",
    "estimate_species_tree",
    "distance_matrix_text",
    # Context managers
    "suppress_logger",
    "quiet",
    "suppress_warnings",
    "use_backend",
    # Backend information
    "get_available_backends",
    # Version info
    "__version__",
]
