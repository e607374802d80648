"""
_pipeline.py
============
End-to-end driver.

  read  ->  accumulate (thread pool)  ->  flatten  ->  impute (if needed)
        ->  optimise  ->  Newick species tree
                      or  PHYLIP distance matrix

Every stage either completes or raises; nothing partial is returned.
"""

import logging
from typing import Optional, Tuple

from wastrid._collection import TreeCollection
from wastrid._config import Mode, WastridConfig
from wastrid._distance import DistanceMatrix
from wastrid._exceptions import WastridError
from wastrid._logging import log_missing_statistics, log_run_configuration
from wastrid._newick import to_newick
from wastrid._optimizer import optimize_tree
from wastrid._reducer import reduce_trees
from wastrid._upgma import ImputationReport, upgma_star

logger = logging.getLogger(__name__)


def build_distance_matrix(
    collection: TreeCollection, config: Optional[WastridConfig] = None
) -> Tuple[DistanceMatrix, Optional[ImputationReport]]:
    """
    Average the gene-tree distances of *collection* and fill any gaps.

    Returns
    -------
    (DistanceMatrix, ImputationReport or None)
        The report is None when every taxon pair was observed.
    """
    if config is None:
        config = WastridConfig()
    if collection.ngenes() == 0:
        raise WastridError("No gene trees to summarise.")

    acc = reduce_trees(
        collection.trees,
        collection.ntaxa(),
        config.mode,
        threads=config.threads,
        backend=config.backend,
    )
    if config.mode == Mode.NLENGTH and acc.norm_factor is None:
        raise WastridError(
            "No gene tree has positive branch lengths; NLength mode needs "
            "branch lengths."
        )
    dm = acc.flatten()

    n_missing = len(dm.missing_pairs())
    log_missing_statistics(n_missing, dm.n_pairs)
    if n_missing == 0:
        return dm, None

    logger.info(
        'Imputing missing distances in mode "%s"', config.impute_mode.value
    )
    upgma_tree, report = upgma_star(dm)
    filled = dm.impute_from(upgma_tree, config.impute_mode, config.backend)
    logger.info("Imputed %d taxon pair(s)", filled)
    return dm, report


def estimate_species_tree(
    collection: TreeCollection, config: Optional[WastridConfig] = None
) -> str:
    """
    Run the whole pipeline and return the species tree as Newick text.

    Branch lengths are written only in NLength mode; in the other modes the
    optimiser's lengths are in units with no biological reading.
    """
    if config is None:
        config = WastridConfig()
    log_run_configuration(config)
    dm, _ = build_distance_matrix(collection, config)
    tree = optimize_tree(dm)
    return to_newick(
        tree, collection.taxon_set, lengths=config.mode == Mode.NLENGTH
    )


def distance_matrix_text(
    collection: TreeCollection, config: Optional[WastridConfig] = None
) -> str:
    """Run up to imputation and return the completed matrix as PHYLIP text."""
    if config is None:
        config = WastridConfig()
    log_run_configuration(config)
    dm, _ = build_distance_matrix(collection, config)
    return dm.to_phylip(collection.taxon_set)
