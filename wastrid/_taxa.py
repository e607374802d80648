"""
_taxa.py
========
Interning of taxon names into dense integer IDs.
"""

import logging
from typing import Dict, Iterator, List

logger = logging.getLogger(__name__)


class TaxonSet:
    """
    Bijection between taxon names and IDs ``0 .. n-1`` in insertion order.

    The set grows while gene trees are being read and is frozen once the
    whole collection has been parsed; requesting an unseen name after that
    raises ``KeyError``.

    Attributes
    ----------
    names : list[str]        names[id] = taxon name
    to_id : dict[str, int]   inverse mapping
    """

    def __init__(self) -> None:
        self.names: List[str] = []
        self.to_id: Dict[str, int] = {}
        self._frozen = False

    @classmethod
    def from_names(cls, names) -> "TaxonSet":
        """Build a TaxonSet holding *names* in the given order."""
        ts = cls()
        for name in names:
            ts.request(name)
        return ts

    @classmethod
    def placeholders(cls, n: int) -> "TaxonSet":
        """TaxonSet whose i-th name is ``str(i)``."""
        return cls.from_names(str(i) for i in range(n))

    def request(self, name: str) -> int:
        """Return the ID of *name*, assigning the next free ID if unseen."""
        tid = self.to_id.get(name)
        if tid is not None:
            return tid
        if self._frozen:
            raise KeyError(f"Taxon '{name}' is not in the frozen taxon set.")
        tid = len(self.names)
        self.names.append(name)
        self.to_id[name] = tid
        return tid

    def retrieve(self, name: str) -> int:
        """Return the ID of an existing *name*; ``KeyError`` if unknown."""
        if name not in self.to_id:
            raise KeyError(f"Taxon '{name}' not found in taxon set.")
        return self.to_id[name]

    def freeze(self) -> None:
        self._frozen = True
        logger.debug("Taxon set frozen at %d taxa", len(self.names))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name) -> bool:
        return name in self.to_id

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __repr__(self) -> str:
        return f"TaxonSet(n={len(self.names)}, frozen={self._frozen})"
