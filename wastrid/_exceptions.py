"""
_exceptions.py
==============
Exception and warning types raised by wastrid.

Every fatal error derives from ``WastridError`` so callers (and the CLI) can
catch the whole family with one clause.  Each concrete type also derives from
the builtin exception it refines, so code written against ``ValueError`` or
``ArithmeticError`` keeps working.
"""

from typing import Optional


class WastridError(Exception):
    """Base exception for wastrid errors."""


class NewickParseError(WastridError, ValueError):
    """
    Raised when a Newick line cannot be parsed.

    Attributes
    ----------
    reason   : str            What went wrong.
    position : int | None     Character offset in the line, if known.
    line_no  : int | None     1-based line number in the input file, if known.
    """

    def __init__(
        self,
        reason: str,
        position: Optional[int] = None,
        line_no: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.position = position
        self.line_no = line_no
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.line_no is not None:
            where.append(f"line {self.line_no}")
        if self.position is not None:
            where.append(f"char {self.position}")
        if where:
            return f"Malformed Newick ({', '.join(where)}): {self.reason}"
        return f"Malformed Newick: {self.reason}"

    def at_line(self, line_no: int) -> "NewickParseError":
        """Return a copy of this error annotated with *line_no*."""
        return NewickParseError(self.reason, self.position, line_no)


class NumericError(WastridError, ArithmeticError):
    """Raised when a non-finite distance reaches a step that needs a total order."""


class ImputationFallbackWarning(UserWarning):
    """
    Emitted when UPGMA* had to join two clusters with no known distance
    between the remaining groups.  The run completes, but the imputed
    topology is arbitrary at that merge.
    """
