"""
_utils.py
=========
Small standalone helpers that don't depend on the main classes.
"""

import os
from typing import Iterator, Tuple, Union


def read_newick_lines(
    path: Union[str, "os.PathLike[str]"],
) -> Iterator[Tuple[int, str]]:
    """
    Yield ``(line_no, newick)`` for every non-blank line of *path*.

    Line numbers are 1-based and count blank lines, so they match what an
    editor shows.  ``OSError`` from ``open`` propagates unchanged.
    """
    with open(path, encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.strip()
            if line:
                yield line_no, line
