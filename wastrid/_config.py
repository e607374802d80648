"""
_config.py
==========
Run configuration.

``WastridConfig`` is immutable once built.  It is normally created by the
CLI, but library callers construct it directly:

>>> from wastrid import WastridConfig, Mode
>>> cfg = WastridConfig(mode=Mode.INTERNODE, threads=4)
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class Mode(str, Enum):
    """How a gene-tree edge contributes to the distance between two leaves."""

    SUPPORT = "support"
    INTERNODE = "internode"
    NLENGTH = "nlength"


class WastridConfig(BaseModel):
    """
    Configuration for one species-tree estimation run.

    Attributes
    ----------
    mode        : Mode    Distance definition used for the gene trees.
    lower_bound : float   Raw support value mapped to 0.
    upper_bound : float   Raw support value mapped to 1.
    threads     : int     Worker threads for the accumulation stage.
    impute_mode : Mode    Distance definition used when writing UPGMA*
                          estimates back into missing cells.  Only
                          INTERNODE and NLENGTH are meaningful here: the
                          imputed tree carries no support values.
    backend     : str     Accumulation backend: 'best', 'numba' or 'python'.
    """

    mode: Mode = Field(default=Mode.SUPPORT)
    lower_bound: float = Field(default=0.0)
    upper_bound: float = Field(default=1.0)
    threads: int = Field(default=1, ge=1)
    impute_mode: Mode = Field(default=Mode.INTERNODE)
    backend: str = Field(default="best")

    model_config = {"frozen": True}

    @field_validator("impute_mode")
    @classmethod
    def validate_impute_mode(cls, value: Mode) -> Mode:
        if value == Mode.SUPPORT:
            raise ValueError("impute_mode must be 'internode' or 'nlength'")
        return value

    @model_validator(mode="after")
    def validate_bounds(self) -> "WastridConfig":
        if not self.upper_bound > self.lower_bound:
            raise ValueError(
                f"upper_bound ({self.upper_bound}) must exceed "
                f"lower_bound ({self.lower_bound})"
            )
        return self

    def rescale_support(self, raw: float) -> float:
        """Map a raw support value linearly onto [0, 1], clamping below at 0."""
        rg = self.upper_bound - self.lower_bound
        return max(0.0, (raw - self.lower_bound) / rg)
