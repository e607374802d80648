"""
tests/test_context.py
=====================
Context managers and logging helpers.
"""

import logging
import os
import sys
import warnings

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from wastrid._backend import resolve_backend
from wastrid._collection import TreeCollection
from wastrid._context import (
    get_backend_override,
    quiet,
    suppress_logger,
    suppress_warnings,
    use_backend,
)
from wastrid._logging import log_imputation_fallbacks, log_missing_statistics


class TestLogging:
    def test_quiet_silences_package(self, caplog):
        with caplog.at_level(logging.INFO, logger="wastrid"):
            with quiet():
                TreeCollection.from_strings(["(A,B,C);"])
            assert "Read 1 gene trees" not in caplog.text
            TreeCollection.from_strings(["(A,B,C);"])
            assert "Read 1 gene trees" in caplog.text

    def test_suppress_logger_restores_level(self):
        logger = logging.getLogger("wastrid._collection")
        original = logger.level
        with suppress_logger("wastrid._collection", logging.ERROR):
            assert logger.level == logging.ERROR
        assert logger.level == original

    def test_missing_statistics(self, caplog):
        with caplog.at_level(logging.INFO, logger="wastrid"):
            log_missing_statistics(1, 10)
        assert "1 of 10 taxon pairs (10.00%)" in caplog.text

    def test_fallbacks_logged_as_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="wastrid"):
            log_imputation_fallbacks(2, 5)
            log_imputation_fallbacks(0, 5)
        assert len(caplog.records) == 1
        assert caplog.records[0].levelno == logging.WARNING


class TestWarnings:
    def test_suppress_category(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            with suppress_warnings(UserWarning):
                warnings.warn("hidden", UserWarning)
            warnings.warn("shown", UserWarning)
        assert [str(w.message) for w in caught] == ["shown"]


class TestBackendOverride:
    def test_override_restored(self):
        assert get_backend_override() is None
        with use_backend("python"):
            assert get_backend_override() == "python"
            assert resolve_backend("numba") == "python"
        assert get_backend_override() is None
        assert resolve_backend("best") == "numba"

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with use_backend("python"):
                raise RuntimeError("boom")
        assert get_backend_override() is None

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            with use_backend("cuda"):
                pass
