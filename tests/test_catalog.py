"""Tests for the collection catalog."""

from __future__ import annotations

import pytest

from mfsearch.catalog import (
    CODE_COLLECTIONS,
    COLLECTIONS,
    DOC_COLLECTIONS,
    get_collection,
    validate_collection,
)
from mfsearch.errors import ValidationError


def test_groups_partition_catalog() -> None:
    assert CODE_COLLECTIONS == ("flopy", "pyemu")
    assert set(DOC_COLLECTIONS) | set(CODE_COLLECTIONS) == set(COLLECTIONS)
    assert "mf6" in DOC_COLLECTIONS


def test_module_shapes() -> None:
    assert COLLECTIONS["flopy"].module_shape.filter_keys == ("package_code", "model_family")
    assert COLLECTIONS["pyemu"].module_shape.filter_keys == ("category",)
    assert COLLECTIONS["pyemu"].workflow_shape.file_type == "ipynb"


def test_get_collection_unknown() -> None:
    with pytest.raises(ValidationError, match="Invalid repository 'modflow2005'"):
        get_collection("modflow2005")


class TestValidateCollection:
    def test_blank_means_all(self) -> None:
        assert validate_collection(None) is None
        assert validate_collection("  ") is None

    def test_strips_whitespace(self) -> None:
        assert validate_collection(" flopy ").name == "flopy"

    def test_restricted(self) -> None:
        with pytest.raises(ValidationError, match="Valid repositories: flopy, pyemu"):
            validate_collection("mf6", CODE_COLLECTIONS)
