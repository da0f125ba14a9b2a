"""Shared fixtures: a small seeded store and a deterministic embedder."""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np
import pytest

from mfsearch.config import AppConfig
from mfsearch.errors import EmbeddingUnavailableError
from mfsearch.index.storage import SQLiteStore
from mfsearch.models import Document, ModuleRecord, WorkflowRecord
from mfsearch.search.engine import SearchEngine


class StaticEmbedder:
    """Returns a fixed vector per query, or a default one."""

    def __init__(self, vectors: Dict[str, Sequence[float]] | None = None, default=(1.0, 0.0, 0.0)) -> None:
        self.vectors = dict(vectors or {})
        self.default = default
        self.calls: list[str] = []

    def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        return np.asarray(self.vectors.get(text, self.default), dtype="float32")


class BrokenEmbedder:
    def __init__(self) -> None:
        self.calls = 0

    def embed(self, text: str) -> np.ndarray:
        self.calls += 1
        raise EmbeddingUnavailableError("Embedding API error: 503 - unavailable")


def seed(store: SQLiteStore) -> None:
    store.upsert_document(
        Document(
            path="mf6io/wel.tex",
            collection="mf6",
            kind="tex",
            title="WEL Package",
            summary="Well package input instructions",
            body="The well package simulates pumping wells that extract groundwater.",
            key_concepts=["pumping", "wells"],
            technical_level="intermediate",
            embedding=[1.0, 0.0, 0.0],
            created_at="2024-01-01T00:00:00",
        )
    )
    store.upsert_document(
        Document(
            path="mf6io/riv.tex",
            collection="mf6",
            kind="tex",
            title="RIV Package",
            summary="River package input",
            body="The river package represents stream aquifer interaction.",
            embedding=[0.0, 1.0, 0.0],
        )
    )
    store.upsert_document(
        Document(
            path="manual/ies.md",
            collection="pestpp",
            kind="md",
            title="Iterative Ensemble Smoother",
            summary="pestpp-ies usage",
            body="The iterative ensemble smoother adjusts parameter ensembles for history matching.",
            embedding=[0.0, 0.0, 1.0],
        )
    )
    store.upsert_module(
        ModuleRecord(
            path="/src/flopy/mf6/modflow/mfgwfwel.py",
            relative_path="flopy/mf6/modflow/mfgwfwel.py",
            collection="flopy",
            module_name="mfgwfwel",
            purpose="Well package for groundwater flow models",
            package_code="WEL",
            family="mf6",
            docstring="ModflowGwfwel defines a well package with pumping rates.",
            related_concepts=["pumping", "boundary conditions"],
            scenarios=["Simulate a pumping well"],
            embedding_text="well package pumping rates stress period data",
            source_code="class ModflowGwfwel:\n    pass\n",
            github_url="https://github.com/modflowpy/flopy/blob/develop/flopy/mf6/modflow/mfgwfwel.py",
            embedding=[0.9, 0.1, 0.0],
        )
    )
    store.upsert_module(
        ModuleRecord(
            path="pyemu/en.py",
            relative_path="pyemu/en.py",
            collection="pyemu",
            module_name="en",
            purpose="Ensemble classes for parameter and observation ensembles",
            family="ensemble",
            docstring="ParameterEnsemble and ObservationEnsemble.",
            embedding_text="ensemble smoother parameter ensemble",
            source_code="class ParameterEnsemble:\n    pass\n",
            embedding=[0.0, 0.1, 0.9],
        )
    )
    store.upsert_workflow(
        WorkflowRecord(
            path="examples/Tutorials/mf6_wel_tutorial.py",
            collection="flopy",
            title="Pumping well tutorial",
            description="Build a model with a pumping well",
            complexity="beginner",
            workflow_type="mf6",
            packages_used=["WEL", "DIS"],
            tags=["wells"],
            purpose="Show how to add wells",
            embedding_text="pumping well tutorial",
            source_code="import flopy\n",
            embedding=[0.8, 0.2, 0.0],
        )
    )
    store.upsert_workflow(
        WorkflowRecord(
            path="examples/Notebooks/ies_demo.ipynb",
            collection="pyemu",
            title="IES history matching",
            description="Run pestpp-ies with an ensemble",
            complexity="advanced",
            workflow_type="ies",
            packages_used=["pyemu"],
            tags=["ensemble"],
            embedding_text="ensemble smoother history matching",
            source_code='{"cells": []}',
            embedding=[0.0, 0.0, 1.0],
        )
    )


@pytest.fixture
def store(tmp_path):
    store = SQLiteStore(tmp_path / "mfsearch.db")
    seed(store)
    yield store
    store.close()


@pytest.fixture
def embedder():
    return StaticEmbedder()


@pytest.fixture
def engine(store, embedder):
    return SearchEngine(store, embedder, AppConfig(db_path=store.db_path))


@pytest.fixture
def broken_embedder():
    return BrokenEmbedder()


@pytest.fixture
def make_engine(store):
    def factory(embedder=None, **config):
        return SearchEngine(store, embedder, AppConfig(db_path=store.db_path, **config))

    return factory
