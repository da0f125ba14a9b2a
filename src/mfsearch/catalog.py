"""Static catalog of the content collections served by mfsearch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from mfsearch.errors import ValidationError


@dataclass(frozen=True, slots=True)
class ModuleShape:
    """How a code collection's module rows map onto the common columns."""

    family_label: Optional[str]
    has_package_code: bool

    @property
    def filter_keys(self) -> Tuple[str, ...]:
        keys = []
        if self.has_package_code:
            keys.append("package_code")
        if self.family_label:
            keys.append(self.family_label)
        return tuple(keys)


@dataclass(frozen=True, slots=True)
class WorkflowShape:
    type_label: str
    file_type: str


@dataclass(frozen=True, slots=True)
class Collection:
    name: str
    label: str
    group: str  # "documentation" or "code"
    module_shape: Optional[ModuleShape] = None
    workflow_shape: Optional[WorkflowShape] = None

    @property
    def is_code(self) -> bool:
        return self.group == "code"


COLLECTIONS: Dict[str, Collection] = {
    c.name: c
    for c in (
        Collection("modflowai", "MODFLOW AI", "documentation"),
        Collection("mf6", "MODFLOW 6", "documentation"),
        Collection("mfusg", "MODFLOW-USG", "documentation"),
        Collection("pest", "PEST", "documentation"),
        Collection("pestpp", "PEST++", "documentation"),
        Collection("pest_hp", "PEST_HP", "documentation"),
        Collection("plproc", "PLPROC", "documentation"),
        Collection("gwutils", "Groundwater Data Utilities", "documentation"),
        Collection(
            "flopy",
            "FloPy",
            "code",
            module_shape=ModuleShape(family_label="model_family", has_package_code=True),
            workflow_shape=WorkflowShape(type_label="model_type", file_type="py"),
        ),
        Collection(
            "pyemu",
            "pyEMU",
            "code",
            module_shape=ModuleShape(family_label="category", has_package_code=False),
            workflow_shape=WorkflowShape(type_label="workflow_type", file_type="ipynb"),
        ),
    )
}

DOC_COLLECTIONS: Tuple[str, ...] = tuple(n for n, c in COLLECTIONS.items() if not c.is_code)
CODE_COLLECTIONS: Tuple[str, ...] = tuple(n for n, c in COLLECTIONS.items() if c.is_code)


def get_collection(name: str) -> Collection:
    """Look up a collection, raising ``ValidationError`` with the valid names."""
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise ValidationError(
            f"Invalid repository '{name}'. Valid repositories: {', '.join(COLLECTIONS)}"
        ) from None


def validate_collection(name: str | None, allowed: Tuple[str, ...] | None = None) -> Collection | None:
    if name is None or not str(name).strip():
        return None
    collection = get_collection(str(name).strip())
    if allowed is not None and collection.name not in allowed:
        raise ValidationError(
            f"Invalid repository '{name}'. Valid repositories: {', '.join(allowed)}"
        )
    return collection
