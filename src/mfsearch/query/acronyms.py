"""Acronyms used across MODFLOW and PEST documentation."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

ACRONYMS: Mapping[str, str] = MappingProxyType(
    {
        # MODFLOW packages
        "BAS": "basic package",
        "BCF": "block centered flow",
        "CHD": "constant head",
        "CLN": "connected linear network",
        "DIS": "discretization",
        "DISU": "unstructured discretization",
        "DISV": "discretization by vertices",
        "DRN": "drain package",
        "EVT": "evapotranspiration",
        "GHB": "general head boundary",
        "GNC": "ghost node correction",
        "HFB": "horizontal flow barrier",
        "IMS": "iterative model solution",
        "LAK": "lake package",
        "LPF": "layer property flow",
        "MAW": "multi aquifer well",
        "MNW": "multi node well",
        "MVR": "water mover",
        "NPF": "node property flow",
        "OC": "output control",
        "RCH": "recharge",
        "RIV": "river package",
        "SFR": "streamflow routing",
        "STO": "storage package",
        "UPW": "upstream weighting",
        "UZF": "unsaturated zone flow",
        "WEL": "well package",
        # Transport and solvers
        "GWF": "groundwater flow",
        "GWT": "groundwater transport",
        "GWE": "groundwater energy",
        "SSM": "source and sink mixing",
        "IST": "immobile storage and transfer",
        "PCG": "preconditioned conjugate gradient",
        "NWT": "newton formulation",
        "SMS": "sparse matrix solver",
        # PEST ecosystem
        "GLM": "gauss levenberg marquardt",
        "IES": "iterative ensemble smoother",
        "SEN": "global sensitivity analysis",
        "OPT": "optimization under uncertainty",
        "MOU": "multi objective optimization under uncertainty",
        "SWP": "parallel sweep",
        "DA": "data assimilation",
        "FOSM": "first order second moment",
        "SVD": "singular value decomposition",
        "PHI": "objective function",
        "JCO": "jacobian matrix",
        "PST": "pest control file",
        "TPL": "template file",
        "INS": "instruction file",
        "PP": "pilot points",
        "HK": "hydraulic conductivity",
        "KH": "horizontal hydraulic conductivity",
        "KV": "vertical hydraulic conductivity",
        "SS": "specific storage",
        "SY": "specific yield",
        "USG": "unstructured grid",
    }
)


def lookup(token: str) -> Optional[str]:
    """Return the full form for ``token`` (case-insensitive) or ``None``."""
    return ACRONYMS.get(token.upper())
