"""
Conversion collaborators: converter/deployer protocols, the timeout-aware
runner and the analysis helpers used to enrich results.
"""

from sqlshift.conversion.base import Converter, Deployer, DryRunDeployer
from sqlshift.conversion.loader import load_converter, load_deployer, load_object
from sqlshift.conversion.runner import run_conversion

__all__ = [
    "Converter",
    "Deployer",
    "DryRunDeployer",
    "load_converter",
    "load_deployer",
    "load_object",
    "run_conversion",
]
