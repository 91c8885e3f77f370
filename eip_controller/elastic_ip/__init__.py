"""Elastic IP reconciliation: registry, eligibility, and assignment."""

from .controller import ElasticIPController
from .eligibility import Classification, EligibilityClassifier
from .engine import AssignmentEngine, MutationOutcome
from .pool import AddressPool
from .registry import Instance, InstanceRegistry

__all__ = [
    "AddressPool",
    "AssignmentEngine",
    "Classification",
    "ElasticIPController",
    "EligibilityClassifier",
    "Instance",
    "InstanceRegistry",
    "MutationOutcome",
]
