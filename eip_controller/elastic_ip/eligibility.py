"""Decides which instances may hold an elastic IP."""

from __future__ import annotations

import logging
from typing import NamedTuple

from .registry import Instance

logger = logging.getLogger(__name__)

# Lifecycle state -> whether an instance in that state may hold an address
INSTANCE_STATES: dict[str, bool] = {
    "pending": False,
    "running": True,
    "shutting-down": False,
    "terminated": False,
    "stopping": False,
    "stopped": False,
}


class Classification(NamedTuple):
    pool_member: bool
    can_hold_address: bool
    goodness: int


class EligibilityClassifier:
    """Classifies instances by master-role tag and lifecycle state."""

    def __init__(self, master_role_tag: str = "k8s.io/role/master"):
        self._master_role_tag = master_role_tag

    def classify(self, instance: Instance) -> Classification:
        """Derive pool membership, address eligibility and goodness.

        An unrecognized state keeps the instance's previous can_hold_address value.
        """
        pool_member = self._master_role_tag not in instance.tags
        if not pool_member:
            logger.debug("Instance %s is master; won't treat as part of pool", instance.instance_id)

        goodness = 0
        can_hold = INSTANCE_STATES.get(instance.state)
        if can_hold is None:
            logger.warning(
                "Unknown instance state for instance %s: %r", instance.instance_id, instance.state,
                extra={"instance_id": instance.instance_id},
            )
            can_hold = instance.can_hold_address
        elif can_hold:
            goodness += 1

        return Classification(pool_member, can_hold, goodness)

    def apply(self, instance: Instance) -> None:
        """Classify the instance and store the result on it."""
        instance.pool_member, instance.can_hold_address, instance.goodness = self.classify(instance)
