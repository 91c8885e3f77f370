"""Tracks cluster instances across polling cycles."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from ..cloud.models import CloudInstance, NetworkAssociation
from .pool import AddressPool

logger = logging.getLogger(__name__)


@dataclass
class Instance:
    """What we know about one instance, carried from pass to pass."""

    instance_id: str
    last_seen: int = 0
    state: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    associations: tuple[NetworkAssociation, ...] = ()

    pool_member: bool = False
    can_hold_address: bool = False
    # Higher is a better candidate for an address
    goodness: int = 0

    # Pool addresses currently bound to this instance
    addresses: set[str] = field(default_factory=set)

    @property
    def eligible(self) -> bool:
        return self.pool_member and self.can_hold_address

    def association_for(self, public_ip: str) -> NetworkAssociation | None:
        for association in self.associations:
            if association.public_ip == public_ip:
                return association
        return None


class InstanceRegistry:
    """Known instances keyed by ID, garbage-collected by generation tick."""

    def __init__(self, pool: AddressPool):
        self._pool = pool
        self._instances: dict[str, Instance] = {}
        self.tick = 0

    def refresh(self, snapshot: list[CloudInstance]) -> None:
        """Ingest one enumeration of the cluster and drop instances that vanished."""
        self.tick += 1
        tick = self.tick

        for raw in snapshot:
            if not raw.instance_id:
                logger.warning("Skipping instance with empty instance id: %r", raw)
                continue

            inst = self._instances.get(raw.instance_id)
            if inst is None:
                logger.info("Instance discovered: %s", raw.instance_id, extra={"instance_id": raw.instance_id})
                inst = Instance(instance_id=raw.instance_id)
                self._instances[raw.instance_id] = inst

            inst.last_seen = tick
            inst.state = raw.state
            inst.tags = dict(raw.tags)
            inst.associations = raw.associations
            # Public IPs outside the pool may be auto-assigned, not elastic IPs
            inst.addresses = {
                a.public_ip for a in raw.associations
                if not a.auto_assigned and a.public_ip in self._pool
            }

        for instance_id in [i for i, inst in self._instances.items() if inst.last_seen != tick]:
            logger.info("Instance deleted: %s", instance_id, extra={"instance_id": instance_id})
            del self._instances[instance_id]

    def reset(self) -> None:
        """Forget every instance; the next refresh rebuilds the registry from scratch."""
        logger.info("Instance registry reset, next pass rebuilds from cloud state")
        self._instances.clear()

    def get(self, instance_id: str) -> Instance | None:
        return self._instances.get(instance_id)

    def __iter__(self) -> Iterator[Instance]:
        """Iterate instances ordered by instance ID."""
        return iter(sorted(self._instances.values(), key=lambda i: i.instance_id))

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._instances
