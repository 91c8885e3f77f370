"""One reconciliation context: pool, registry, and the components that act on them."""

from __future__ import annotations

import logging
import time

from ..cloud import CloudGateway
from ..config import ControllerConfig
from .eligibility import EligibilityClassifier
from .engine import AssignmentEngine, MutationOutcome
from .pool import AddressPool
from .registry import InstanceRegistry

logger = logging.getLogger(__name__)


class ElasticIPController:
    """Keeps the address pool bound to eligible instances: list -> classify -> reconcile."""

    def __init__(self, gateway: CloudGateway, pool: AddressPool, master_role_tag: str = "k8s.io/role/master"):
        self._gateway = gateway
        self.pool = pool
        self.registry = InstanceRegistry(pool)
        self._classifier = EligibilityClassifier(master_role_tag)
        self._engine = AssignmentEngine(gateway)

    @classmethod
    def create(cls, gateway: CloudGateway, config: ControllerConfig) -> ElasticIPController:
        """Resolve the configured addresses and build a controller.

        Raises AddressNotFoundError if any configured address cannot be resolved.
        """
        pool = AddressPool.resolve(gateway, config.elastic_ips)
        return cls(gateway, pool, config.master_role_tag)

    def run_once(self) -> list[MutationOutcome]:
        """Execute a single reconciliation pass.

        Raises CloudGatewayError if the cluster cannot be enumerated; nothing
        is changed in that case.
        """
        start = time.monotonic()

        snapshot = self._gateway.list_instances()
        self.registry.refresh(snapshot)

        pool_members = 0
        eligible = 0
        for inst in self.registry:
            self._classifier.apply(inst)
            if inst.pool_member:
                pool_members += 1
                if inst.can_hold_address:
                    eligible += 1
            logger.debug(
                "Instance %s pool=%s state=%r eips=%s",
                inst.instance_id, inst.pool_member, inst.state, sorted(inst.addresses),
            )

        logger.info(
            "Found %d instances, %d are in the pool, %d can have elastic ips",
            len(self.registry), pool_members, eligible,
            extra={
                "tick": self.registry.tick,
                "total_instances": len(self.registry),
                "pool_members": pool_members,
                "eligible": eligible,
            },
        )

        outcomes = self._engine.reconcile(self.registry, self.pool)

        failed = sum(1 for o in outcomes if not o.success)
        logger.info(
            "Pass %d complete: %d mutations, %d failed",
            self.registry.tick, len(outcomes), failed,
            extra={
                "tick": self.registry.tick,
                "mutations": len(outcomes),
                "elapsed_seconds": round(time.monotonic() - start, 2),
            },
        )
        return outcomes

    def reset(self) -> None:
        self.registry.reset()
