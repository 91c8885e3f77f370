"""Detaches elastic IPs from ineligible instances and assigns free ones."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..cloud import CloudGateway
from ..exceptions import CloudGatewayError
from .pool import AddressPool
from .registry import Instance, InstanceRegistry

logger = logging.getLogger(__name__)

ASSOCIATE = "associate"
DISASSOCIATE = "disassociate"


@dataclass(frozen=True)
class MutationOutcome:
    """Result of one associate/disassociate attempt."""

    action: str  # ASSOCIATE or DISASSOCIATE
    instance_id: str
    public_ip: str
    success: bool
    error: str | None = None


class AssignmentEngine:
    """Converges the cloud's address bindings toward the desired state.

    Each call works only from the registry's current view, so anything that
    fails is simply attempted again on the next pass.
    """

    def __init__(self, gateway: CloudGateway):
        self._gateway = gateway

    def reconcile(self, registry: InstanceRegistry, pool: AddressPool) -> list[MutationOutcome]:
        """Run the detach pass, then the assign pass."""
        outcomes = self._detach_pass(registry)
        outcomes.extend(self._assign_pass(registry, pool))
        return outcomes

    # ── Detach ──────────────────────────────────────────────────────

    def _detach_pass(self, registry: InstanceRegistry) -> list[MutationOutcome]:
        outcomes: list[MutationOutcome] = []
        for inst in registry:
            if inst.eligible or not inst.addresses:
                continue

            # Addresses are still detached from nodes that left the pool
            if not inst.pool_member:
                logger.info("Instance %s no longer part of pool; will remove elastic ips", inst.instance_id)
            if not inst.can_hold_address:
                logger.info("Instance %s state is %r; will remove elastic ips", inst.instance_id, inst.state)

            for public_ip in sorted(inst.addresses):
                outcome = self._detach(inst, public_ip)
                if outcome is not None:
                    outcomes.append(outcome)
        return outcomes

    def _detach(self, inst: Instance, public_ip: str) -> MutationOutcome | None:
        log_extra = {"instance_id": inst.instance_id, "public_ip": public_ip}

        association = inst.association_for(public_ip)
        if association is None:
            logger.warning(
                "Want to disassociate address %s from %s, but was not found",
                public_ip, inst.instance_id, extra=log_extra,
            )
            return None

        try:
            address = self._gateway.describe_address(public_ip)
        except CloudGatewayError as exc:
            logger.warning("Failed to describe address %s: %s", public_ip, exc, extra=log_extra)
            return MutationOutcome(DISASSOCIATE, inst.instance_id, public_ip, success=False, error=str(exc))

        if address is None or not address.is_associated:
            logger.warning(
                "Want to disassociate address %s from %s, but no association was found",
                public_ip, inst.instance_id, extra=log_extra,
            )
            return None

        # The address may have moved since the instances were listed
        if address.instance_id and address.instance_id != inst.instance_id:
            logger.warning(
                "Want to disassociate address %s from %s, but it is now associated with %s",
                public_ip, inst.instance_id, address.instance_id, extra=log_extra,
            )
            return None

        logger.info(
            "Detaching address %s from %s (interface %s)",
            public_ip, inst.instance_id, association.network_interface_id or "unknown", extra=log_extra,
        )

        try:
            self._gateway.disassociate(inst.instance_id, public_ip, address.association_id)
        except CloudGatewayError as exc:
            logger.warning(
                "Failed to remove address %s from %s: %s", public_ip, inst.instance_id, exc, extra=log_extra,
            )
            return MutationOutcome(DISASSOCIATE, inst.instance_id, public_ip, success=False, error=str(exc))

        inst.addresses.discard(public_ip)
        return MutationOutcome(DISASSOCIATE, inst.instance_id, public_ip, success=True)

    # ── Assign ──────────────────────────────────────────────────────

    def _assign_pass(self, registry: InstanceRegistry, pool: AddressPool) -> list[MutationOutcome]:
        holders = self._holders(registry)
        outcomes: list[MutationOutcome] = []

        for address in pool:
            public_ip = address.public_ip
            log_extra = {"public_ip": public_ip}

            holder = holders.get(public_ip)
            if holder is not None:
                logger.debug("EIP %s is assigned to %s", public_ip, holder.instance_id, extra=log_extra)
                continue

            chosen = self.select_candidate(registry)
            if chosen is None:
                logger.warning("No instance available to assign EIP: %s", public_ip, extra=log_extra)
                continue

            logger.info("Assigning IP %s to instance %s", public_ip, chosen.instance_id, extra=log_extra)
            try:
                self._gateway.associate(chosen.instance_id, public_ip, address.allocation_id)
            except CloudGatewayError as exc:
                logger.warning(
                    "Failed to assign address %s to %s: %s", public_ip, chosen.instance_id, exc, extra=log_extra,
                )
                outcomes.append(
                    MutationOutcome(ASSOCIATE, chosen.instance_id, public_ip, success=False, error=str(exc))
                )
                continue

            chosen.addresses.add(public_ip)
            holders[public_ip] = chosen
            outcomes.append(MutationOutcome(ASSOCIATE, chosen.instance_id, public_ip, success=True))

        return outcomes

    @staticmethod
    def _holders(registry: InstanceRegistry) -> dict[str, Instance]:
        """Map each held pool address to the instance holding it."""
        holders: dict[str, Instance] = {}
        for inst in registry:
            for public_ip in inst.addresses:
                if public_ip in holders:
                    logger.warning(
                        "Address %s reported on both %s and %s",
                        public_ip, holders[public_ip].instance_id, inst.instance_id,
                        extra={"public_ip": public_ip},
                    )
                    continue
                holders[public_ip] = inst
        return holders

    @staticmethod
    def select_candidate(registry: InstanceRegistry) -> Instance | None:
        """Pick the eligible instance with no address and the highest goodness.

        Ties go to the lowest instance ID.
        """
        # Instances that already have an address are skipped; one address per instance
        candidates = [i for i in registry if i.eligible and not i.addresses]
        if not candidates:
            return None
        return min(candidates, key=lambda i: (-i.goodness, i.instance_id))
