"""Shared fixtures: an in-memory cloud that behaves like EC2 for elastic IPs."""

from __future__ import annotations

import logging
from dataclasses import replace

import pytest

from eip_controller.cloud.models import CloudInstance, ElasticAddress, NetworkAssociation
from eip_controller.exceptions import CloudGatewayError


class FakeGateway:
    """CloudGateway backed by dicts; records every call made against it."""

    def __init__(self) -> None:
        self.instances: dict[str, dict] = {}
        self.addresses: dict[str, ElasticAddress] = {}
        self.calls: list[tuple] = []
        self.failing: set[str] = set()
        self._next_association = 1

    # ── Test setup helpers ──────────────────────────────────────────

    def add_instance(self, instance_id: str, state: str = "running", tags: dict | None = None,
                     public_ips: tuple[str, ...] = ()) -> None:
        self.instances[instance_id] = {"state": state, "tags": dict(tags or {}), "public_ips": public_ips}

    def add_address(self, public_ip: str, allocation_id: str | None = None, instance_id: str | None = None) -> None:
        address = ElasticAddress(public_ip=public_ip, allocation_id=allocation_id or f"eipalloc-{public_ip}")
        self.addresses[public_ip] = address
        if instance_id is not None:
            self._bind(public_ip, instance_id)

    def set_state(self, instance_id: str, state: str) -> None:
        self.instances[instance_id]["state"] = state

    def remove_instance(self, instance_id: str) -> None:
        del self.instances[instance_id]
        for ip, address in list(self.addresses.items()):
            if address.instance_id == instance_id:
                self.addresses[ip] = replace(address, association_id=None, instance_id=None)

    def holder_of(self, public_ip: str) -> str | None:
        return self.addresses[public_ip].instance_id

    @property
    def mutations(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in ("associate", "disassociate")]

    def _bind(self, public_ip: str, instance_id: str) -> None:
        association_id = f"eipassoc-{self._next_association}"
        self._next_association += 1
        self.addresses[public_ip] = replace(
            self.addresses[public_ip], association_id=association_id, instance_id=instance_id,
        )

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failing:
            raise CloudGatewayError(f"{operation} failed", operation=operation)

    # ── CloudGateway ────────────────────────────────────────────────

    def list_instances(self) -> list[CloudInstance]:
        self.calls.append(("list_instances",))
        self._maybe_fail("list_instances")
        result = []
        for instance_id, data in self.instances.items():
            associations = [
                NetworkAssociation(public_ip=a.public_ip, network_interface_id=f"eni-{instance_id}")
                for a in self.addresses.values() if a.instance_id == instance_id
            ]
            associations += [NetworkAssociation(public_ip=ip, ip_owner_id="amazon") for ip in data["public_ips"]]
            result.append(CloudInstance(
                instance_id=instance_id,
                state=data["state"],
                tags=dict(data["tags"]),
                associations=tuple(associations),
            ))
        return result

    def list_addresses(self) -> list[ElasticAddress]:
        self.calls.append(("list_addresses",))
        self._maybe_fail("list_addresses")
        return list(self.addresses.values())

    def describe_address(self, public_ip: str) -> ElasticAddress | None:
        self.calls.append(("describe_address", public_ip))
        self._maybe_fail("describe_address")
        return self.addresses.get(public_ip)

    def associate(self, instance_id: str, public_ip: str, allocation_id: str) -> None:
        self.calls.append(("associate", instance_id, public_ip, allocation_id))
        self._maybe_fail("associate")
        self._bind(public_ip, instance_id)

    def disassociate(self, instance_id: str, public_ip: str, association_id: str) -> None:
        self.calls.append(("disassociate", instance_id, public_ip, association_id))
        self._maybe_fail("disassociate")
        self.addresses[public_ip] = replace(self.addresses[public_ip], association_id=None, instance_id=None)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """configure_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
