"""Tests for the instance registry."""

import logging

from eip_controller.cloud.models import CloudInstance, ElasticAddress, NetworkAssociation
from eip_controller.elastic_ip.pool import AddressPool
from eip_controller.elastic_ip.registry import InstanceRegistry

POOL = AddressPool([
    ElasticAddress(public_ip="52.0.0.1", allocation_id="eipalloc-1"),
    ElasticAddress(public_ip="52.0.0.2", allocation_id="eipalloc-2"),
])


def _raw(instance_id="i-1", state="running", public_ips=(), tags=None, auto_assigned=()) -> CloudInstance:
    return CloudInstance(
        instance_id=instance_id,
        state=state,
        tags=tags or {},
        associations=tuple(NetworkAssociation(public_ip=ip) for ip in public_ips)
        + tuple(NetworkAssociation(public_ip=ip, ip_owner_id="amazon") for ip in auto_assigned),
    )


class TestRefresh:
    def test_creates_instances_stamped_with_tick(self):
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-1"), _raw("i-2", state="stopped")])

        assert registry.tick == 1
        assert len(registry) == 2
        inst = registry.get("i-2")
        assert inst.last_seen == 1
        assert inst.state == "stopped"

    def test_updates_in_place(self):
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-1")])
        first = registry.get("i-1")
        first.can_hold_address = True

        registry.refresh([_raw("i-1", state="stopping", tags={"Name": "web"})])

        assert registry.get("i-1") is first
        assert first.last_seen == 2
        assert first.state == "stopping"
        assert first.tags == {"Name": "web"}
        assert first.can_hold_address is True

    def test_only_pool_addresses_are_tracked(self):
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-1", public_ips=("52.0.0.1", "3.3.3.3"))])
        assert registry.get("i-1").addresses == {"52.0.0.1"}

    def test_auto_assigned_public_ip_ignored(self):
        # An address that is in the pool but reported as amazon-owned is not an elastic IP binding
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-1", public_ips=("52.0.0.1",), auto_assigned=("52.0.0.2",))])

        inst = registry.get("i-1")
        assert inst.addresses == {"52.0.0.1"}
        assert inst.association_for("52.0.0.2").auto_assigned
        assert inst.association_for("9.9.9.9") is None

    def test_addresses_rederived_every_refresh(self):
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-1", public_ips=("52.0.0.1",))])
        registry.refresh([_raw("i-1", public_ips=("52.0.0.2",))])
        assert registry.get("i-1").addresses == {"52.0.0.2"}

    def test_empty_instance_id_skipped(self, caplog):
        registry = InstanceRegistry(POOL)
        with caplog.at_level(logging.WARNING):
            registry.refresh([_raw(""), _raw("i-1")])
        assert len(registry) == 1
        assert "empty instance id" in caplog.text

    def test_vanished_instance_removed(self):
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-1"), _raw("i-2")])
        registry.refresh([_raw("i-2")])
        assert "i-1" not in registry
        assert "i-2" in registry

    def test_reappearing_instance_is_new_record(self):
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-1")])
        old = registry.get("i-1")
        old.can_hold_address = True
        registry.refresh([])
        registry.refresh([_raw("i-1")])

        new = registry.get("i-1")
        assert new is not old
        assert new.can_hold_address is False
        assert new.last_seen == 3

    def test_iterates_in_instance_id_order(self):
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-c"), _raw("i-a"), _raw("i-b")])
        assert [i.instance_id for i in registry] == ["i-a", "i-b", "i-c"]


class TestReset:
    def test_reset_clears_but_keeps_tick(self):
        registry = InstanceRegistry(POOL)
        registry.refresh([_raw("i-1")])
        registry.reset()
        assert len(registry) == 0
        assert registry.tick == 1
