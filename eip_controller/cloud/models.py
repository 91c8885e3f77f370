"""Data models for instances and addresses as reported by the cloud provider."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class NetworkAssociation:
    """A public IP associated with one of an instance's network interfaces."""

    public_ip: str
    network_interface_id: str = ""
    ip_owner_id: str = ""  # "amazon" for auto-assigned public IPs, account ID for elastic IPs

    @property
    def auto_assigned(self) -> bool:
        return self.ip_owner_id == "amazon"


@dataclass(frozen=True)
class CloudInstance:
    """One instance from a single enumeration of the cluster."""

    instance_id: str
    state: str
    tags: dict[str, str] = field(default_factory=dict)
    associations: tuple[NetworkAssociation, ...] = ()


@dataclass(frozen=True)
class ElasticAddress:
    """A reserved public address and, if bound, its current association."""

    public_ip: str
    allocation_id: str
    association_id: str | None = None
    instance_id: str | None = None

    @property
    def is_associated(self) -> bool:
        return bool(self.association_id)
