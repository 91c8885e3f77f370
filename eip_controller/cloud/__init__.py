"""Cloud gateway package: provider-agnostic Protocol consumed by the controller."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import CloudInstance, ElasticAddress


@runtime_checkable
class CloudGateway(Protocol):
    """Protocol that every cloud client must satisfy.

    Every method raises CloudGatewayError when the underlying API call fails.
    """

    def list_instances(self) -> list[CloudInstance]:
        """Return every instance in the cluster, in any lifecycle state."""
        ...

    def list_addresses(self) -> list[ElasticAddress]:
        """Return every elastic IP in the account."""
        ...

    def describe_address(self, public_ip: str) -> ElasticAddress | None:
        """Return the current state of a single elastic IP, or None if it does not exist."""
        ...

    def associate(self, instance_id: str, public_ip: str, allocation_id: str) -> None:
        ...

    def disassociate(self, instance_id: str, public_ip: str, association_id: str) -> None:
        ...
