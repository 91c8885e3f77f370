"""AWS boto3 client for enumerating cluster instances and managing elastic IPs."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import AWSConfig
from ..exceptions import CloudGatewayError
from .models import CloudInstance, ElasticAddress, NetworkAssociation

logger = logging.getLogger(__name__)


class AWSClient:
    """CloudGateway implementation backed by the EC2 API."""

    def __init__(self, aws_config: AWSConfig, region: str, cluster_id: str = ""):
        self._config = aws_config
        self.cluster_id = cluster_id

        session_kwargs: dict[str, Any] = {"region_name": region}
        if aws_config.credential_profile:
            session_kwargs["profile_name"] = aws_config.credential_profile

        try:
            session = boto3.Session(**session_kwargs)
            self._ec2 = session.client("ec2")
        except (BotoCoreError, ClientError) as exc:
            raise CloudGatewayError(f"error building EC2 client: {exc}", operation="connect") from exc

    # ── Instances ────────────────────────────────────────────────────

    def list_instances(self) -> list[CloudInstance]:
        """Enumerate every instance tagged as a member of our cluster."""
        if not self.cluster_id:
            raise CloudGatewayError("cluster id is not set", operation="describe_instances")

        logger.debug("Querying EC2 instances for cluster %s", self.cluster_id)
        instances: list[CloudInstance] = []
        try:
            paginator = self._ec2.get_paginator("describe_instances")
            pages = paginator.paginate(
                Filters=[{"Name": f"tag:{self._config.cluster_tag}", "Values": [self.cluster_id]}]
            )
            for page in pages:
                for reservation in page.get("Reservations", []):
                    for raw in reservation.get("Instances", []):
                        instances.append(_parse_instance(raw))
        except (BotoCoreError, ClientError) as exc:
            raise CloudGatewayError(
                f"error doing EC2 describe instances: {exc}", operation="describe_instances",
            ) from exc

        logger.debug("EC2 describe instances returned %d instances", len(instances))
        return instances

    def instance_tags(self, instance_id: str) -> dict[str, str]:
        """Return the tags of a single instance."""
        try:
            response = self._ec2.describe_instances(InstanceIds=[instance_id])
        except (BotoCoreError, ClientError) as exc:
            raise CloudGatewayError(
                f"error querying for EC2 instance {instance_id!r}: {exc}", operation="describe_instances",
            ) from exc

        raws = [raw for r in response.get("Reservations", []) for raw in r.get("Instances", [])]
        if len(raws) != 1:
            raise CloudGatewayError(
                f"unexpected number of instances found with id {instance_id!r}: {len(raws)}",
                operation="describe_instances",
            )
        return _tags(raws[0])

    # ── Addresses ────────────────────────────────────────────────────

    def list_addresses(self) -> list[ElasticAddress]:
        logger.info("Querying EC2 elastic IPs with DescribeAddresses")
        try:
            response = self._ec2.describe_addresses()
        except (BotoCoreError, ClientError) as exc:
            raise CloudGatewayError(
                f"error during EC2 DescribeAddresses: {exc}", operation="describe_addresses",
            ) from exc
        return [_parse_address(raw) for raw in response.get("Addresses", [])]

    def describe_address(self, public_ip: str) -> ElasticAddress | None:
        """Return the elastic IP with the given public IP, or None if there is none."""
        logger.debug("Querying EC2 elastic IPs with DescribeAddresses for IP %s", public_ip)
        try:
            response = self._ec2.describe_addresses(
                Filters=[{"Name": "public-ip", "Values": [public_ip]}]
            )
        except (BotoCoreError, ClientError) as exc:
            raise CloudGatewayError(
                f"error during EC2 DescribeAddresses: {exc}", operation="describe_addresses",
            ) from exc

        addresses = response.get("Addresses", [])
        if not addresses:
            return None
        if len(addresses) != 1:
            raise CloudGatewayError(
                f"found multiple elastic IPs with PublicIp: {public_ip}", operation="describe_addresses",
            )
        return _parse_address(addresses[0])

    # ── Mutations ────────────────────────────────────────────────────

    def associate(self, instance_id: str, public_ip: str, allocation_id: str) -> None:
        """Attach the elastic IP to the primary interface of the instance."""
        logger.info(
            "Attaching elastic IP %s to %s (allocation %s)", public_ip, instance_id, allocation_id,
            extra={"instance_id": instance_id, "public_ip": public_ip},
        )
        try:
            self._ec2.associate_address(InstanceId=instance_id, AllocationId=allocation_id)
        except (BotoCoreError, ClientError) as exc:
            raise CloudGatewayError(
                f"error attaching elastic ip {public_ip!r} to {instance_id!r} "
                f"(allocation {allocation_id!r}): {exc}",
                operation="associate_address",
            ) from exc

    def disassociate(self, instance_id: str, public_ip: str, association_id: str) -> None:
        logger.info(
            "Removing elastic IP %s from %s (association %s)", public_ip, instance_id, association_id,
            extra={"instance_id": instance_id, "public_ip": public_ip},
        )
        try:
            self._ec2.disassociate_address(AssociationId=association_id)
        except (BotoCoreError, ClientError) as exc:
            raise CloudGatewayError(
                f"error removing elastic ip {public_ip!r} from {instance_id!r} "
                f"(association {association_id!r}): {exc}",
                operation="disassociate_address",
            ) from exc


# ── Shared parsing ────────────────────────────────────────────────────


def _tags(raw: dict[str, Any]) -> dict[str, str]:
    return {t["Key"]: t.get("Value", "") for t in raw.get("Tags", [])}


def _parse_instance(raw: dict[str, Any]) -> CloudInstance:
    """Parse a raw EC2 instance dict. A missing InstanceId yields an empty id."""
    associations: list[NetworkAssociation] = []
    for ni in raw.get("NetworkInterfaces", []):
        assoc = ni.get("Association")
        if not assoc or not assoc.get("PublicIp"):
            continue
        associations.append(
            NetworkAssociation(
                public_ip=assoc["PublicIp"],
                network_interface_id=ni.get("NetworkInterfaceId", ""),
                ip_owner_id=assoc.get("IpOwnerId", ""),
            )
        )

    return CloudInstance(
        instance_id=raw.get("InstanceId") or "",
        state=raw.get("State", {}).get("Name", ""),
        tags=_tags(raw),
        associations=tuple(associations),
    )


def _parse_address(raw: dict[str, Any]) -> ElasticAddress:
    return ElasticAddress(
        public_ip=raw.get("PublicIp", ""),
        allocation_id=raw.get("AllocationId", ""),
        association_id=raw.get("AssociationId") or None,
        instance_id=raw.get("InstanceId") or None,
    )
