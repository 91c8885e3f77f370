"""REST client for the EC2 instance metadata service (IMDSv2)."""

from __future__ import annotations

import logging

import requests

from ..exceptions import CloudGatewayError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://169.254.169.254"
TOKEN_TTL_SECONDS = 21600


class InstanceMetadataClient:
    """Reads identity information about the instance the controller runs on."""

    def __init__(self, endpoint: str = DEFAULT_ENDPOINT, timeout: float = 2.0):
        self._base = f"{endpoint.rstrip('/')}/latest"
        self._session = requests.Session()
        self._timeout = timeout
        self._token: str | None = None

    def instance_id(self) -> str:
        instance_id = self._get("/meta-data/instance-id")
        logger.info("Running on instance %s", instance_id)
        return instance_id

    def region(self) -> str:
        """Return the region, derived from the availability zone if needed."""
        try:
            return self._get("/meta-data/placement/region")
        except CloudGatewayError:
            zone = self.availability_zone()
            return zone[:-1]

    def availability_zone(self) -> str:
        zone = self._get("/meta-data/placement/availability-zone")
        logger.info("Running in AZ %s", zone)
        return zone

    # ── Internal HTTP helpers ───────────────────────────────────────

    def _fetch_token(self) -> str:
        try:
            resp = self._session.put(
                f"{self._base}/api/token",
                headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_SECONDS)},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise CloudGatewayError(f"error querying ec2 metadata service: {exc}", operation="metadata") from exc
        if resp.status_code >= 400:
            raise CloudGatewayError(
                f"HTTP {resp.status_code} fetching ec2 metadata token", operation="metadata",
            )
        return resp.text

    def _get(self, path: str) -> str:
        if self._token is None:
            self._token = self._fetch_token()

        logger.debug("GET metadata %s", path)
        try:
            resp = self._session.get(
                f"{self._base}{path}",
                headers={"X-aws-ec2-metadata-token": self._token},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise CloudGatewayError(f"error querying ec2 metadata service: {exc}", operation="metadata") from exc

        if resp.status_code >= 400:
            raise CloudGatewayError(
                f"HTTP {resp.status_code} on metadata {path}", operation="metadata",
            )
        return resp.text.strip()
