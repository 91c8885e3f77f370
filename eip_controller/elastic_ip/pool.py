"""The fixed, operator-supplied set of elastic IPs the controller manages."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ..cloud import CloudGateway
from ..cloud.models import ElasticAddress
from ..exceptions import AddressNotFoundError

logger = logging.getLogger(__name__)


class AddressPool:
    """Immutable, ordered mapping of public IP to its allocation.

    Iteration follows the order the addresses were configured in.
    """

    def __init__(self, addresses: list[ElasticAddress]):
        self._addresses: dict[str, ElasticAddress] = {}
        for address in addresses:
            self._addresses.setdefault(address.public_ip, address)

    @classmethod
    def resolve(cls, gateway: CloudGateway, public_ips: list[str]) -> AddressPool:
        """Resolve every configured public IP with a single enumeration call.

        Raises AddressNotFoundError if any address does not exist in the account.
        """
        known = {a.public_ip: a for a in gateway.list_addresses()}

        resolved: list[ElasticAddress] = []
        for ip in public_ips:
            address = known.get(ip)
            if address is None:
                raise AddressNotFoundError(ip)
            resolved.append(address)

        pool = cls(resolved)
        logger.info("Managing %d elastic IPs: %s", len(pool), ", ".join(pool.public_ips))
        return pool

    @property
    def public_ips(self) -> list[str]:
        return list(self._addresses)

    def __contains__(self, public_ip: object) -> bool:
        return public_ip in self._addresses

    def __iter__(self) -> Iterator[ElasticAddress]:
        return iter(self._addresses.values())

    def __len__(self) -> int:
        return len(self._addresses)
