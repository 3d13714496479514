"""
Membership checks against the active IP pools.
"""

import ipaddress
from typing import List, Sequence

from ..models import Pool
from .normalizer import IPNetwork, parse_pool_cidr


class PoolMembershipOracle:
    """Answers whether an address lies inside any enabled IP pool."""

    def __init__(self, networks: Sequence[IPNetwork]):
        self._networks = tuple(networks)

    @classmethod
    def from_pools(cls, pools: Sequence[Pool]) -> 'PoolMembershipOracle':
        """
        Build the oracle from listed pools, skipping disabled ones.

        Raises:
            PoolParseError: If an enabled pool has an invalid CIDR
        """
        return cls([parse_pool_cidr(p.cidr) for p in pools if not p.disabled])

    @property
    def networks(self) -> List[IPNetwork]:
        return list(self._networks)

    def contains(self, address: str) -> bool:
        ip = ipaddress.ip_address(address)
        for network in self._networks:
            if ip in network:
                return True
        return False

    def __len__(self) -> int:
        return len(self._networks)
