"""
Index of addresses observed in use by nodes and workloads.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from ..models import Node, WorkloadEndpoint
from .normalizer import normalize_ip


@dataclass(frozen=True)
class ResourceRef:
    """Identifies the resource that owns an address."""
    kind: str
    name: str
    namespace: str = ''


@dataclass(frozen=True)
class OwnerRecord:
    friendly_name: str
    resource: Optional[ResourceRef] = None


# (canonical address, friendly name, owning resource)
AddressClaim = Tuple[str, str, ResourceRef]


class UsageIndex:
    """
    Maps canonical address to the owners using it.

    Addresses must already be normalized by the caller.
    """

    def __init__(self, show_all_ips: bool = False):
        self.show_all_ips = show_all_ips
        self.logger = logging.getLogger(f"ipamcheck.{self.__class__.__name__}")
        self._owners: Dict[str, List[OwnerRecord]] = {}

    def record(
        self,
        address: str,
        friendly_name: str,
        resource: Optional[ResourceRef] = None
    ) -> None:
        if self.show_all_ips:
            self.logger.info(f"  {address} belongs to {friendly_name}")

        self._owners.setdefault(address, []).append(
            OwnerRecord(friendly_name=friendly_name, resource=resource)
        )

    def record_claims(self, claims: List[AddressClaim]) -> int:
        """Register every claim from an address producer. Returns the count."""
        for address, friendly_name, resource in claims:
            self.record(address, friendly_name, resource)
        return len(claims)

    def owners(self, address: str) -> List[OwnerRecord]:
        return list(self._owners.get(address, []))

    def items(self) -> Iterator[Tuple[str, List[OwnerRecord]]]:
        return iter(self._owners.items())

    def __contains__(self, address: str) -> bool:
        return address in self._owners

    def __len__(self) -> int:
        return len(self._owners)


NODE_ADDRESS_FIELDS = (
    ('ipv4_vxlan_tunnel_addr', 'IPv4VXLANTunnelAddr'),
    ('wireguard_interface_ipv4_addr', 'Wireguard.InterfaceIPv4Address'),
    ('ipv4_ipip_tunnel_addr', 'IPv4IPIPTunnelAddr'),
)


def node_addresses(node: Node) -> List[AddressClaim]:
    """
    Tunnel addresses of a node.

    Raises:
        ParseError: If any configured tunnel address is malformed
    """
    ref = ResourceRef(kind='Node', name=node.name)
    label = f"Node({node.name})"

    claims = []
    for attr, field_name in NODE_ADDRESS_FIELDS:
        raw = getattr(node, attr)
        if not raw:
            continue
        ip = normalize_ip(raw, f"{field_name} of node {node.name}")
        claims.append((ip, label, ref))
    return claims


def workload_addresses(wep: WorkloadEndpoint) -> List[AddressClaim]:
    """
    Addresses of a workload endpoint.

    Raises:
        ParseError: If any of the endpoint's networks is malformed
    """
    ref = ResourceRef(kind='WorkloadEndpoint', name=wep.name, namespace=wep.namespace)
    label = f"Workload({wep.namespace}/{wep.name})"

    return [
        (normalize_ip(net, f"workload {wep.namespace}/{wep.name}"), label, ref)
        for net in wep.ip_networks
    ]
