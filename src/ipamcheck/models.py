"""
Typed records returned by IPAM data sources.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class AllocationAttribute:
    """Attribute entry of an IPAM block, shared by one or more ordinals."""
    primary: Optional[str] = None           # IPAM handle
    secondary: Dict[str, str] = field(default_factory=dict)


@dataclass
class AllocationBlock:
    """
    One IPAM block.

    ``allocations`` has one entry per ordinal in the block: None for a free
    address, otherwise an index into ``attributes``.
    """
    cidr: str
    affinity: Optional[str] = None          # "host:<node name>"
    allocations: List[Optional[int]] = field(default_factory=list)
    attributes: List[AllocationAttribute] = field(default_factory=list)

    @property
    def host(self) -> Optional[str]:
        if self.affinity and self.affinity.startswith('host:'):
            return self.affinity[len('host:'):]
        return None


@dataclass
class Pool:
    cidr: str
    disabled: bool = False
    name: str = ''


@dataclass
class Node:
    name: str
    ipv4_vxlan_tunnel_addr: Optional[str] = None
    wireguard_interface_ipv4_addr: Optional[str] = None
    ipv4_ipip_tunnel_addr: Optional[str] = None


@dataclass
class WorkloadEndpoint:
    namespace: str
    name: str
    ip_networks: List[str] = field(default_factory=list)
    node: str = ''
    pod: str = ''
