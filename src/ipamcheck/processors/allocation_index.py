"""
Index of addresses allocated in IPAM blocks.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set, Tuple

from ..models import AllocationAttribute, AllocationBlock
from .normalizer import IPNetwork, canonical, parse_block_cidr
from .usage_index import ResourceRef, UsageIndex

# Handle used to reserve addresses that Windows nodes take for themselves.
RESERVED_HANDLE = "windows-reserved-ipam-handle"
RESERVED_OWNER = "Reserved for Windows"

MISSING_ATTRS = "<missing>"


def format_attrs(attribute: AllocationAttribute) -> str:
    """Render an attribute entry with secondary keys in sorted order."""
    primary = attribute.primary if attribute.primary is not None else "<none>"
    secondary = attribute.secondary or {}
    kvs = [f"{key}={secondary[key]}" for key in sorted(secondary)]
    return f"Main:{primary} Extra:{','.join(kvs)}"


@dataclass(frozen=True)
class Allocation:
    """One allocated ordinal of a block."""
    block: AllocationBlock
    ordinal: int
    ip: str

    # Refers to a mutable block, so instances are not hashable.
    __hash__ = None

    def attribute(self) -> Optional[AllocationAttribute]:
        """The attribute entry, or None if the block's table has no such index."""
        attr_idx = self.block.allocations[self.ordinal]
        if attr_idx is None or attr_idx < 0 or attr_idx >= len(self.block.attributes):
            return None
        return self.block.attributes[attr_idx]

    @property
    def handle(self) -> Optional[str]:
        attribute = self.attribute()
        return attribute.primary if attribute else None

    def attr_string(self) -> str:
        attribute = self.attribute()
        if attribute is None:
            return MISSING_ATTRS
        return format_attrs(attribute)


class AllocationIndex:
    """
    Maps canonical address to the block allocations recorded for it.

    Allocations carrying the reserved handle are also registered as in use,
    since no node or workload will ever claim them.
    """

    def __init__(
        self,
        usage_index: UsageIndex,
        show_all_ips: bool = False,
        reserved_handle: str = RESERVED_HANDLE
    ):
        self.usage_index = usage_index
        self.show_all_ips = show_all_ips
        self.reserved_handle = reserved_handle
        self.logger = logging.getLogger(f"ipamcheck.{self.__class__.__name__}")

        self._allocations: Dict[str, List[Allocation]] = {}
        self._seen: Set[Tuple[str, int]] = set()

    def record_block(self, block: AllocationBlock) -> int:
        """
        Record every allocated ordinal of a block.

        Returns:
            Number of ordinals recorded
        """
        network = parse_block_cidr(block.cidr)
        recorded = 0
        for ordinal, attr_idx in enumerate(block.allocations):
            if attr_idx is None:
                continue
            if self.record(block, ordinal, network):
                recorded += 1
        return recorded

    def record(
        self,
        block: AllocationBlock,
        ordinal: int,
        network: Optional[IPNetwork] = None
    ) -> bool:
        """
        Record the allocation at one ordinal.

        Returns:
            False if this (block, ordinal) pair was already recorded
        """
        key = (block.cidr, ordinal)
        if key in self._seen:
            return False
        self._seen.add(key)

        if network is None:
            network = parse_block_cidr(block.cidr)
        ip = canonical(network.network_address + ordinal)

        alloc = Allocation(block=block, ordinal=ordinal, ip=ip)
        self._allocations.setdefault(ip, []).append(alloc)

        if self.show_all_ips:
            self.logger.info(f"  {ip} allocated; attrs {alloc.attr_string()}")

        if alloc.handle == self.reserved_handle:
            self.usage_index.record(
                ip,
                RESERVED_OWNER,
                ResourceRef(kind='IPAMBlock', name=block.cidr)
            )

        return True

    def allocations(self, address: str) -> List[Allocation]:
        return list(self._allocations.get(address, []))

    def items(self) -> Iterator[Tuple[str, List[Allocation]]]:
        return iter(self._allocations.items())

    def __contains__(self, address: str) -> bool:
        return address in self._allocations

    def __len__(self) -> int:
        return len(self._allocations)
