"""Address normalization, indexing and IPAM reconciliation."""

from .normalizer import (
    normalize_ip,
    parse_block_cidr,
    parse_pool_cidr,
    address_sort_key
)
from .allocation_index import (
    AllocationIndex,
    Allocation,
    format_attrs,
    RESERVED_HANDLE,
    RESERVED_OWNER
)
from .usage_index import (
    UsageIndex,
    OwnerRecord,
    ResourceRef,
    node_addresses,
    workload_addresses
)
from .pool_oracle import PoolMembershipOracle
from .reconciliation import (
    IpamReconciliation,
    ProblemCategory,
    ReconciliationReport,
    AllocationStatus
)

__all__ = [
    'normalize_ip',
    'parse_block_cidr',
    'parse_pool_cidr',
    'address_sort_key',
    'AllocationIndex',
    'Allocation',
    'format_attrs',
    'RESERVED_HANDLE',
    'RESERVED_OWNER',
    'UsageIndex',
    'OwnerRecord',
    'ResourceRef',
    'node_addresses',
    'workload_addresses',
    'PoolMembershipOracle',
    'IpamReconciliation',
    'ProblemCategory',
    'ReconciliationReport',
    'AllocationStatus'
]
