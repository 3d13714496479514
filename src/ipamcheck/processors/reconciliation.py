"""
Reconciliation of IPAM allocations against addresses in use by nodes and workloads.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from ..connectors.datasource import IpamDataSource
from ..errors import ListingError
from .allocation_index import RESERVED_HANDLE, AllocationIndex
from .normalizer import address_sort_key
from .pool_oracle import PoolMembershipOracle
from .usage_index import UsageIndex, node_addresses, workload_addresses

T = TypeVar('T')

NO_AFFINITY = "<none>"


class ProblemCategory(Enum):
    """Categories of findings produced by a check."""
    LEAKED = "leaked"
    MULTI_OWNER = "multi_owner"
    NOT_IN_POOL = "not_in_pool"
    MISSING_ALLOCATION = "missing_allocation"

    @property
    def counts_as_problem(self) -> bool:
        return self is not ProblemCategory.MULTI_OWNER


@dataclass(frozen=True)
class AllocationStatus:
    """An allocation together with whether anything is using its address."""
    ip: str
    block: str
    handle: Optional[str]
    secondary: Dict[str, str]
    in_use: bool

    __hash__ = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ip': self.ip,
            'block': self.block,
            'handle': self.handle,
            'secondary': dict(sorted(self.secondary.items())),
            'in_use': self.in_use
        }


@dataclass(frozen=True)
class ReconciliationReport:
    """Result of one IPAM check."""
    num_blocks: int = 0
    num_allocations: int = 0
    active_pools: Tuple[str, ...] = ()

    num_node_ips: int = 0
    num_workload_ips: int = 0
    num_in_use_ips: int = 0

    leaked: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    multi_owner: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    not_in_pool: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    missing_allocation: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    allocations_by_host: Dict[str, Tuple[AllocationStatus, ...]] = field(default_factory=dict)

    # Immutable but holds dicts; not hashable.
    __hash__ = None

    @property
    def num_problems(self) -> int:
        # Multiple owners are reported but not counted.
        return len(self.leaked) + len(self.not_in_pool) + len(self.missing_allocation)

    def get_category(self, category: ProblemCategory) -> Dict[str, Tuple[str, ...]]:
        return getattr(self, category.value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary."""
        return {
            'num_blocks': self.num_blocks,
            'num_allocations': self.num_allocations,
            'active_pools': list(self.active_pools),
            'num_node_ips': self.num_node_ips,
            'num_workload_ips': self.num_workload_ips,
            'num_in_use_ips': self.num_in_use_ips,
            'leaked': {ip: list(v) for ip, v in self.leaked.items()},
            'multi_owner': {ip: list(v) for ip, v in self.multi_owner.items()},
            'not_in_pool': {ip: list(v) for ip, v in self.not_in_pool.items()},
            'missing_allocation': {ip: list(v) for ip, v in self.missing_allocation.items()},
            'num_problems': self.num_problems,
            'allocations': {
                host: [s.to_dict() for s in statuses]
                for host, statuses in self.allocations_by_host.items()
            }
        }


class IpamReconciliation:
    """
    Audits IPAM block allocations against the addresses used by nodes and
    workload endpoints.

    Every call to check() works on fresh indexes, so one instance can be
    reused against the same data source.
    """

    def __init__(
        self,
        source: IpamDataSource,
        show_all_ips: bool = False,
        show_problem_ips: bool = False,
        reserved_handle: str = RESERVED_HANDLE
    ):
        self.source = source
        self.show_all_ips = show_all_ips
        self.show_problem_ips = show_problem_ips or show_all_ips
        self.reserved_handle = reserved_handle
        self.logger = logging.getLogger(f"ipamcheck.{self.__class__.__name__}")

    async def check(self) -> ReconciliationReport:
        """
        Run all phases of the check.

        Returns:
            The completed report

        Raises:
            ListingError: If any listing call fails
            ParseError: If a node or workload address is malformed
            PoolParseError: If an active pool CIDR is malformed
        """
        self.logger.info("Checking IPAM for inconsistencies...")
        self.logger.info("")

        usage = UsageIndex(show_all_ips=self.show_all_ips)
        allocations = AllocationIndex(
            usage,
            show_all_ips=self.show_all_ips,
            reserved_handle=self.reserved_handle
        )

        num_blocks = await self._load_blocks(allocations)
        oracle, active_pools = await self._load_pools()
        num_node_ips = await self._load_nodes(usage)
        num_workload_ips = await self._load_workload_endpoints(usage)

        leaked = self._scan_leaked(allocations, usage)
        multi_owner, not_in_pool, missing = self._scan_unallocated(allocations, usage, oracle)

        report = ReconciliationReport(
            num_blocks=num_blocks,
            num_allocations=len(allocations),
            active_pools=tuple(active_pools),
            num_node_ips=num_node_ips,
            num_workload_ips=num_workload_ips,
            num_in_use_ips=len(usage),
            leaked=leaked,
            multi_owner=multi_owner,
            not_in_pool=not_in_pool,
            missing_allocation=missing,
            allocations_by_host=self._group_by_host(allocations, usage)
        )

        self.logger.info(f"Check complete; found {report.num_problems} problems.")
        return report

    async def _list(self, listing: str, fetch: Callable[[], Awaitable[List[T]]]) -> List[T]:
        try:
            return list(await fetch())
        except Exception as e:
            raise ListingError(listing, e) from e

    async def _load_blocks(self, allocations: AllocationIndex) -> int:
        self.logger.info("Loading all IPAM blocks...")
        blocks = await self._list("IPAM blocks", self.source.list_allocation_blocks)
        self.logger.info(f"Found {len(blocks)} IPAM blocks.")

        for block in blocks:
            affinity = block.affinity if block.affinity is not None else NO_AFFINITY
            self.logger.info(f" IPAM block {block.cidr} affinity={affinity}:")
            allocations.record_block(block)

        self.logger.info(f"IPAM blocks record {len(allocations)} allocations.")
        self.logger.info("")
        return len(blocks)

    async def _load_pools(self) -> Tuple[PoolMembershipOracle, List[str]]:
        self.logger.info("Loading all IPAM pools...")
        pools = await self._list("IP pools", self.source.list_pools)

        active = [p for p in pools if not p.disabled]
        for pool in active:
            self.logger.info(f"  {pool.cidr}")
        oracle = PoolMembershipOracle.from_pools(active)

        self.logger.info(f"Found {len(oracle)} active IP pools.")
        self.logger.info("")
        return oracle, [p.cidr for p in active]

    async def _load_nodes(self, usage: UsageIndex) -> int:
        self.logger.info("Loading all nodes.")
        nodes = await self._list("nodes", self.source.list_nodes)

        num_ips = 0
        for node in nodes:
            num_ips += usage.record_claims(node_addresses(node))

        self.logger.info(f"Found {num_ips} node tunnel IPs.")
        self.logger.info("")
        return num_ips

    async def _load_workload_endpoints(self, usage: UsageIndex) -> int:
        self.logger.info("Loading all workload endpoints.")
        weps = await self._list("workload endpoints", self.source.list_workload_endpoints)

        num_ips = 0
        for wep in weps:
            num_ips += usage.record_claims(workload_addresses(wep))

        self.logger.info(f"Found {num_ips} workload IPs.")
        self.logger.info(f"Workloads and nodes are using {len(usage)} IPs.")
        self.logger.info("")
        return num_ips

    def _scan_leaked(
        self,
        allocations: AllocationIndex,
        usage: UsageIndex
    ) -> Dict[str, Tuple[str, ...]]:
        self.logger.info("Scanning for IPs that are allocated but not actually in use...")

        leaked = {}
        for ip, allocs in sorted(allocations.items(), key=lambda kv: address_sort_key(kv[0])):
            if ip in usage:
                continue
            attrs = tuple(a.attr_string() for a in allocs)
            if self.show_problem_ips:
                for attr in attrs:
                    self.logger.info(f"  {ip} leaked; attrs {attr}")
            leaked[ip] = attrs

        self.logger.info(
            f"Found {len(leaked)} IPs that are allocated in IPAM but not actually in use."
        )
        return leaked

    def _scan_unallocated(
        self,
        allocations: AllocationIndex,
        usage: UsageIndex,
        oracle: PoolMembershipOracle
    ) -> Tuple[Dict[str, Tuple[str, ...]], ...]:
        self.logger.info(
            "Scanning for IPs that are in use by a workload or node but not allocated in IPAM..."
        )

        multi_owner = {}
        not_in_pool = {}
        missing = {}
        for ip, owners in sorted(usage.items(), key=lambda kv: address_sort_key(kv[0])):
            names = tuple(o.friendly_name for o in owners)

            if len(owners) > 1:
                if self.show_problem_ips:
                    self.logger.warning(f"  {ip} has multiple owners.")
                multi_owner[ip] = names

            if ip in allocations:
                continue

            if not oracle.contains(ip):
                if self.show_problem_ips:
                    for name in names:
                        self.logger.info(f"  {ip} in use by {name} is not in any active IP pool.")
                not_in_pool[ip] = names
                continue

            if self.show_problem_ips:
                for name in names:
                    self.logger.info(
                        f"  {ip} in use by {name} and in active IPAM pool but has no IPAM allocation."
                    )
            missing[ip] = names

        self.logger.info(f"Found {len(not_in_pool)} in-use IPs that are not in active IP pools.")
        self.logger.info(
            f"Found {len(missing)} in-use IPs that are in active IP pools but have no "
            f"corresponding IPAM allocation."
        )
        self.logger.info("")
        return multi_owner, not_in_pool, missing

    def _group_by_host(
        self,
        allocations: AllocationIndex,
        usage: UsageIndex
    ) -> Dict[str, Tuple[AllocationStatus, ...]]:
        """Group allocations by the host their block is affine to."""
        by_host: Dict[str, List[AllocationStatus]] = {}

        for ip, allocs in sorted(allocations.items(), key=lambda kv: address_sort_key(kv[0])):
            for alloc in allocs:
                attribute = alloc.attribute()
                host = alloc.block.host or NO_AFFINITY
                by_host.setdefault(host, []).append(AllocationStatus(
                    ip=ip,
                    block=alloc.block.cidr,
                    handle=attribute.primary if attribute else None,
                    secondary=dict(attribute.secondary) if attribute else {},
                    in_use=ip in usage
                ))

        return {host: tuple(statuses) for host, statuses in sorted(by_host.items())}

    @staticmethod
    def get_problems(
        report: ReconciliationReport
    ) -> List[Tuple[ProblemCategory, str, Tuple[str, ...]]]:
        """Flatten the counted problem categories into (category, ip, details) rows."""
        rows = []
        for category in ProblemCategory:
            if not category.counts_as_problem:
                continue
            for ip, details in report.get_category(category).items():
                rows.append((category, ip, details))
        return rows
