"""
Read-only listing interface consumed by the IPAM reconciler.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import AllocationBlock, Node, Pool, WorkloadEndpoint


class IpamDataSource(ABC):
    """Lists the records an IPAM check needs. Implementations never mutate state."""

    @abstractmethod
    async def list_allocation_blocks(self) -> List[AllocationBlock]:
        """Return every IPAM block."""
        pass

    @abstractmethod
    async def list_pools(self) -> List[Pool]:
        """Return every IP pool, including disabled ones."""
        pass

    @abstractmethod
    async def list_nodes(self) -> List[Node]:
        """Return every node."""
        pass

    @abstractmethod
    async def list_workload_endpoints(self) -> List[WorkloadEndpoint]:
        """Return every workload endpoint."""
        pass
