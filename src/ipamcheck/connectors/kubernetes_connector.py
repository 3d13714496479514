"""
Kubernetes API connector for listing Calico IPAM state.
Reads Calico CRDs plus core nodes and pods; never writes.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models import AllocationBlock, Node, Pool, WorkloadEndpoint
from .base_connector import BaseAsyncConnector
from .datasource import IpamDataSource
from .kubernetes_resources import (
    block_from_resource,
    node_from_resource,
    pool_from_resource,
    workload_endpoints_from_pods
)

CALICO_CRD_PATH = "/apis/crd.projectcalico.org/v1"


class KubernetesConnector(BaseAsyncConnector, IpamDataSource):
    """
    Async connector for the Kubernetes API server (Kubernetes datastore).
    """

    def __init__(
        self,
        api_server: str,
        token: Optional[str] = None,
        token_file: Optional[str] = None,
        ca_file: Optional[str] = None,
        verify_ssl: bool = True,
        page_size: int = 500,
        timeout: int = 30,
        max_retries: int = 3,
        initial_delay: float = 1,
        backoff_multiplier: float = 2,
        max_delay: float = 60
    ):
        super().__init__(
            base_url=api_server,
            timeout=timeout,
            max_retries=max_retries,
            initial_delay=initial_delay,
            backoff_multiplier=backoff_multiplier,
            max_delay=max_delay,
            verify_ssl=verify_ssl,
            ca_file=ca_file
        )

        self.token = token
        self.token_file = token_file
        self.page_size = page_size

    def _read_token(self) -> Optional[str]:
        if self.token:
            return self.token
        if self.token_file and Path(self.token_file).exists():
            return Path(self.token_file).read_text().strip()
        return None

    def _get_auth_headers(self) -> Dict[str, str]:
        """Bearer token headers for the API server."""
        headers = {'Accept': 'application/json'}
        token = self._read_token()
        if token:
            headers['Authorization'] = f'Bearer {token}'
        return headers

    async def test_connection(self) -> bool:
        """Check that the Calico IPAM block CRD can be listed."""
        try:
            await self._request_with_retry(
                'GET',
                f"{self.base_url}{CALICO_CRD_PATH}/ipamblocks",
                params={'limit': 1}
            )
            return True
        except Exception as e:
            self.logger.error(f"Connection test failed: {e}")
            return False

    async def _list(self, endpoint: str) -> List[Dict[str, Any]]:
        items = await self._paginated_fetch(endpoint=endpoint, page_size=self.page_size)
        self.logger.debug(f"Listed {len(items)} items from {endpoint}")
        return items

    async def list_allocation_blocks(self) -> List[AllocationBlock]:
        resources = await self._list(f"{CALICO_CRD_PATH}/ipamblocks")
        return [block_from_resource(r) for r in resources]

    async def list_pools(self) -> List[Pool]:
        resources = await self._list(f"{CALICO_CRD_PATH}/ippools")
        return [pool_from_resource(r) for r in resources]

    async def list_nodes(self) -> List[Node]:
        resources = await self._list("/api/v1/nodes")
        return [node_from_resource(r) for r in resources]

    async def list_workload_endpoints(self) -> List[WorkloadEndpoint]:
        pods = await self._list("/api/v1/pods")
        return workload_endpoints_from_pods(pods)


def create_kubernetes_connector(config) -> KubernetesConnector:
    """Factory function to create a Kubernetes connector from config."""
    return KubernetesConnector(
        api_server=config.kubernetes.api_server,
        token=config.kubernetes.token,
        token_file=config.kubernetes.token_file,
        ca_file=config.kubernetes.ca_file,
        verify_ssl=config.kubernetes.verify_ssl,
        page_size=config.kubernetes.page_size,
        timeout=config.kubernetes.timeout,
        max_retries=config.retry.max_attempts,
        initial_delay=config.retry.initial_delay,
        backoff_multiplier=config.retry.backoff_multiplier,
        max_delay=config.retry.max_delay
    )
