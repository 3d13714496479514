"""
Offline data source reading a dump of cluster resources from a YAML or JSON file.

Expected layout (each key optional, each value a list of raw resources as
returned by ``kubectl get <kind> -o yaml``):

    ipamblocks: [...]
    ippools: [...]
    nodes: [...]
    pods: [...]
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..errors import ConnectorError
from ..models import AllocationBlock, Node, Pool, WorkloadEndpoint
from .datasource import IpamDataSource
from .kubernetes_resources import (
    block_from_resource,
    node_from_resource,
    pool_from_resource,
    workload_endpoints_from_pods
)


class SnapshotDataSource(IpamDataSource):
    """Serves IPAM records from a snapshot file, loaded once on first use."""

    def __init__(self, path: str):
        self.path = Path(path)
        self.logger = logging.getLogger(f"ipamcheck.{self.__class__.__name__}")
        self._document: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._document is not None:
            return self._document

        if not self.path.exists():
            raise ConnectorError(f"Snapshot file not found: {self.path}")

        try:
            with open(self.path, 'r') as f:
                document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConnectorError(f"Snapshot file {self.path} is not valid YAML/JSON: {e}") from e

        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise ConnectorError(f"Snapshot file {self.path} must contain a mapping")

        self.logger.debug(f"Loaded snapshot from {self.path}")
        self._document = document
        return document

    def _resources(self, key: str) -> List[Dict[str, Any]]:
        value = self._load().get(key)
        if value is None:
            return []
        # Accept a full "kind: List" document as well as a bare list.
        if isinstance(value, dict) and 'items' in value:
            value = value['items'] or []
        if not isinstance(value, list):
            raise ConnectorError(f"Snapshot key '{key}' must be a list of resources")
        return value

    async def list_allocation_blocks(self) -> List[AllocationBlock]:
        return [block_from_resource(r) for r in self._resources('ipamblocks')]

    async def list_pools(self) -> List[Pool]:
        return [pool_from_resource(r) for r in self._resources('ippools')]

    async def list_nodes(self) -> List[Node]:
        return [node_from_resource(r) for r in self._resources('nodes')]

    async def list_workload_endpoints(self) -> List[WorkloadEndpoint]:
        return workload_endpoints_from_pods(self._resources('pods'))
