"""Data sources for Calico IPAM state."""

from .datasource import IpamDataSource
from .base_connector import BaseAsyncConnector
from .kubernetes_connector import KubernetesConnector, create_kubernetes_connector
from .snapshot_connector import SnapshotDataSource

__all__ = [
    'IpamDataSource',
    'BaseAsyncConnector',
    'KubernetesConnector',
    'create_kubernetes_connector',
    'SnapshotDataSource'
]
