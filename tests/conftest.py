"""Shared fixtures for the IPAM checker tests."""

import asyncio
import logging
from typing import List, Optional

import pytest

from ipamcheck.connectors.datasource import IpamDataSource
from ipamcheck.models import AllocationAttribute, AllocationBlock, Node, Pool, WorkloadEndpoint
from ipamcheck.processors import IpamReconciliation


class FakeDataSource(IpamDataSource):
    """In-memory data source; any listing can be made to fail."""

    def __init__(
        self,
        blocks: Optional[List[AllocationBlock]] = None,
        pools: Optional[List[Pool]] = None,
        nodes: Optional[List[Node]] = None,
        workload_endpoints: Optional[List[WorkloadEndpoint]] = None,
        fail_on: Optional[str] = None
    ):
        self.blocks = blocks or []
        self.pools = pools or []
        self.nodes = nodes or []
        self.workload_endpoints = workload_endpoints or []
        self.fail_on = fail_on
        self.calls = []

    def _maybe_fail(self, name: str):
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} unavailable")

    async def list_allocation_blocks(self):
        self._maybe_fail('blocks')
        return self.blocks

    async def list_pools(self):
        self._maybe_fail('pools')
        return self.pools

    async def list_nodes(self):
        self._maybe_fail('nodes')
        return self.nodes

    async def list_workload_endpoints(self):
        self._maybe_fail('workload_endpoints')
        return self.workload_endpoints


class FakeResponse:
    def __init__(self, status, payload=None, headers=None, text=""):
        self.status = status
        self._payload = payload
        self.headers = headers or {}
        self._text = text

    async def json(self):
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    """Replays canned responses and records request parameters."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs.get('params')))
        return self.responses.pop(0)

    async def close(self):
        self.closed = True


def make_block(cidr, allocations, attributes=None, affinity=None):
    return AllocationBlock(
        cidr=cidr,
        affinity=affinity,
        allocations=list(allocations),
        attributes=list(attributes or [])
    )


def handle_attr(handle, **secondary):
    return AllocationAttribute(primary=handle, secondary=dict(secondary))


def run_check(source, **kwargs):
    return asyncio.run(IpamReconciliation(source, **kwargs).check())


@pytest.fixture
def transcript(caplog):
    """Capture the check transcript emitted on the ipamcheck logger."""
    caplog.set_level(logging.INFO, logger="ipamcheck")
    return caplog
