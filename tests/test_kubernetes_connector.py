"""Tests for the Kubernetes connector's request, retry and pagination handling."""

import asyncio

import pytest

from ipamcheck.connectors import KubernetesConnector
from ipamcheck.errors import ConnectorError

from conftest import FakeResponse, FakeSession


def make_connector(responses, **kwargs):
    connector = KubernetesConnector(
        api_server="https://k8s.example:6443/",
        token="secret",
        initial_delay=0,
        max_delay=0,
        page_size=2,
        **kwargs
    )
    connector._session = FakeSession(responses)
    return connector


def test_auth_headers_from_token():
    connector = KubernetesConnector(api_server="https://k8s.example", token="abc")

    assert connector._get_auth_headers()['Authorization'] == 'Bearer abc'
    assert connector.base_url == "https://k8s.example"


def test_auth_headers_from_token_file(tmp_path):
    token_file = tmp_path / "token"
    token_file.write_text("from-file\n")
    connector = KubernetesConnector(api_server="https://k8s.example", token_file=str(token_file))

    assert connector._get_auth_headers()['Authorization'] == 'Bearer from-file'


def test_no_token_means_no_authorization_header(tmp_path):
    connector = KubernetesConnector(
        api_server="https://k8s.example",
        token_file=str(tmp_path / "missing")
    )

    assert 'Authorization' not in connector._get_auth_headers()


def test_pagination_follows_continue_tokens():
    connector = make_connector([
        FakeResponse(200, {
            'items': [{'spec': {'cidr': '10.0.0.0/24'}}, {'spec': {'cidr': '10.1.0.0/24'}}],
            'metadata': {'continue': 'tok-1'}
        }),
        FakeResponse(200, {
            'items': [{'spec': {'cidr': '10.2.0.0/24', 'disabled': True}}],
            'metadata': {}
        }),
    ])

    pools = asyncio.run(connector.list_pools())

    assert [p.cidr for p in pools] == ['10.0.0.0/24', '10.1.0.0/24', '10.2.0.0/24']
    assert pools[2].disabled
    requests = connector._session.requests
    assert requests[0][1] == "https://k8s.example:6443/apis/crd.projectcalico.org/v1/ippools"
    assert requests[0][2] == {'limit': 2}
    assert requests[1][2] == {'limit': 2, 'continue': 'tok-1'}


def test_pods_listing_yields_workload_endpoints():
    connector = make_connector([
        FakeResponse(200, {'items': [
            {
                'metadata': {'name': 'web', 'namespace': 'prod'},
                'spec': {'nodeName': 'n1'},
                'status': {'phase': 'Running', 'podIP': '10.0.0.4'}
            },
            {
                'metadata': {'name': 'kube-proxy', 'namespace': 'kube-system'},
                'spec': {'nodeName': 'n1', 'hostNetwork': True},
                'status': {'phase': 'Running', 'podIP': '192.168.0.2'}
            },
        ]}),
    ])

    weps = asyncio.run(connector.list_workload_endpoints())

    assert [(w.namespace, w.pod, w.ip_networks) for w in weps] == [('prod', 'web', ['10.0.0.4'])]
    assert connector._session.requests[0][1].endswith("/api/v1/pods")


def test_server_errors_are_retried():
    connector = make_connector([
        FakeResponse(503),
        FakeResponse(200, {'items': [{'metadata': {'name': 'n1'}}]}),
    ])

    nodes = asyncio.run(connector.list_nodes())

    assert [n.name for n in nodes] == ['n1']
    assert connector.get_stats()['retries'] == 1


def test_exhausted_retries_raise():
    connector = make_connector([FakeResponse(500), FakeResponse(502), FakeResponse(500)])

    with pytest.raises(ConnectorError) as exc_info:
        asyncio.run(connector.list_allocation_blocks())

    assert "All 3 retry attempts failed" in str(exc_info.value)


def test_auth_failure_is_not_retried():
    connector = make_connector([FakeResponse(403)])

    with pytest.raises(ConnectorError) as exc_info:
        asyncio.run(connector.list_nodes())

    assert "Authentication failed" in str(exc_info.value)
    assert len(connector._session.requests) == 1


def test_client_error_status_raises_with_body():
    connector = make_connector([FakeResponse(404, text="the server could not find the resource")])

    with pytest.raises(ConnectorError) as exc_info:
        asyncio.run(connector.list_allocation_blocks())

    assert "404" in str(exc_info.value)


def test_test_connection_reports_failure():
    connector = make_connector([FakeResponse(401)])

    assert asyncio.run(connector.test_connection()) is False
