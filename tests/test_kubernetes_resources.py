"""Tests for converting Kubernetes and Calico resources into IPAM records."""

from ipamcheck.connectors.kubernetes_resources import (
    block_from_resource,
    node_from_resource,
    pod_ip_networks,
    pool_from_resource,
    workload_endpoint_from_pod,
    workload_endpoint_name,
    workload_endpoints_from_pods
)


def make_pod(name="web-1", namespace="prod", node="node-1", annotations=None,
             status=None, host_network=False):
    spec = {'hostNetwork': host_network}
    if node:
        spec['nodeName'] = node
    return {
        'metadata': {'name': name, 'namespace': namespace, 'annotations': annotations or {}},
        'spec': spec,
        'status': status or {'phase': 'Running'}
    }


def test_block_from_resource():
    block = block_from_resource({
        'metadata': {'name': '10-0-0-0-26'},
        'spec': {
            'cidr': '10.0.0.0/26',
            'affinity': 'host:node-1',
            'allocations': [0, None, 1],
            'attributes': [
                {'handle_id': 'ipip-tunnel-addr-node-1', 'secondary': {'node': 'node-1'}},
                {'handle_id': 'k8s-pod-network.abc', 'secondary': None},
            ],
            'unallocated': [1],
        }
    })

    assert block.cidr == '10.0.0.0/26'
    assert block.host == 'node-1'
    assert block.allocations == [0, None, 1]
    assert block.attributes[0].primary == 'ipip-tunnel-addr-node-1'
    assert block.attributes[0].secondary == {'node': 'node-1'}
    assert block.attributes[1].secondary == {}


def test_block_without_affinity():
    block = block_from_resource({'spec': {'cidr': '10.0.0.0/26'}})

    assert block.affinity is None
    assert block.host is None
    assert block.allocations == []


def test_pool_from_resource():
    pool = pool_from_resource({
        'metadata': {'name': 'default-ipv4-ippool'},
        'spec': {'cidr': '10.0.0.0/16', 'disabled': True}
    })

    assert pool.name == 'default-ipv4-ippool'
    assert pool.cidr == '10.0.0.0/16'
    assert pool.disabled is True


def test_pool_defaults_to_enabled():
    assert pool_from_resource({'spec': {'cidr': '10.0.0.0/16'}}).disabled is False


def test_node_from_resource_reads_tunnel_annotations():
    node = node_from_resource({
        'metadata': {
            'name': 'node-1',
            'annotations': {
                'projectcalico.org/IPv4VXLANTunnelAddr': '10.0.0.1',
                'projectcalico.org/IPv4WireguardInterfaceAddr': '10.0.0.2',
                'projectcalico.org/IPv4IPIPTunnelAddr': '',
                'projectcalico.org/IPv4Address': '192.168.1.10/24',
            }
        }
    })

    assert node.name == 'node-1'
    assert node.ipv4_vxlan_tunnel_addr == '10.0.0.1'
    assert node.wireguard_interface_ipv4_addr == '10.0.0.2'
    assert node.ipv4_ipip_tunnel_addr is None


def test_workload_endpoint_name_escapes_dashes():
    assert workload_endpoint_name('node-1', 'web-1') == 'node--1-k8s-web--1-eth0'


def test_pod_ips_annotation_preferred():
    pod = make_pod(
        annotations={
            'cni.projectcalico.org/podIPs': '10.0.0.5/32, fd00::5/128',
            'cni.projectcalico.org/podIP': '10.0.0.6/32',
        },
        status={'phase': 'Running', 'podIP': '10.0.0.7'}
    )

    assert pod_ip_networks(pod) == ['10.0.0.5/32', 'fd00::5/128']


def test_pod_ip_annotation_then_status():
    assert pod_ip_networks(make_pod(annotations={'cni.projectcalico.org/podIP': '10.0.0.6/32'})) == [
        '10.0.0.6/32'
    ]
    assert pod_ip_networks(make_pod(status={'podIPs': [{'ip': '10.0.0.7'}, {'ip': 'fd00::7'}]})) == [
        '10.0.0.7', 'fd00::7'
    ]
    assert pod_ip_networks(make_pod(status={'podIP': '10.0.0.8'})) == ['10.0.0.8']
    assert pod_ip_networks(make_pod()) == []


def test_workload_endpoint_from_pod():
    wep = workload_endpoint_from_pod(
        make_pod(annotations={'cni.projectcalico.org/podIP': '10.0.0.6/32'})
    )

    assert wep.namespace == 'prod'
    assert wep.name == 'node--1-k8s-web--1-eth0'
    assert wep.pod == 'web-1'
    assert wep.node == 'node-1'
    assert wep.ip_networks == ['10.0.0.6/32']


def test_pods_without_endpoints_are_skipped():
    pods = [
        make_pod(name='host', host_network=True, status={'podIP': '192.168.1.10'}),
        make_pod(name='pending', node=None),
        make_pod(name='done', status={'phase': 'Succeeded', 'podIP': '10.0.0.9'}),
        make_pod(name='failed', status={'phase': 'Failed'}),
        make_pod(name='live', status={'phase': 'Running', 'podIP': '10.0.0.10'}),
    ]

    weps = workload_endpoints_from_pods(pods)

    assert [w.pod for w in weps] == ['live']
