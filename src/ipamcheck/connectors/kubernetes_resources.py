"""
Conversion of raw Kubernetes and Calico resources into IPAM records.
"""

from typing import Any, Dict, List, Optional

from ..models import AllocationAttribute, AllocationBlock, Node, Pool, WorkloadEndpoint

VXLAN_TUNNEL_ANNOTATION = "projectcalico.org/IPv4VXLANTunnelAddr"
WIREGUARD_ANNOTATION = "projectcalico.org/IPv4WireguardInterfaceAddr"
IPIP_TUNNEL_ANNOTATION = "projectcalico.org/IPv4IPIPTunnelAddr"

POD_IPS_ANNOTATION = "cni.projectcalico.org/podIPs"
POD_IP_ANNOTATION = "cni.projectcalico.org/podIP"

FINISHED_POD_PHASES = ('Succeeded', 'Failed')


def _metadata(resource: Dict[str, Any]) -> Dict[str, Any]:
    return resource.get('metadata', {}) or {}


def _spec(resource: Dict[str, Any]) -> Dict[str, Any]:
    return resource.get('spec', {}) or {}


def block_from_resource(resource: Dict[str, Any]) -> AllocationBlock:
    """Convert an ipamblocks.crd.projectcalico.org resource."""
    spec = _spec(resource)

    attributes = [
        AllocationAttribute(
            primary=attr.get('handle_id'),
            secondary={str(k): str(v) for k, v in (attr.get('secondary') or {}).items()}
        )
        for attr in spec.get('attributes', []) or []
    ]

    return AllocationBlock(
        cidr=spec.get('cidr', ''),
        affinity=spec.get('affinity'),
        allocations=[
            int(a) if a is not None else None
            for a in spec.get('allocations', []) or []
        ],
        attributes=attributes
    )


def pool_from_resource(resource: Dict[str, Any]) -> Pool:
    """Convert an ippools.crd.projectcalico.org resource."""
    spec = _spec(resource)
    return Pool(
        cidr=spec.get('cidr', ''),
        disabled=bool(spec.get('disabled', False)),
        name=_metadata(resource).get('name', '')
    )


def node_from_resource(resource: Dict[str, Any]) -> Node:
    """Convert a Kubernetes Node, reading Calico's tunnel address annotations."""
    metadata = _metadata(resource)
    annotations = metadata.get('annotations', {}) or {}

    return Node(
        name=metadata.get('name', ''),
        ipv4_vxlan_tunnel_addr=annotations.get(VXLAN_TUNNEL_ANNOTATION) or None,
        wireguard_interface_ipv4_addr=annotations.get(WIREGUARD_ANNOTATION) or None,
        ipv4_ipip_tunnel_addr=annotations.get(IPIP_TUNNEL_ANNOTATION) or None
    )


def _escape_name_part(part: str) -> str:
    return part.replace('-', '--')


def workload_endpoint_name(node: str, pod: str, orchestrator: str = 'k8s',
                           endpoint: str = 'eth0') -> str:
    """Calico's name for a pod's workload endpoint."""
    return '-'.join(_escape_name_part(p) for p in (node, orchestrator, pod, endpoint))


def pod_ip_networks(pod: Dict[str, Any]) -> List[str]:
    """
    Addresses a pod holds, preferring Calico's CNI annotations over pod status.
    """
    annotations = _metadata(pod).get('annotations', {}) or {}

    pod_ips = annotations.get(POD_IPS_ANNOTATION)
    if pod_ips:
        return [ip.strip() for ip in pod_ips.split(',') if ip.strip()]

    pod_ip = annotations.get(POD_IP_ANNOTATION)
    if pod_ip:
        return [pod_ip.strip()]

    status = pod.get('status', {}) or {}
    ips = [entry.get('ip') for entry in status.get('podIPs', []) or [] if entry.get('ip')]
    if ips:
        return ips
    if status.get('podIP'):
        return [status['podIP']]
    return []


def workload_endpoint_from_pod(pod: Dict[str, Any]) -> Optional[WorkloadEndpoint]:
    """
    Convert a pod into its workload endpoint.

    Returns:
        None for host-networked, unscheduled and finished pods, which have
        no Calico endpoint
    """
    metadata = _metadata(pod)
    spec = _spec(pod)
    status = pod.get('status', {}) or {}

    if spec.get('hostNetwork', False):
        return None

    node = spec.get('nodeName', '')
    if not node:
        return None

    if status.get('phase') in FINISHED_POD_PHASES:
        return None

    pod_name = metadata.get('name', '')
    return WorkloadEndpoint(
        namespace=metadata.get('namespace', 'default'),
        name=workload_endpoint_name(node, pod_name),
        ip_networks=pod_ip_networks(pod),
        node=node,
        pod=pod_name
    )


def workload_endpoints_from_pods(pods: List[Dict[str, Any]]) -> List[WorkloadEndpoint]:
    endpoints = []
    for pod in pods:
        wep = workload_endpoint_from_pod(pod)
        if wep is not None:
            endpoints.append(wep)
    return endpoints
