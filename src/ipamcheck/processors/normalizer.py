"""
Address normalization: every address is reduced to one canonical string
before it is used as a join key.
"""

import ipaddress
from typing import Tuple, Union

from ..errors import ParseError, PoolParseError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def canonical(ip: IPAddress) -> str:
    """Render a parsed address in canonical form."""
    if ip.version == 6 and ip.ipv4_mapped is not None:
        return str(ip.ipv4_mapped)
    return str(ip)


def normalize_ip(addr: str, source: str = '') -> str:
    """
    Normalize an IP address or CIDR string to a bare canonical address.

    Args:
        addr: Address such as "10.0.0.1", "10.0.0.1/32" or "fd00::0001/128"
        source: Description of the owning entity, used in error messages

    Returns:
        Canonical address string

    Raises:
        ParseError: If the value is not an IP address or CIDR
    """
    if not isinstance(addr, str):
        raise ParseError(str(addr), source, "not a string")

    value = addr.strip()
    try:
        if '/' in value:
            ip = ipaddress.ip_interface(value).ip
        else:
            ip = ipaddress.ip_address(value)
    except ValueError as e:
        raise ParseError(addr, source, str(e)) from e

    return canonical(ip)


def parse_block_cidr(cidr: str) -> IPNetwork:
    """Parse an IPAM block CIDR."""
    try:
        return ipaddress.ip_network(str(cidr).strip(), strict=False)
    except ValueError as e:
        raise ParseError(cidr, "IPAM block", str(e)) from e


def canonical_network(network: IPNetwork) -> IPNetwork:
    """
    Render an IPv4-mapped IPv6 network as the IPv4 network it covers, so it
    matches the canonical form of the addresses inside it.
    """
    if network.version == 6 and network.prefixlen >= 96:
        mapped = network.network_address.ipv4_mapped
        if mapped is not None:
            return ipaddress.IPv4Network((mapped, network.prefixlen - 96))
    return network


def parse_pool_cidr(cidr: str) -> IPNetwork:
    """Parse an IP pool CIDR. Host bits are masked off."""
    try:
        network = ipaddress.ip_network(str(cidr).strip(), strict=False)
    except ValueError as e:
        raise PoolParseError(cidr, str(e)) from e
    return canonical_network(network)


def address_sort_key(address: str) -> Tuple[int, int]:
    """Numeric sort key for canonical addresses (IPv4 before IPv6)."""
    ip = ipaddress.ip_address(address)
    return ip.version, int(ip)
