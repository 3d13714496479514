"""Tests for address normalization."""

import ipaddress

import pytest

from ipamcheck.errors import ParseError, PoolParseError
from ipamcheck.processors.normalizer import (
    address_sort_key,
    normalize_ip,
    parse_block_cidr,
    parse_pool_cidr
)


@pytest.mark.parametrize("raw", [
    "10.0.0.1",
    "10.0.0.1/32",
    "10.0.0.1/24",
    " 10.0.0.1 ",
])
def test_ipv4_forms_normalize_identically(raw):
    assert normalize_ip(raw) == "10.0.0.1"


@pytest.mark.parametrize("raw", [
    "FD00::1",
    "fd00:0:0:0:0:0:0:1",
    "fd00::0001/128",
    "fd00::1/64",
])
def test_ipv6_forms_normalize_identically(raw):
    assert normalize_ip(raw) == "fd00::1"


def test_ipv4_mapped_ipv6_renders_as_ipv4():
    assert normalize_ip("::ffff:10.0.0.7") == "10.0.0.7"


@pytest.mark.parametrize("raw", ["", "not-an-ip", "10.0.0.256", "10.0.0.1/33", "10.0.0"])
def test_invalid_address_raises_parse_error(raw):
    with pytest.raises(ParseError) as exc_info:
        normalize_ip(raw, "workload default/pod-a")

    assert exc_info.value.value == raw
    assert exc_info.value.source == "workload default/pod-a"
    assert "workload default/pod-a" in str(exc_info.value)


def test_non_string_raises_parse_error():
    with pytest.raises(ParseError):
        normalize_ip(None, "node n1")


def test_pool_cidr_masks_host_bits():
    assert parse_pool_cidr("10.0.0.5/24") == ipaddress.ip_network("10.0.0.0/24")


def test_bad_pool_cidr_raises_pool_parse_error():
    with pytest.raises(PoolParseError) as exc_info:
        parse_pool_cidr("10.0.0.0/99")

    assert isinstance(exc_info.value, ParseError)
    assert "10.0.0.0/99" in str(exc_info.value)


def test_bad_block_cidr_raises_parse_error():
    with pytest.raises(ParseError):
        parse_block_cidr("bogus")


def test_sort_key_is_numeric_with_ipv4_first():
    addresses = ["10.0.0.10", "fd00::1", "10.0.0.9", "9.255.255.255"]
    assert sorted(addresses, key=address_sort_key) == [
        "9.255.255.255", "10.0.0.9", "10.0.0.10", "fd00::1"
    ]


def test_ipv4_mapped_pool_cidr_becomes_ipv4():
    assert parse_pool_cidr("::ffff:10.0.0.0/120") == ipaddress.ip_network("10.0.0.0/24")
    assert parse_pool_cidr("fd00::/120") == ipaddress.ip_network("fd00::/120")
