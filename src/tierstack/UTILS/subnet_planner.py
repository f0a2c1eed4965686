"""
Helpers for carving subnet CIDR blocks out of a network CIDR.
"""
import ipaddress
from typing import Dict, List

SUBNET_GROUPS = ("public", "private", "database")

# netnum distance between the first blocks of two consecutive groups
MIN_GROUP_STRIDE = 4


def cidr_subnet(prefix: str, newbits: int, netnum: int) -> str:
    """similar to terraform cidrsubnet()"""
    network = ipaddress.ip_network(prefix)
    new_prefix_len = network.prefixlen + newbits
    if new_prefix_len > network.max_prefixlen:
        raise ValueError(f"cannot add {newbits} bits to {prefix}")
    if netnum >= 2 ** newbits:
        raise ValueError(f"netnum {netnum} does not fit in {newbits} bits of {prefix}")
    new_subnet_size = 2 ** (network.max_prefixlen - new_prefix_len)
    start_ip = network.network_address + (netnum * new_subnet_size)
    return f"{start_ip}/{new_prefix_len}"


def plan_subnets(vpc_cidr: str, az_count: int, prefix_len: int = 24) -> Dict[str, List[str]]:
    """
    Plans public, private and database subnets, one per availability zone.

    Groups start ``max(4, az_count)`` blocks apart, so with a /16 VPC, three
    AZs and the default /24 subnets this yields public subnets at
    x.x.0-2.0, private at x.x.4-6.0 and database at x.x.8-10.0.

    :raises ValueError: If the VPC is too small for the planned blocks.
    """
    network = ipaddress.ip_network(vpc_cidr)
    newbits = prefix_len - network.prefixlen
    if newbits <= 0:
        raise ValueError(f"subnet prefix /{prefix_len} is not smaller than {vpc_cidr}")
    stride = max(MIN_GROUP_STRIDE, az_count)
    return {
        group: [cidr_subnet(vpc_cidr, newbits, index * stride + k) for k in range(az_count)]
        for index, group in enumerate(SUBNET_GROUPS)
    }
