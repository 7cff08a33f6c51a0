"""Contains utility functions for network stuff"""

from netaddr import IPNetwork, valid_ipv4, valid_ipv6
from netaddr.core import AddrFormatError


def is_port(port):
    """Checks if a port is valid"""

    return isinstance(port, int) and 0 <= port <= 65535


def is_ip(ip):
    """Checks if an IP is a valid IPv4 or IPv6 address"""

    return valid_ipv4(ip) or valid_ipv6(ip)


def is_cidr(cidr):
    """Checks if a string is a network in CIDR notation, e.g. 10.96.0.0/12"""

    if not isinstance(cidr, str) or "/" not in cidr:
        return False

    try:
        IPNetwork(cidr)
    except (AddrFormatError, ValueError):
        return False

    return True
