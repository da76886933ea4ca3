"""
Client IP helpers for click tracking and request rate limiting
"""
import ipaddress
from flask import request


def get_client_ip():
    """
    Get the real client IP address, handling proxies and load balancers.
    Checks X-Forwarded-For, X-Real-IP headers, and falls back to remote_addr.
    """
    # Check for forwarded IPs (from proxies/load balancers)
    if request.headers.get('X-Forwarded-For'):
        # X-Forwarded-For can contain multiple IPs, take the first one
        forwarded_ips = request.headers.get('X-Forwarded-For').split(',')
        client_ip = forwarded_ips[0].strip()
    elif request.headers.get('X-Real-IP'):
        client_ip = request.headers.get('X-Real-IP').strip()
    else:
        client_ip = request.remote_addr

    return client_ip or 'unknown'


def anonymize_ip(ip_address):
    """
    Mask the host part of an address.

    IPv4 keeps the first three octets ('1.2.3.xxx'), IPv6 keeps the first
    three hextets. Anything unparseable is reported as 'unknown'.
    """
    try:
        ip_obj = ipaddress.ip_address(ip_address)
    except ValueError:
        return 'unknown'

    if ip_obj.version == 4:
        octets = str(ip_obj).split('.')
        return '.'.join(octets[:3]) + '.xxx'

    hextets = ip_obj.exploded.split(':')
    return ':'.join(hextets[:3]) + ':xxxx'


def get_anonymized_client_ip():
    return anonymize_ip(get_client_ip())
