"""
证书主机名校验服务
"""
import ipaddress
from typing import List

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..errors import HostnameMismatchError


def common_name(certificate: x509.Certificate) -> str:
    """返回证书主题的通用名称，没有时返回空字符串"""
    attributes = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return ""
    value = attributes[0].value
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return value


def _subject_alt_name(certificate: x509.Certificate):
    try:
        return certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return None


def dns_names(certificate: x509.Certificate) -> List[str]:
    san = _subject_alt_name(certificate)
    if san is None:
        return []
    return san.get_values_for_type(x509.DNSName)


def _dnsname_matches(hostname: str, pattern: str) -> bool:
    """
    DNS名称匹配，仅支持最左侧整段通配符

    '*.example.com' 匹配 'www.example.com'，不匹配 'a.b.example.com'
    """
    hostname = hostname.lower().rstrip('.')
    pattern = pattern.lower().rstrip('.')
    if not hostname or not pattern:
        return False

    if pattern.startswith('*.'):
        host_labels = hostname.split('.')
        pattern_labels = pattern.split('.')
        if len(host_labels) != len(pattern_labels) or not host_labels[0]:
            return False
        return host_labels[1:] == pattern_labels[1:]

    return hostname == pattern


def verify_hostname(certificate: x509.Certificate, server_name: str):
    """
    校验证书是否适用于指定的服务器名称

    IP地址与SAN中的IP条目比较；域名与SAN中的DNS条目比较，
    证书没有DNS条目时退回到主题通用名称。

    Args:
        certificate: 证书
        server_name: 服务器名称

    Raises:
        HostnameMismatchError: 证书不包含该名称
    """
    candidate = server_name.strip('[]')
    try:
        ip = ipaddress.ip_address(candidate)
    except ValueError:
        ip = None

    if ip is not None:
        san = _subject_alt_name(certificate)
        ips = san.get_values_for_type(x509.IPAddress) if san is not None else []
        if ip in ips:
            return
        raise HostnameMismatchError(
            f"error supplied servername not valid for this certificate: not valid for IP address {candidate}: valid for {[str(i) for i in ips]}",
            server_name
        )

    names = dns_names(certificate)
    if not names:
        cn = common_name(certificate)
        names = [cn] if cn else []

    for name in names:
        if _dnsname_matches(candidate, name):
            return

    raise HostnameMismatchError(
        f"error supplied servername not valid for this certificate: valid for {', '.join(names) or 'no names'}, not {server_name}",
        server_name
    )
