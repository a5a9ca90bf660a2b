"""
证书位置解析服务
"""
import os
from typing import Optional
from urllib.parse import urlsplit

from ..errors import (
    InvalidLocationError,
    UnsupportedSchemeError,
    CertificateNotFoundError,
    InvalidTargetError,
)
from ..interfaces import CertificateLoaderInterface
from .certificate_loader import FileCertificateLoader, TLSHandshakeCertificateLoader


FILE_PREFIX = 'file://'
HTTPS_DEFAULT_PORT = 443
NETWORK_SCHEMES = ('tcp', 'tcp4', 'tcp6')
SUPPORTED_SCHEMES = ('', 'file', 'https') + NETWORK_SCHEMES


def parse(location: str, server_name: Optional[str] = None) -> CertificateLoaderInterface:
    """
    根据URL协议选择证书加载器

    支持的格式：
      - /path/to/cert.pem 或相对路径
      - file:///path/to/cert.pem
      - https://host[:port]（默认端口443）
      - tcp://host:port、tcp4://host:port、tcp6://[host]:port

    Args:
        location: 证书位置
        server_name: 可选的TLS SNI服务器名称

    Returns:
        CertificateLoaderInterface: 文件加载器或TLS握手加载器

    Raises:
        InvalidLocationError: 位置无法解析
        UnsupportedSchemeError: 协议不受支持
        CertificateNotFoundError: 文件不存在
        InvalidTargetError: 路径是目录
    """
    if location.startswith(FILE_PREFIX):
        return _file_loader(location[len(FILE_PREFIX):])

    try:
        url = urlsplit(location)
    except ValueError as e:
        raise InvalidLocationError(
            f"error parsing certificate location as network url: {e}", location
        ) from e

    scheme = url.scheme.lower()
    if scheme == '':
        if ':' in location.split('/', 1)[0] and not os.path.exists(location):
            raise InvalidLocationError(
                f"error parsing certificate location as network url: first path segment in URL "
                f"cannot contain colon: {location} (use tcp://host:port or https://host:port)",
                location
            )
        return _file_loader(location)
    if scheme == 'file':
        return _file_loader(url.path)

    if scheme == 'https':
        scheme = 'tcp'
        default_port = HTTPS_DEFAULT_PORT
    elif scheme in NETWORK_SCHEMES:
        default_port = None
    else:
        raise UnsupportedSchemeError(url.scheme, location)

    try:
        host = url.hostname
        port = url.port
    except ValueError as e:
        raise InvalidLocationError(
            f"error parsing certificate location as network url: {e}", location
        ) from e

    if not host:
        raise InvalidLocationError(f"missing host in certificate location {location}", location)
    if port is None:
        port = default_port
    if port is None:
        raise InvalidLocationError(f"missing port in certificate location {location}", location)

    return TLSHandshakeCertificateLoader(scheme, host, port, server_name)


def _file_loader(path: str) -> FileCertificateLoader:
    """校验路径后返回文件加载器"""
    if not os.path.exists(path):
        raise CertificateNotFoundError(f"file not found: {path}", path)
    if os.path.isdir(path):
        raise InvalidTargetError(f"cannot use directory: {path}", path)
    return FileCertificateLoader(path)
