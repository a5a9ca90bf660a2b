"""
证书加载服务
"""
import base64
import binascii
import re
import socket
import ssl
import time
from typing import Optional

from cryptography import x509

from ..errors import (
    CertificateIOError,
    PEMDecodeError,
    CertificateParseError,
    DialError,
    HandshakeError,
)
from ..interfaces import CertificateLoaderInterface


DEFAULT_TIMEOUT = 10.0

PEM_BLOCK_PATTERN = re.compile(
    rb'-----BEGIN ([A-Z0-9 ]+)-----[ \t]*\r?\n(.*?)-----END \1-----',
    re.DOTALL
)

ADDRESS_FAMILIES = {
    'tcp': socket.AF_UNSPEC,
    'tcp4': socket.AF_INET,
    'tcp6': socket.AF_INET6,
}


def _strip_headers(body: bytes) -> bytes:
    """去掉 RFC 1421 头部（"Proc-Type: ..." 等），头部以空行结束"""
    lines = body.splitlines()
    if not lines or b':' not in lines[0]:
        return body
    for i, line in enumerate(lines):
        if not line.strip():
            return b'\n'.join(lines[i + 1:])
    return body


def decode_pem(data: bytes) -> bytes:
    """
    解码第一个有效的PEM数据块，无法解码的块会被跳过

    Args:
        data: 文件内容

    Returns:
        bytes: DER编码的数据

    Raises:
        PEMDecodeError: 未找到有效的PEM数据块
    """
    for match in PEM_BLOCK_PATTERN.finditer(data):
        body = b''.join(_strip_headers(match.group(2)).split())
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            continue

    raise PEMDecodeError("error decoding PEM data from file")


class FileCertificateLoader(CertificateLoaderInterface):
    """从本地PEM文件加载证书"""

    def __init__(self, path: str):
        self.path = path

    def load(self, timeout: Optional[float] = None) -> x509.Certificate:
        """
        读取并解析证书文件（超时参数对文件读取无效）

        Args:
            timeout: 忽略

        Returns:
            x509.Certificate: 叶子证书
        """
        try:
            with open(self.path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise CertificateIOError(f"error reading certificate file: {e}", self.path) from e

        try:
            der = decode_pem(data)
        except PEMDecodeError as e:
            e.location = self.path
            raise

        try:
            return x509.load_der_x509_certificate(der)
        except ValueError as e:
            raise CertificateParseError(f"error parsing x509 certificate {e}", self.path) from e

    def __eq__(self, other):
        return isinstance(other, FileCertificateLoader) and other.path == self.path

    def __repr__(self):
        return f"FileCertificateLoader(path={self.path!r})"


class TLSHandshakeCertificateLoader(CertificateLoaderInterface):
    """通过TLS握手获取服务器证书"""

    def __init__(self, scheme: str, host: str, port: int, server_name: Optional[str] = None):
        """
        初始化TLS握手加载器

        Args:
            scheme: 网络类型（tcp、tcp4、tcp6）
            host: 主机名或IP地址
            port: 端口
            server_name: 可选的SNI服务器名称
        """
        if scheme not in ADDRESS_FAMILIES:
            raise ValueError(f"unsupported network {scheme}")
        self.scheme = scheme
        self.host = host
        self.port = port
        self.server_name = server_name or None

    @property
    def address(self) -> str:
        if ':' in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def location(self) -> str:
        return f"{self.scheme}://{self.address}"

    def load(self, timeout: Optional[float] = None) -> x509.Certificate:
        """
        建立TLS连接并返回对端叶子证书

        证书链和主机名均不做校验，检查的目的是查看证书本身，
        包括已过期或不受信任的证书。

        Args:
            timeout: 整体超时时间（秒），默认10秒

        Returns:
            x509.Certificate: 叶子证书
        """
        deadline = time.monotonic() + (timeout or DEFAULT_TIMEOUT)

        sock = self._connect(deadline)
        try:
            der = self._handshake(sock, deadline)
        finally:
            sock.close()

        try:
            return x509.load_der_x509_certificate(der)
        except ValueError as e:
            raise CertificateParseError(f"error parsing x509 certificate {e}", self.location) from e

    def _connect(self, deadline: float) -> socket.socket:
        """在截止时间内建立TCP连接"""
        try:
            addresses = socket.getaddrinfo(
                self.host, self.port, ADDRESS_FAMILIES[self.scheme], socket.SOCK_STREAM
            )
        except (socket.gaierror, UnicodeError) as e:
            raise DialError(f"error dialing TLS connection {e}", self.location) from e

        last_error = None
        for family, sock_type, proto, _, sockaddr in addresses:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                last_error = socket.timeout("timed out")
                break

            sock = socket.socket(family, sock_type, proto)
            try:
                sock.settimeout(remaining)
                sock.connect(sockaddr)
                return sock
            except OSError as e:
                sock.close()
                last_error = e

        if last_error is None:
            last_error = OSError(f"no addresses found for {self.host}")
        raise DialError(f"error dialing TLS connection {last_error}", self.location) from last_error

    def _handshake(self, sock: socket.socket, deadline: float) -> bytes:
        """完成TLS握手并返回DER编码的叶子证书"""
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise HandshakeError("error completing TLS handshake: timed out", self.location)

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

        sock.settimeout(remaining)
        try:
            with context.wrap_socket(sock, server_hostname=self.server_name or self.host) as ssock:
                der = ssock.getpeercert(binary_form=True)
        except (ssl.SSLError, OSError) as e:
            raise HandshakeError(f"error completing TLS handshake {e}", self.location) from e

        if not der:
            raise HandshakeError("error completing TLS handshake: no peer certificate", self.location)
        return der

    def __eq__(self, other):
        return (
            isinstance(other, TLSHandshakeCertificateLoader)
            and (other.scheme, other.host, other.port, other.server_name)
            == (self.scheme, self.host, self.port, self.server_name)
        )

    def __repr__(self):
        return (
            f"TLSHandshakeCertificateLoader(scheme={self.scheme!r}, host={self.host!r}, "
            f"port={self.port!r}, server_name={self.server_name!r})"
        )
