"""
测试公共夹具
"""
import ipaddress
import socket
import ssl
import threading
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


ISSUED_AT = datetime.fromtimestamp(1 << 30, tz=timezone.utc)
DURATION = timedelta(hours=72)
LOCAL_TEST_ISSUED_AT = datetime(2010, 1, 1, tzinfo=timezone.utc)


def make_certificate(dns_names=("imposter.sensu.io",), common_name=None,
                     not_before=ISSUED_AT, duration=DURATION, ip_addresses=()):
    """
    生成自签名测试证书

    Returns:
        tuple: (证书PEM, 私钥PEM)
    """
    key = ec.generate_private_key(ec.SECP256R1())

    attributes = [x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Acme Co")]
    if common_name:
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))
    name = x509.Name(attributes)

    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + duration)
    )

    alt_names = [x509.DNSName(n) for n in dns_names]
    alt_names += [x509.IPAddress(ipaddress.ip_address(ip)) for ip in ip_addresses]
    if alt_names:
        builder = builder.add_extension(x509.SubjectAlternativeName(alt_names), critical=False)

    certificate = builder.sign(key, hashes.SHA256())
    cert_pem = certificate.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    )
    return cert_pem, key_pem


def write_key_pair(directory, name, cert_pem, key_pem):
    cert_path = directory / f"{name}.pem"
    key_path = directory / f"{name}.key"
    cert_path.write_bytes(cert_pem)
    key_path.write_bytes(key_pem)
    return str(cert_path), str(key_path)


class TLSTestServer:
    """后台线程中的TLS测试服务器，支持按SNI选择证书"""

    def __init__(self, certfile, keyfile, sni_certificates=None):
        self.context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self.context.load_cert_chain(certfile, keyfile)

        self.sni_contexts = {}
        for server_name, (sni_certfile, sni_keyfile) in (sni_certificates or {}).items():
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
            context.load_cert_chain(sni_certfile, sni_keyfile)
            self.sni_contexts[server_name] = context
        if self.sni_contexts:
            self.context.sni_callback = self._select_context

        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.listen(5)
        self.sock.settimeout(0.2)
        self.stopped = threading.Event()
        self.thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def address(self):
        host, port = self.sock.getsockname()
        return f"{host}:{port}"

    def _select_context(self, ssl_socket, server_name, context):
        if server_name in self.sni_contexts:
            ssl_socket.context = self.sni_contexts[server_name]

    def _serve(self):
        while not self.stopped.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            conn.settimeout(2)
            try:
                with self.context.wrap_socket(conn, server_side=True):
                    pass
            except (ssl.SSLError, OSError):
                conn.close()

    def start(self):
        self.thread.start()
        return self

    def stop(self):
        self.stopped.set()
        self.thread.join(timeout=2)
        self.sock.close()


class PlainTextServer:
    """非TLS的TCP测试服务器，收到任何数据后返回HTTP错误响应"""

    def __init__(self):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.listen(5)
        self.sock.settimeout(0.2)
        self.stopped = threading.Event()
        self.thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def address(self):
        host, port = self.sock.getsockname()
        return f"{host}:{port}"

    def _serve(self):
        while not self.stopped.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with conn:
                conn.settimeout(2)
                try:
                    conn.recv(1024)
                    conn.sendall(b"HTTP/1.1 400 Bad Request\r\nContent-Length: 0\r\n\r\n")
                except OSError:
                    pass

    def start(self):
        self.thread.start()
        return self

    def stop(self):
        self.stopped.set()
        self.thread.join(timeout=2)
        self.sock.close()


@pytest.fixture
def cert_file(tmp_path):
    """imposter.sensu.io 的PEM证书文件"""
    cert_pem, _ = make_certificate()
    path = tmp_path / "testcert.pem"
    path.write_bytes(cert_pem)
    return str(path)


@pytest.fixture
def corrupt_cert_file(tmp_path):
    """后半部分被翻转的PEM证书文件"""
    cert_pem, _ = make_certificate()
    corrupted = bytearray(cert_pem)
    for i in range(len(corrupted) // 2, len(corrupted), 8):
        corrupted[i] ^= 0xFF
    path = tmp_path / "bogustestcert.pem"
    path.write_bytes(bytes(corrupted))
    return str(path)


@pytest.fixture
def tls_server(tmp_path):
    """TLS测试服务器：默认证书 imposter.sensu.io，SNI local.test 返回另一张证书"""
    cert_pem, key_pem = make_certificate()
    certfile, keyfile = write_key_pair(tmp_path, "imposter", cert_pem, key_pem)

    local_pem, local_key = make_certificate(
        dns_names=("local.test",), not_before=LOCAL_TEST_ISSUED_AT
    )
    local_certfile, local_keyfile = write_key_pair(tmp_path, "local", local_pem, local_key)

    server = TLSTestServer(
        certfile, keyfile, sni_certificates={"local.test": (local_certfile, local_keyfile)}
    ).start()
    yield server
    server.stop()


@pytest.fixture
def plaintext_server():
    server = PlainTextServer().start()
    yield server
    server.stop()


@pytest.fixture
def closed_port():
    """一个当前没有监听的本地端口"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port

