"""
证书检查异常定义
"""
from typing import Optional


class CertCheckError(Exception):
    """证书检查错误基类"""

    stage = "check"

    def __init__(self, message: str, location: Optional[str] = None):
        """
        初始化证书检查错误

        Args:
            message: 错误信息
            location: 出错的证书位置
        """
        super().__init__(message)
        self.location = location


class InvalidLocationError(CertCheckError):
    """证书位置无法解析"""

    stage = "parse"


class UnsupportedSchemeError(CertCheckError):
    """不支持的证书位置协议"""

    stage = "parse"

    def __init__(self, scheme: str, location: str):
        super().__init__(
            f"unsupported certificate location scheme \"{scheme}\" for {location}",
            location
        )
        self.scheme = scheme


class CertificateNotFoundError(CertCheckError):
    """证书文件不存在"""

    stage = "parse"


class InvalidTargetError(CertCheckError):
    """证书位置指向目录而不是文件"""

    stage = "parse"


class CertificateIOError(CertCheckError):
    """读取证书文件失败"""

    stage = "load"


class PEMDecodeError(CertCheckError):
    """未找到PEM数据块"""

    stage = "decode"


class CertificateParseError(CertCheckError):
    """X.509证书解析失败"""

    stage = "decode"


class DialError(CertCheckError):
    """无法建立TCP连接"""

    stage = "dial"


class HandshakeError(CertCheckError):
    """TLS握手失败"""

    stage = "handshake"


class HostnameMismatchError(CertCheckError):
    """证书不包含指定的服务器名称"""

    stage = "verify"

    def __init__(self, message: str, server_name: str, location: Optional[str] = None):
        super().__init__(message, location)
        self.server_name = server_name
