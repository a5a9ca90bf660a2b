"""
错误处理服务
"""
import socket
import ssl
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..errors import (
    CertCheckError,
    InvalidLocationError,
    UnsupportedSchemeError,
    CertificateNotFoundError,
    InvalidTargetError,
    CertificateIOError,
    PEMDecodeError,
    CertificateParseError,
    DialError,
    HandshakeError,
    HostnameMismatchError,
)


class CheckErrorHandler:
    """证书检查错误处理器"""

    def __init__(self):
        """初始化错误处理器"""
        # 错误类型对应的建议处理方案
        self.suggested_actions = {
            InvalidLocationError: "检查证书位置格式，例如 file:///path/cert.pem 或 tcp://host:port",
            UnsupportedSchemeError: "仅支持 file、https、tcp、tcp4、tcp6 协议",
            CertificateNotFoundError: "检查证书文件路径是否正确",
            InvalidTargetError: "证书位置指向目录，请指定证书文件",
            CertificateIOError: "检查证书文件的读取权限",
            PEMDecodeError: "文件中没有PEM数据块，检查文件内容是否为PEM格式证书",
            CertificateParseError: "证书数据已损坏或不是X.509证书",
            HostnameMismatchError: "证书不包含指定的服务器名称，检查 --servername 参数",
        }

    def describe(self, error: Exception, location: Optional[str] = None) -> Dict[str, Any]:
        """
        生成错误信息

        Args:
            error: 异常对象
            location: 证书位置（异常未携带时使用）

        Returns:
            Dict[str, Any]: 错误信息
        """
        if isinstance(error, CertCheckError):
            stage = error.stage
            location = error.location or location
        else:
            stage = 'unknown'

        return {
            'location': location,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'stage': stage,
            'is_check_error': isinstance(error, CertCheckError),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error)
        }

    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        for error_type, action in self.suggested_actions.items():
            if isinstance(error, error_type):
                return action

        cause = error.__cause__
        if isinstance(error, DialError):
            if isinstance(cause, socket.gaierror):
                return "检查主机名是否正确，DNS服务器是否可用"
            if isinstance(cause, ConnectionRefusedError):
                return "检查目标服务器是否运行，端口是否正确"
            if isinstance(cause, socket.timeout):
                return "检查网络连接，考虑增加超时时间"
            return "检查网络连接和服务器状态"

        if isinstance(error, HandshakeError):
            if isinstance(cause, ssl.SSLError):
                return "TLS握手失败，检查目标端口是否提供TLS服务"
            if isinstance(cause, socket.timeout):
                return "TLS握手超时，检查目标端口是否提供TLS服务或增加超时时间"
            return "TLS握手失败，检查服务器TLS配置"

        return "检查证书位置和检查配置"
