"""
配置验证服务
"""
from typing import Dict, Any
from urllib.parse import urlsplit

from ..models import CheckConfig
from .location_parser import FILE_PREFIX, SUPPORTED_SCHEMES


CERT_REQUIRED_MESSAGE = (
    "--cert is required. must be URL to certificate. "
    "ex: file:///var/run/app/site.crt, https://dev1.sensu.io:8443, tcp://127.0.0.1:443"
)

LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.log_levels = LOG_LEVELS

    def validate(self, config: CheckConfig) -> Dict[str, Any]:
        """
        验证检查配置（不做任何I/O）

        Args:
            config: 检查配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'scheme': None
        }

        if not config.cert:
            result['is_valid'] = False
            result['errors'].append(CERT_REQUIRED_MESSAGE)
        else:
            scheme = self._scheme_of(config.cert)
            result['scheme'] = scheme
            if scheme is not None and scheme not in SUPPORTED_SCHEMES:
                result['warnings'].append(f"不支持的证书位置协议: {scheme}")
            if scheme in ('', 'file') and config.server_name:
                result['warnings'].append("从文件加载证书时 servername 只用于主机名校验")

        if config.timeout is not None and config.timeout < 0:
            result['is_valid'] = False
            result['errors'].append(f"超时时间不能为负数: {config.timeout}")

        if config.log_level.upper() not in self.log_levels:
            result['warnings'].append(f"未知的日志级别: {config.log_level}")

        return result

    def _scheme_of(self, cert: str):
        """返回证书位置的协议，无法解析时返回None"""
        if cert.startswith(FILE_PREFIX):
            return 'file'
        try:
            return urlsplit(cert).scheme.lower()
        except ValueError:
            return None
