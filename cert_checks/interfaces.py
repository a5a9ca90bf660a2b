"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import Optional

from cryptography import x509

from .models import Metrics, CheckConfig


class CertificateLoaderInterface(ABC):
    """证书加载器接口"""

    @abstractmethod
    def load(self, timeout: Optional[float] = None) -> x509.Certificate:
        """加载叶子证书"""
        pass


class MetricsRendererInterface(ABC):
    """指标渲染器接口"""

    @abstractmethod
    def render(self, metrics: Metrics) -> str:
        """渲染证书指标"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, config: CheckConfig):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_certificate_info(self, location: str, certificate: x509.Certificate):
        """记录证书信息"""
        pass

    @abstractmethod
    def log_error(self, location: str, error: Exception):
        """记录错误信息"""
        pass
