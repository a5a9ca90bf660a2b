"""
证书指标计算服务
"""
from datetime import datetime, timezone
from typing import Callable, Optional

from cryptography import x509

from ..errors import HostnameMismatchError
from ..models import Metrics, CheckConfig
from .hostname_verifier import common_name, verify_hostname
from .location_parser import parse


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def influx_safe(value: str) -> str:
    """InfluxDB 不支持指标中的 * 和 ."""
    return value.replace('*', 'STAR', 1).replace('.', '_')


def _whole_seconds(start: datetime, end: datetime) -> int:
    """end - start 的整秒数（向零截断）"""
    return int((end - start).total_seconds())


class MetricsCalculator:
    """证书指标计算器"""

    def __init__(self, influx: bool = False):
        """
        初始化指标计算器

        Args:
            influx: 是否对subject标签做InfluxDB兼容处理
        """
        self.influx = influx

    def collect(self, certificate: x509.Certificate, now: datetime,
                server_name: Optional[str] = None) -> Metrics:
        """
        计算证书指标

        Args:
            certificate: 证书
            now: 计算时间点
            server_name: 可选的服务器名称，设置时校验证书主机名

        Returns:
            Metrics: 证书指标

        Raises:
            HostnameMismatchError: 证书不适用于server_name
        """
        subject = common_name(certificate)
        if self.influx:
            subject = influx_safe(subject)
        tags = [('subject', subject)]

        if server_name:
            verify_hostname(certificate, server_name)
            tags.append(('servername', server_name))

        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        return Metrics(
            evaluated_at=now,
            seconds_since_issued=_whole_seconds(certificate.not_valid_before_utc, now),
            seconds_until_expires=_whole_seconds(now, certificate.not_valid_after_utc),
            tags=tags
        )


def collect_metrics(location: str, config: CheckConfig,
                    now: Optional[Callable[[], datetime]] = None,
                    on_loaded: Optional[Callable[[x509.Certificate], None]] = None) -> Metrics:
    """
    加载指定位置的证书并计算指标

    Args:
        location: 证书位置
        config: 检查配置（server_name、influx、timeout）
        now: 时间提供函数，默认当前UTC时间
        on_loaded: 证书加载后、计算指标前调用

    Returns:
        Metrics: 证书指标
    """
    now = now or utc_now
    loader = parse(location, config.server_name)
    certificate = loader.load(config.timeout)
    if on_loaded is not None:
        on_loaded(certificate)

    try:
        return MetricsCalculator(influx=config.influx).collect(
            certificate, now(), config.server_name
        )
    except HostnameMismatchError as e:
        e.location = location
        raise
