"""
指标渲染服务
"""
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from ..interfaces import MetricsRendererInterface
from ..models import Metrics


# (名称, 类型, 说明, 取值函数, 格式)
METRIC_FAMILIES = [
    (
        'cert_days_left', 'gauge',
        'number of days until certificate expires. Expired certificates produce negative numbers.',
        lambda m: m.days_until_expires, '%f'
    ),
    (
        'cert_seconds_left', 'gauge',
        'number of seconds until certificate expires. Expired certificates produce negative numbers.',
        lambda m: m.seconds_until_expires, '%d'
    ),
    (
        'cert_issued_days', 'counter',
        'total number of days since certificate was issued.',
        lambda m: m.days_since_issued, '%f'
    ),
    (
        'cert_issued_seconds', 'counter',
        'total number of seconds since the certificate was issued.',
        lambda m: m.seconds_since_issued, '%d'
    ),
]


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def epoch_millis(instant: datetime) -> int:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return (instant - EPOCH) // timedelta(milliseconds=1)


def format_tags(tags: List[Tuple[str, str]]) -> str:
    """
    格式化标签，无标签时返回空字符串

    Args:
        tags: 有序的 (键, 值) 列表

    Returns:
        str: 形如 {key="value", key2="value2"} 的字符串
    """
    if not tags:
        return ""
    return "{" + ", ".join(f'{key}="{value}"' for key, value in tags) + "}"


class PrometheusMetricsRenderer(MetricsRendererInterface):
    """Prometheus文本格式渲染器"""

    def __init__(self, include_metadata: bool = True):
        """
        初始化渲染器

        Args:
            include_metadata: 是否输出 # HELP / # TYPE 行
        """
        self.include_metadata = include_metadata

    def render(self, metrics: Metrics) -> str:
        """
        渲染四组证书指标，每行带毫秒时间戳

        Args:
            metrics: 证书指标

        Returns:
            str: 换行分隔的指标文本
        """
        epoch_ms = epoch_millis(metrics.evaluated_at)
        tags = format_tags(metrics.tags)

        lines = []
        for name, metric_type, help_text, value_of, value_format in METRIC_FAMILIES:
            if self.include_metadata:
                lines.append(f"# HELP {name} {help_text}")
                lines.append(f"# TYPE {name} {metric_type}")
            value = value_format % value_of(metrics)
            lines.append(f"{name}{tags} {value} {epoch_ms}")

        return "\n".join(lines)
