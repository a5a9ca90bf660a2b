"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Optional, List, Tuple


SECONDS_PER_DAY = 60 * 60 * 24


@dataclass
class Metrics:
    """证书指标"""
    evaluated_at: datetime
    seconds_since_issued: int
    seconds_until_expires: int
    tags: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def days_until_expires(self) -> float:
        """剩余天数（已过期为负数）"""
        return self.seconds_until_expires / float(SECONDS_PER_DAY)

    @property
    def days_since_issued(self) -> float:
        """已签发天数"""
        return self.seconds_since_issued / float(SECONDS_PER_DAY)

    @property
    def is_expired(self) -> bool:
        return self.seconds_until_expires < 0

    def tag(self, key: str) -> Optional[str]:
        """按名称查找标签值"""
        for tag_key, value in self.tags:
            if tag_key == key:
                return value
        return None


class CheckStatus(IntEnum):
    """检查状态（对应进程退出码）"""
    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass
class CheckConfig:
    """检查配置"""
    cert: str = ""
    server_name: str = ""
    influx: bool = False
    timeout: Optional[float] = None
    log_level: str = "WARNING"


@dataclass
class CheckResult:
    """检查结果"""
    status: CheckStatus
    output: str
    metrics: Optional[Metrics] = None
    error: Optional[Exception] = None

    @property
    def is_ok(self) -> bool:
        return self.status == CheckStatus.OK
