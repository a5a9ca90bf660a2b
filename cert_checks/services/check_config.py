"""
检查配置管理服务
"""
import json
import os
import stat
from dataclasses import replace
from typing import Any, Dict, IO, Optional
import logging

from ..models import CheckConfig


KEYSPACE = "sensu.io/plugins/cert-checks/config"

# 配置项路径 -> (环境变量, CheckConfig字段)
CONFIG_OPTIONS = {
    'cert': ('CHECK_CERT', 'cert'),
    'servername': ('CHECK_SERVER_NAME', 'server_name'),
    'influx': ('INFLUX_FORMAT', 'influx'),
    'timeout': ('CHECK_TIMEOUT', 'timeout'),
}

TRUE_VALUES = {'1', 'true', 't', 'yes', 'y', 'on'}
FALSE_VALUES = {'0', 'false', 'f', 'no', 'n', 'off', ''}


def parse_bool(value: Any) -> bool:
    """
    解析布尔配置值

    Raises:
        ValueError: 无法识别的取值
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value: {value}")


def parse_timeout(value: Any) -> Optional[float]:
    """解析超时时间（秒），0或空值表示不设置"""
    if value is None or str(value).strip() == '':
        return None
    timeout = float(value)
    if timeout < 0:
        raise ValueError(f"timeout must be non-negative: {value}")
    return timeout or None


def _json_object(parent: Dict[str, Any], key: str, path: str = "event") -> Dict[str, Any]:
    """取出事件中的子对象，缺失或为null时返回空字典"""
    value = (parent or {}).get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{path}.{key} must be a JSON object")
    return value


class CheckConfigManager:
    """检查配置管理器：环境变量 < 命令行参数 < Sensu事件注解"""

    def __init__(self, keyspace: str = KEYSPACE):
        self.keyspace = keyspace
        self.logger = logging.getLogger(__name__)

    def from_environment(self) -> CheckConfig:
        """
        从环境变量读取配置

        Returns:
            CheckConfig: 检查配置
        """
        config = CheckConfig(log_level=os.getenv('LOG_LEVEL', 'WARNING'))
        for path, (env_var, _) in CONFIG_OPTIONS.items():
            value = os.getenv(env_var)
            if value is not None:
                config = self._apply(config, path, value, source=env_var)
        return config

    def apply_overrides(self, config: CheckConfig, **values) -> CheckConfig:
        """
        应用命令行参数（None表示未指定）

        Args:
            config: 原始配置
            **values: 配置项路径到值的映射

        Returns:
            CheckConfig: 新配置
        """
        for path, value in values.items():
            if value is not None:
                config = self._apply(config, path, value, source=f"--{path}")
        return config

    def apply_event_annotations(self, config: CheckConfig, event: Dict[str, Any]) -> CheckConfig:
        """
        应用Sensu事件中的配置注解，check注解优先于entity注解

        Args:
            config: 原始配置
            event: Sensu事件

        Returns:
            CheckConfig: 新配置

        Raises:
            ValueError: 事件结构中的某一级不是JSON对象
        """
        for section in ('entity', 'check'):
            annotations = _json_object(event, section)
            prefix = f"event.{section}"
            for level in ('metadata', 'annotations'):
                annotations = _json_object(annotations, level, prefix)
                prefix = f"{prefix}.{level}"
            for path in CONFIG_OPTIONS:
                key = f"{self.keyspace}/{path}"
                if key in annotations:
                    config = self._apply(config, path, annotations[key], source=f"{section} annotation {key}")
        return config

    def read_event(self, stream: IO[str]) -> Optional[Dict[str, Any]]:
        """
        从标准输入读取Sensu事件（仅当标准输入为管道时）

        Args:
            stream: 输入流

        Returns:
            Optional[Dict[str, Any]]: 事件，没有时返回None

        Raises:
            ValueError: 事件不是合法的JSON对象
        """
        if not self.stdin_is_pipe(stream):
            return None

        data = stream.read()
        if not data.strip():
            return None

        event = json.loads(data)
        if not isinstance(event, dict):
            raise ValueError("event must be a JSON object")
        return event

    @staticmethod
    def stdin_is_pipe(stream: IO[str]) -> bool:
        """判断输入流是否连接到命名管道"""
        try:
            return stat.S_ISFIFO(os.fstat(stream.fileno()).st_mode)
        except (AttributeError, OSError, ValueError):
            return False

    def _apply(self, config: CheckConfig, path: str, value: Any, source: str) -> CheckConfig:
        _, field_name = CONFIG_OPTIONS[path]
        if path == 'influx':
            value = parse_bool(value)
        elif path == 'timeout':
            value = parse_timeout(value)
        else:
            value = str(value)

        self.logger.debug(f"配置项 {path} 来自 {source}")
        return replace(config, **{field_name: value})
