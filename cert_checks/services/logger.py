"""
日志服务
"""
import os
import logging
import sys
import traceback
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from cryptography import x509

from ..interfaces import LoggerServiceInterface
from ..models import CheckConfig, Metrics
from .hostname_verifier import common_name, dns_names


class LoggerService(LoggerServiceInterface):
    """日志服务实现（输出到stderr，stdout只用于指标）"""

    def __init__(self, logger_name: str = "cert_checks", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'WARNING')

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 执行统计
        self.execution_stats = {
            'start_time': None,
            'end_time': None,
            'location': None,
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.WARNING)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_check_start(self, config: CheckConfig):
        """
        记录检查开始

        Args:
            config: 检查配置
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['location'] = config.cert

        self.logger.info(f"开始证书检查: {config.cert}")
        if config.server_name:
            self.logger.info(f"服务器名称: {config.server_name}")

    def log_certificate_info(self, location: str, certificate: x509.Certificate):
        """
        记录证书信息

        Args:
            location: 证书位置
            certificate: 证书
        """
        self.logger.info(
            f"证书已加载 - 位置: {location}, "
            f"主题: {common_name(certificate) or '-'}, "
            f"DNS名称: {', '.join(dns_names(certificate)) or '-'}, "
            f"生效时间: {certificate.not_valid_before_utc.isoformat()}, "
            f"过期时间: {certificate.not_valid_after_utc.isoformat()}"
        )

    def log_metrics(self, location: str, metrics: Metrics):
        """
        记录计算出的指标

        Args:
            location: 证书位置
            metrics: 证书指标
        """
        if metrics.is_expired:
            self.logger.warning(
                f"证书已过期 - 位置: {location}, "
                f"已过期: {abs(metrics.seconds_until_expires)} 秒"
            )
        else:
            self.logger.info(
                f"证书有效 - 位置: {location}, "
                f"剩余天数: {metrics.days_until_expires:.2f} 天"
            )

    def log_error(self, location: str, error: Exception):
        """
        记录错误信息

        Args:
            location: 证书位置
            error: 异常对象
        """
        error_info = {
            'location': location,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        self.execution_stats['errors'].append(error_info)

        self.logger.error(
            f"证书 {location} 检查时发生错误: {type(error).__name__}: {str(error)}"
        )

        # 记录详细的堆栈跟踪（调试级别）
        self.logger.debug(f"证书 {location} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_check_end(self):
        """记录检查结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        errors = self.execution_stats['errors']
        if errors:
            self.logger.info(f"证书检查完成，错误数量: {len(errors)}")
        else:
            self.logger.info("证书检查完成")
        self.logger.info(f"总执行时间: {self.get_duration():.3f} 秒")

    def get_duration(self) -> float:
        """检查耗时（秒）"""
        start = self.execution_stats['start_time']
        end = self.execution_stats['end_time']
        if not start or not end:
            return 0.0
        return (end - start).total_seconds()

    def log_configuration_info(self, config: CheckConfig):
        """
        记录配置信息

        Args:
            config: 检查配置
        """
        self.logger.debug("检查配置信息:")
        for key, value in self._sanitize_config(asdict(config)).items():
            self.logger.debug(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据（证书URL中的用户名和密码）

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            if isinstance(value, str) and '://' in value and '@' in value.split('://', 1)[1]:
                scheme, rest = value.split('://', 1)
                value = f"{scheme}://***@{rest.rsplit('@', 1)[1]}"
            safe_config[key] = value
        return safe_config
