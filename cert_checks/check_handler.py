"""
证书检查入口点
"""
import sys
from datetime import datetime
from typing import Callable, Optional

import click

from .errors import CertCheckError
from .interfaces import MetricsRendererInterface
from .models import CheckConfig, CheckResult, CheckStatus
from .services.check_config import CheckConfigManager
from .services.config_validator import ConfigValidator
from .services.error_handler import CheckErrorHandler
from .services.logger import LoggerService
from .services.metrics_calculator import collect_metrics, utc_now
from .services.metrics_renderer import PrometheusMetricsRenderer


class CertCheck:
    """证书检查主类"""

    def __init__(self, config: CheckConfig,
                 now: Optional[Callable[[], datetime]] = None,
                 renderer: Optional[MetricsRendererInterface] = None,
                 logger_service: Optional[LoggerService] = None):
        """
        初始化证书检查

        Args:
            config: 检查配置
            now: 时间提供函数，默认当前UTC时间
            renderer: 指标渲染器，默认Prometheus文本格式
            logger_service: 日志服务
        """
        self.config = config
        self.now = now or utc_now
        self.renderer = renderer or PrometheusMetricsRenderer()
        self.logger_service = logger_service or LoggerService(log_level=config.log_level)
        self.validator = ConfigValidator()
        self.error_handler = CheckErrorHandler()

    def execute(self) -> CheckResult:
        """
        执行证书检查

        Returns:
            CheckResult: 检查结果
        """
        config = self.config

        validation = self.validator.validate(config)
        for warning in validation['warnings']:
            self.logger_service.logger.warning(warning)
        if not validation['is_valid']:
            message = "; ".join(validation['errors'])
            self.logger_service.logger.warning(message)
            return CheckResult(status=CheckStatus.WARNING, output=message)

        self.logger_service.log_configuration_info(config)
        self.logger_service.log_check_start(config)

        try:
            metrics = collect_metrics(
                config.cert, config, now=self.now,
                on_loaded=lambda certificate: self.logger_service.log_certificate_info(
                    config.cert, certificate
                )
            )
            self.logger_service.log_metrics(config.cert, metrics)
            output = self.renderer.render(metrics)

        except CertCheckError as e:
            error_info = self.error_handler.describe(e, config.cert)
            self.logger_service.log_error(config.cert, e)
            self.logger_service.logger.info(f"建议: {error_info['suggested_action']}")
            return CheckResult(
                status=CheckStatus.CRITICAL,
                output=f"cert-checks failed with error: {e}",
                error=e
            )

        except Exception as e:
            self.logger_service.log_error(config.cert, e)
            return CheckResult(
                status=CheckStatus.UNKNOWN,
                output=f"cert-checks encountered an unexpected error: {type(e).__name__}: {e}",
                error=e
            )

        finally:
            self.logger_service.log_check_end()

        return CheckResult(status=CheckStatus.OK, output=output, metrics=metrics)


@click.command(name='cert-checks', help='Inspects certificate data')
@click.option('-c', '--cert', default=None,
              help='URL to certificate. Supports https, tcp, and file schemes')
@click.option('-s', '--servername', default=None,
              help='optional TLS servername extension argument')
@click.option('-i', '--influx', is_flag=True,
              help='optional Influx format output')
@click.option('-t', '--timeout', type=float, default=None,
              help='timeout in seconds for network operations')
def main(cert, servername, influx, timeout):
    """命令行入口"""
    manager = CheckConfigManager()
    try:
        config = manager.from_environment()
        config = manager.apply_overrides(
            config,
            cert=cert,
            servername=servername,
            influx=True if influx else None,
            timeout=timeout
        )
        event = manager.read_event(sys.stdin)
        if event is not None:
            config = manager.apply_event_annotations(config, event)
    except ValueError as e:
        click.echo(f"error loading cert-checks configuration: {e}")
        sys.exit(CheckStatus.UNKNOWN.value)

    result = CertCheck(config).execute()
    click.echo(result.output)
    sys.exit(result.status.value)


if __name__ == '__main__':
    main()
