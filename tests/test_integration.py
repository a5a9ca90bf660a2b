"""
集成测试
"""
import pytest
import logging
from datetime import timedelta
from unittest.mock import Mock

from cert_checks.check_handler import CertCheck
from cert_checks.errors import (
    DialError,
    HandshakeError,
    HostnameMismatchError,
    UnsupportedSchemeError,
)
from cert_checks.models import CheckConfig, CheckStatus
from cert_checks.services.logger import LoggerService
from cert_checks.services.metrics_calculator import collect_metrics

from conftest import ISSUED_AT, DURATION, LOCAL_TEST_ISSUED_AT


DURATION_SECONDS = int(DURATION.total_seconds())


class TestCollectMetricsOverTLS:
    """通过TLS握手获取证书的端到端测试"""

    @pytest.mark.parametrize("scheme", ["https", "tcp", "tcp4"])
    def test_metrics(self, tls_server, scheme):
        """测试各网络协议"""
        location = f"{scheme}://{tls_server.address}"

        metrics = collect_metrics(location, CheckConfig(timeout=5), now=lambda: ISSUED_AT)

        assert metrics.seconds_since_issued == 0
        assert metrics.seconds_until_expires == DURATION_SECONDS

    def test_expired(self, tls_server):
        """测试过期证书"""
        now = ISSUED_AT + DURATION + timedelta(hours=1)

        metrics = collect_metrics(f"tcp://{tls_server.address}", CheckConfig(), now=lambda: now)

        assert metrics.seconds_until_expires == -3600
        assert metrics.seconds_since_issued == DURATION_SECONDS + 3600

    def test_server_name_selects_certificate(self, tls_server):
        """测试servername通过SNI选择证书"""
        config = CheckConfig(server_name="local.test")
        now = LOCAL_TEST_ISSUED_AT + timedelta(minutes=2)

        metrics = collect_metrics(f"https://{tls_server.address}", config, now=lambda: now)

        assert metrics.seconds_since_issued == 120
        assert metrics.tag("servername") == "local.test"

    def test_server_name_mismatch(self, tls_server):
        """测试证书不包含servername"""
        location = f"tcp://{tls_server.address}"
        config = CheckConfig(server_name="bazz.sensu.io")

        with pytest.raises(HostnameMismatchError) as exc_info:
            collect_metrics(location, config, now=lambda: ISSUED_AT)

        assert exc_info.value.location == location

    def test_plaintext_server(self, plaintext_server):
        """测试非TLS服务"""
        with pytest.raises(HandshakeError):
            collect_metrics(f"tcp://{plaintext_server.address}", CheckConfig(timeout=5))

    def test_connection_refused(self, closed_port):
        with pytest.raises(DialError):
            collect_metrics(f"tcp://127.0.0.1:{closed_port}", CheckConfig(timeout=5))

    @pytest.mark.parametrize("scheme", ["http", "udp"])
    def test_unsupported_scheme(self, tls_server, scheme):
        with pytest.raises(UnsupportedSchemeError):
            collect_metrics(f"{scheme}://{tls_server.address}", CheckConfig())


class TestCertCheckIntegration:
    """证书检查端到端测试"""

    def setup_method(self):
        """测试前准备"""
        self.logger_service = LoggerService(logger_name="integration_test", log_level="DEBUG")
        self.logger_service.logger.handlers.clear()
        self.logger_service.logger.addHandler(logging.NullHandler())

    def run(self, config, now=ISSUED_AT):
        return CertCheck(config, now=lambda: now, logger_service=self.logger_service).execute()

    def test_ok(self, tls_server):
        """测试健康证书"""
        config = CheckConfig(cert=f"https://{tls_server.address}", server_name="imposter.sensu.io")

        result = self.run(config)

        assert result.status == CheckStatus.OK
        lines = result.output.split("\n")
        assert len(lines) == 12
        assert lines[2].startswith(
            'cert_days_left{subject="", servername="imposter.sensu.io"} 3.000000 '
        )
        assert lines[5].startswith(
            f'cert_seconds_left{{subject="", servername="imposter.sensu.io"}} {DURATION_SECONDS} '
        )
        assert lines[11].endswith(f" {int(ISSUED_AT.timestamp()) * 1000}")
        assert self.logger_service.get_duration() >= 0

    def test_expired_is_still_ok(self, tls_server):
        """测试过期证书仍然输出指标"""
        config = CheckConfig(cert=f"tcp://{tls_server.address}")

        result = self.run(config, now=ISSUED_AT + DURATION + timedelta(days=1))

        assert result.status == CheckStatus.OK
        assert 'cert_seconds_left{subject=""} -86400 ' in result.output
        assert result.metrics.is_expired

    def test_critical(self, plaintext_server):
        """测试握手失败"""
        result = self.run(CheckConfig(cert=f"tcp://{plaintext_server.address}", timeout=5))

        assert result.status == CheckStatus.CRITICAL
        assert isinstance(result.error, HandshakeError)
        assert result.output.startswith("cert-checks failed with error: ")
        assert self.logger_service.execution_stats['errors'][0]['error_type'] == 'HandshakeError'

    def test_mismatch_critical(self, tls_server):
        config = CheckConfig(cert=f"tcp://{tls_server.address}", server_name="bazz.sensu.io")

        result = self.run(config)

        assert result.status == CheckStatus.CRITICAL
        assert isinstance(result.error, HostnameMismatchError)
