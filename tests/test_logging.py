"""
Tests for logging setup and the timing/error helpers.
"""

import logging

from trendcast.utils.logging import (
    ErrorTracker,
    PerformanceLogger,
    TrendcastFormatter,
    setup_logging,
)


class TestLoggingUtilities:
    """Test logging helpers."""

    def setup_method(self):
        self.logger = logging.getLogger('trendcast.tests')

    def teardown_method(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            if isinstance(handler.formatter, TrendcastFormatter):
                handler.close()
                root.removeHandler(handler)

    def test_formatter_symbol_prefix(self):
        formatter = TrendcastFormatter(fmt='%(message)s')
        record = logging.LogRecord('trendcast', logging.INFO, __file__, 1, 'trained', None, None)
        record.symbol = 'BTC'

        assert formatter.format(record) == '[BTC] trained'

    def test_setup_and_component_level(self, tmp_path):
        manager = setup_logging({'level': 'WARNING', 'file': str(tmp_path / 'logs' / 'trendcast.log')})
        manager.set_level('DEBUG', component='modeling')

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger('trendcast.modeling').level == logging.DEBUG
        assert (tmp_path / 'logs').is_dir()

    def test_performance_logger(self):
        perf_logger = PerformanceLogger(self.logger)

        assert perf_logger.end_timer('never started') == 0.0

        perf_logger.start_timer('training')
        assert perf_logger.end_timer('training') >= 0.0

        perf_logger.start_timer('failing')
        perf_logger.cancel_timer('failing')
        assert perf_logger.start_times == {}
        assert perf_logger.end_timer('failing') == 0.0

    def test_error_tracker(self):
        tracker = ErrorTracker(self.logger)
        tracker.log_error(ValueError('bad'), {'symbol': 'BTC'}, component='compare')
        tracker.log_error(ValueError('worse'), component='compare')

        assert tracker.get_error_summary() == {'compare.ValueError': 2}

        tracker.clear_error_counts()
        assert tracker.get_error_summary() == {}
