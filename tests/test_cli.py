"""
Smoke tests for the command-line interface.
"""

import logging

import numpy as np
from typer.testing import CliRunner

from trendcast.cli import app
from trendcast.utils.logging import TrendcastFormatter


class TestCLI:
    """Run each command against candle CSV files."""

    def setup_method(self):
        self.runner = CliRunner()

    def teardown_method(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            if isinstance(handler.formatter, TrendcastFormatter):
                handler.close()
                root.removeHandler(handler)

    def write_csv(self, path, candle_factory, n=120, seed=1):
        rng = np.random.RandomState(seed)
        closes = 100 * np.cumprod(1 + rng.normal(0, 0.01, n))
        candle_factory(closes).to_csv(path, index=False)
        return str(path)

    def test_indicators(self, tmp_path, candle_factory):
        csv_path = self.write_csv(tmp_path / "btc.csv", candle_factory)

        result = self.runner.invoke(app, ["indicators", csv_path])

        assert result.exit_code == 0
        assert "rsi" in result.output
        assert "macd.signal" in result.output

    def test_trend(self, tmp_path, candle_factory):
        csv_path = self.write_csv(tmp_path / "btc.csv", candle_factory)

        result = self.runner.invoke(app, ["trend", csv_path])

        assert result.exit_code == 0
        assert "Trend Analysis" in result.output

    def test_signals(self, tmp_path, candle_factory):
        csv_path = self.write_csv(tmp_path / "btc.csv", candle_factory)

        result = self.runner.invoke(app, ["signals", csv_path])

        assert result.exit_code == 0
        assert "Trend:" in result.output

    def test_predict(self, tmp_path, candle_factory):
        csv_path = self.write_csv(tmp_path / "btc.csv", candle_factory)

        result = self.runner.invoke(app, ["predict", csv_path, "--symbol", "btc"])

        assert result.exit_code == 0
        assert "BTC" in result.output
        assert "Direction" in result.output

    def test_predict_short_history_fails(self, tmp_path, candle_factory):
        csv_path = self.write_csv(tmp_path / "btc.csv", candle_factory, n=60)

        result = self.runner.invoke(app, ["predict", csv_path, "--symbol", "BTC"])

        assert result.exit_code == 1

    def test_compare(self, tmp_path, candle_factory):
        first = self.write_csv(tmp_path / "btc.csv", candle_factory, seed=1)
        second = self.write_csv(tmp_path / "eth.csv", candle_factory, seed=2)

        result = self.runner.invoke(app, ["compare", first, second])

        assert result.exit_code == 0
        assert "BTC" in result.output
        assert "ETH" in result.output

    def test_missing_file(self, tmp_path):
        result = self.runner.invoke(app, ["trend", str(tmp_path / "missing.csv")])

        assert result.exit_code == 1

    def test_config_info(self, tmp_path):
        result = self.runner.invoke(app, ["config-info", "--section", "trend",
                                          "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 0
        assert "rsi_oversold" in result.output

    def test_config_info_unknown_section(self, tmp_path):
        result = self.runner.invoke(app, ["config-info", "--section", "nope",
                                          "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
