"""
Command-line interface for the trendcast engine.

Runs the engine over candle CSV files using Typer, with Rich tables for
output. Models live only for one invocation, so ``predict`` trains and
predicts in the same run.

Key features:
- Indicator, trend and trading-signal reports for one candle file
- Train-then-predict for a symbol
- Multi-file trend comparison (symbol taken from the file name)
- Configuration file support and verbose logging on every command
"""

import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from trendcast.data.candles import load_candles_csv
from trendcast.pipeline import AnalysisPipeline
from trendcast.utils.config import ConfigManager
from trendcast.utils.logging import setup_logging

app = typer.Typer(
    name="trendcast",
    help="Trendcast - technical indicators, trend voting and short-horizon price direction forecasts",
    add_completion=False
)

console = Console()

logger = logging.getLogger(__name__)

ConfigOption = typer.Option(None, "--config", "-c", help="Path to configuration file")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")


def setup_globals(config_path: Optional[str] = None, verbose: bool = False) -> ConfigManager:
    """Setup global configuration and logging."""
    try:
        config_manager = ConfigManager(config_path=config_path)

        logging_config = dict(config_manager.get_section('logging'))
        logging_config['level'] = 'DEBUG' if verbose else config_manager.get_log_level()
        setup_logging(logging_config)

        logger.debug("CLI initialized successfully")
        return config_manager

    except Exception as e:
        console.print(f"[red]Failed to initialize CLI: {e}[/red]")
        raise typer.Exit(1)


def handle_error(operation: str, error: Exception):
    """Handle and log errors consistently."""
    error_msg = f"Failed to {operation}: {error}"
    logger.error(error_msg, exc_info=logger.isEnabledFor(logging.DEBUG))
    console.print(f"[red]{error_msg}[/red]")
    raise typer.Exit(1)


def _fmt(value: Any, digits: int = 4) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return str(value)


@app.command()
def indicators(
    csv_path: str = typer.Argument(..., help="Candle CSV file"),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption
):
    """Show the latest value of every indicator."""
    settings = setup_globals(config, verbose)

    try:
        candles = load_candles_csv(csv_path)
        bundle = AnalysisPipeline(settings).compute_indicators(candles)
    except Exception as e:
        handle_error("compute indicators", e)

    table = Table(title=f"Latest Indicators ({bundle.candle_count} candles)")
    table.add_column("Indicator", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Points", style="yellow")

    for name, series in bundle.flat_series().items():
        table.add_row(name, _fmt(series.last()), f"{len(series):,}")

    console.print(table)


@app.command()
def trend(
    csv_path: str = typer.Argument(..., help="Candle CSV file"),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption
):
    """Classify the current trend by indicator voting."""
    settings = setup_globals(config, verbose)

    try:
        result = AnalysisPipeline(settings).trend(load_candles_csv(csv_path))
    except Exception as e:
        handle_error("analyze trend", e)

    snapshot = result['indicators']
    table = Table(title="Trend Analysis")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Trend", result['trend'])
    table.add_row("Strength", str(result['strength']))
    table.add_row("Confidence", str(result['confidence']))
    table.add_row("Price", _fmt(snapshot['current_price']))
    table.add_row("RSI", _fmt(snapshot['rsi'], 2))
    table.add_row("MACD", _fmt(snapshot['macd']['macd']))
    table.add_row("MACD Signal", _fmt(snapshot['macd']['signal']))
    table.add_row("SMA20", _fmt(snapshot['sma20']))
    table.add_row("SMA50", _fmt(snapshot['sma50']))

    console.print(table)


@app.command()
def signals(
    csv_path: str = typer.Argument(..., help="Candle CSV file"),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption
):
    """List BUY/SELL signals from RSI, MACD and SMA."""
    settings = setup_globals(config, verbose)

    try:
        result = AnalysisPipeline(settings).signals(load_candles_csv(csv_path))
    except Exception as e:
        handle_error("generate signals", e)

    if not result['signals']:
        console.print("[yellow]No signals: not enough history for any indicator[/yellow]")
    else:
        table = Table(title="Trading Signals")
        table.add_column("Type", style="bold")
        table.add_column("Indicator", style="cyan")
        table.add_column("Strength", style="yellow")
        table.add_column("Message")

        for signal in result['signals']:
            color = "green" if signal['type'] == 'BUY' else "red"
            table.add_row(f"[{color}]{signal['type']}[/{color}]", signal['indicator'],
                          signal['strength'], signal['message'])

        console.print(table)

    trend_analysis = result['trend_analysis']
    rprint(f"\n[bold]Trend:[/bold] {trend_analysis['trend']} "
           f"(strength {trend_analysis['strength']}, confidence {trend_analysis['confidence']})")


@app.command()
def predict(
    csv_path: str = typer.Argument(..., help="Candle CSV file"),
    symbol: str = typer.Option(..., "--symbol", "-s", help="Symbol to train and predict"),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption
):
    """Train a model on the candle history and predict the next candle."""
    settings = setup_globals(config, verbose)
    symbol = symbol.strip().upper()

    with console.status(f"[bold green]Training model for {symbol}..."):
        try:
            candles = load_candles_csv(csv_path)
            pipeline = AnalysisPipeline(settings)
            training = pipeline.train(symbol, candles)
            prediction = pipeline.predict(symbol, candles)
        except Exception as e:
            handle_error(f"predict {symbol}", e)

    console.print(f"[green]✓[/green] Model for {symbol} trained on {training['features_count']} examples")

    table = Table(title=f"Prediction - {symbol}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Direction", prediction.direction)
    table.add_row("Raw Score", _fmt(prediction.raw_score))
    table.add_row("Confidence", str(prediction.confidence))
    table.add_row("Model Accuracy", f"{prediction.model_accuracy:.1f}%")
    table.add_row("Trained At", training['trained_at'])

    console.print(table)


@app.command()
def compare(
    csv_paths: List[str] = typer.Argument(..., help="Candle CSV files, one per symbol"),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption
):
    """Compare trends across symbols (symbol taken from each file name)."""
    settings = setup_globals(config, verbose)

    try:
        candles_by_symbol = {Path(path).stem.upper(): load_candles_csv(path) for path in csv_paths}
        comparisons = AnalysisPipeline(settings).compare(candles_by_symbol)
    except Exception as e:
        handle_error("compare symbols", e)

    table = Table(title="Trend Comparison")
    table.add_column("Symbol", style="cyan")
    table.add_column("Trend", style="bold")
    table.add_column("Strength", style="green")
    table.add_column("Confidence", style="blue")
    table.add_column("Price", style="yellow")
    table.add_column("RSI")

    for row in comparisons:
        if 'error' in row:
            table.add_row(row['symbol'], f"[red]error: {row['error']}[/red]", "-", "-", "-", "-")
            continue
        table.add_row(row['symbol'], row['trend'], str(row['strength']), str(row['confidence']),
                      _fmt(row['current_price']), _fmt(row['rsi'], 2))

    console.print(table)


@app.command()
def config_info(
    section: Optional[str] = typer.Option(
        None,
        "--section",
        "-s",
        help="Show specific configuration section"
    ),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption
):
    """Display configuration information."""
    settings = setup_globals(config, verbose)

    if section and not settings.get_section(section):
        console.print(f"[red]Section '{section}' not found[/red]")
        console.print(f"Available sections: {', '.join(settings.list_keys())}")
        raise typer.Exit(1)

    title = f"Configuration - {section.title()}" if section else "Configuration Overview"
    console.print(f"[bold]{title}:[/bold]")
    console.print(settings.to_yaml(section))


if __name__ == "__main__":
    app()
