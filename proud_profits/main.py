import argparse
import os
import sys
import time
from datetime import datetime
from typing import Dict, List, Optional

import pytz

from proud_profits.data.api_client import ApiClient
from proud_profits.data.ohlc_frame import summarize, to_csv
from proud_profits.data.price_stream import PriceStreamingService
from proud_profits.errors import ProudProfitsError
from proud_profits.storage.ohlc_cache import CachedApiClient
from proud_profits.utils.config import get_config_value, load_config
from proud_profits.utils import logging_utils
from proud_profits.utils.logging_utils import configure_root_logger, log_manager
from proud_profits.visualization.chart_geometry import build_chart_layout
from proud_profits.visualization.price_charts import save_chart

MODES = ("dashboard", "snapshot", "stream", "summary")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Proud Profits Signals Dashboard")
    parser.add_argument("--config", type=str, default="config/config.json", help="Path to config file")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    parser.add_argument("--mode", type=str, default="dashboard", choices=MODES, help="Operation mode")
    parser.add_argument("--output", type=str, default="chart.png", help="Output PNG for snapshot mode")
    parser.add_argument("--symbols", type=str, help="Comma-separated symbols for stream mode")
    parser.add_argument("--csv", type=str, help="Write the OHLC data as CSV in summary mode")
    return parser.parse_args(argv)


def build_client(config: Dict) -> CachedApiClient:
    return CachedApiClient.from_config(ApiClient.from_config(config), config)


def run_snapshot(config: Dict, output: str, logger) -> str:
    """Fetch OHLC, signals and price once and render the chart PNG."""
    client = build_client(config)
    symbol = get_config_value(config, 'chart.symbol', 'BTCUSDT')
    interval = get_config_value(config, 'chart.interval', '1w')
    public = get_config_value(config, 'chart.public', True)

    response = client.get_ohlc(symbol, interval, get_config_value(config, 'chart.limit', 104), public=public)
    if response is None or not response.data:
        raise ProudProfitsError(f"No OHLC data returned for {symbol}")

    signals = client.get_signals(symbol, get_config_value(config, 'chart.signal_timeframe', '1W'))
    tick = client.get_price(symbol, public=public)

    layout = build_chart_layout(
        response.data,
        signals,
        live_price=tick.price if tick is not None else None,
        width=get_config_value(config, 'chart.width', 900),
        height=get_config_value(config, 'chart.height', 500),
        interval=interval,
        title=f"{symbol} {interval.upper()} Chart with Trading Signals",
        updated_at=datetime.now(pytz.UTC),
        max_candles=get_config_value(config, 'chart.max_candles', 52),
        timezone=get_config_value(config, 'display.timezone', 'UTC'),
    )
    logger.info(f"Chart has {len(layout.shapes)} candles, {layout.buy_count} buy and "
                f"{layout.sell_count} sell signals")
    return save_chart(layout, output)


def run_stream(config: Dict, symbols: Optional[str], logger):
    service = PriceStreamingService.from_config(config)
    service.on('price', lambda tick: logger.info(
        f"{tick.symbol} ${tick.price:,.2f} ({tick.change_percent_24h:+.2f}%)"
        + (" [fallback]" if tick.is_fallback else "")))
    service.on('kline', lambda k: logger.info(
        f"{k.symbol} 1m close {k.close:,.2f} vol {k.volume:,.2f}"))
    service.on('max_reconnect_attempts_reached', lambda: logger.error("Giving up on the price stream"))

    symbol_list = symbols.split(",") if symbols else get_config_value(config, 'stream.symbols')
    service.start(symbol_list)
    try:
        while service.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        service.stop()


def run_summary(config: Dict, csv_path: Optional[str]) -> Dict:
    client = build_client(config)
    symbol = get_config_value(config, 'chart.symbol', 'BTCUSDT')
    interval = get_config_value(config, 'chart.interval', '1w')
    response = client.get_ohlc(symbol, interval, get_config_value(config, 'chart.limit', 104),
                               public=get_config_value(config, 'chart.public', True))
    if response is None:
        raise ProudProfitsError(f"No OHLC data returned for {symbol}")

    summary = summarize(response)
    for key, value in summary.items():
        print(f"{key:>15}: {value}")

    if csv_path:
        with open(csv_path, 'w') as f:
            f.write(to_csv(response))
        print(f"CSV written to {csv_path}")
    return summary


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    args = parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    log_dir = get_config_value(config, 'logging.dir')
    if log_dir and os.path.abspath(log_dir) != os.path.abspath(logging_utils.logs_directory):
        log_manager.set_log_directory(log_dir)

    # Component loggers already exist at import time
    level = args.log_level or get_config_value(config, 'logging.level', 'INFO')
    log_manager.set_default_level(level)
    log_manager.set_all_levels(level)
    logger = configure_root_logger(level)
    logger.info(f"Starting Proud Profits dashboard in {args.mode} mode")

    try:
        if args.mode == "dashboard":
            from proud_profits.web.dashboard import run_app
            run_app(config)
        elif args.mode == "snapshot":
            path = run_snapshot(config, args.output, logger)
            logger.info(f"Snapshot written to {path}")
        elif args.mode == "stream":
            run_stream(config, args.symbols, logger)
        elif args.mode == "summary":
            run_summary(config, args.csv)
    except ProudProfitsError as e:
        logger.error(f"{args.mode} failed: {e}")
        sys.exit(1)

    logger.info("Execution completed successfully")


if __name__ == "__main__":
    main()
