import os
import sys

from loguru import logger

from curve_market.common.model import MarketParams
from curve_market.registry.factory import MarketFactory
from curve_market.webapi.webapi import create_app


def setup_logging() -> None:
    """Replace loguru's default handler with a stderr sink at CURVE_MARKET_LOG_LEVEL."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
        level=os.getenv("CURVE_MARKET_LOG_LEVEL", "INFO"),
    )


def main():
    setup_logging()
    factory = MarketFactory(default_params=MarketParams.from_env())
    app = create_app(factory)
    app.run(
        host=os.getenv("CURVE_MARKET_HOST", "127.0.0.1"),
        port=int(os.getenv("CURVE_MARKET_PORT", "5000")),
    )


if __name__ == "__main__":
    main()
