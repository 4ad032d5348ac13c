"""Confluence — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
the continuous ``serve`` mode and the single-cycle ``once`` mode.
"""

import logging

from fastapi import FastAPI

from confluence.api.routers import router

app = FastAPI(title="Confluence Signal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("confluence")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def build_engine(config):
    """Wire the Binance feed and the keyword sentiment pipeline into an engine."""
    from confluence.engine import SignalEngine
    from confluence.feeds.binance_client import BinanceClient
    from confluence.feeds.headlines import StaticHeadlineSource
    from confluence.feeds.sentiment import KeywordSentimentProvider

    return SignalEngine(
        config=config,
        feed=BinanceClient(config),
        sentiment_provider=KeywordSentimentProvider(),
        headline_source=StaticHeadlineSource(),
    )


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio
    import signal

    from confluence.config import load_config

    parser = argparse.ArgumentParser(description="Confluence signal engine")
    parser.add_argument(
        "--mode",
        choices=["serve", "once"],
        default="serve",
        help="serve: engine + API until stopped; once: evaluate a single cycle",
    )
    parser.add_argument("--env-file", help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env_file)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    engine = build_engine(config)

    if args.mode == "once":
        asyncio.run(engine.refresh_sentiment())
        result = asyncio.run(engine.run_once())
        logger.info("Single cycle: %s", result)
        if engine.last_signal is not None:
            for reason in engine.last_signal.reasons:
                logger.info("  - %s", reason)
        return

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        engine.stop()

    signal.signal(signal.SIGINT, handle_shutdown)
    asyncio.run(_serve(engine, config.health_port))


async def _serve(engine, port: int) -> None:
    """Start the API server and the signal engine concurrently."""
    import asyncio

    import uvicorn

    uvi_config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(uvi_config)

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(
        server.serve(),
        engine.run(),
        return_exceptions=True,
    )
    logger.info("Confluence stopped. Results: %s", results)


if __name__ == "__main__":
    _run_cli()
