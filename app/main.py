"""WaveScan — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
serve and one-shot scan modes.
"""

import logging

from fastapi import FastAPI

from app.api.routers import router

app = FastAPI(title="WaveScan Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("wavescan")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio

    from app.api.routers import configure_routers
    from app.config import load_config, load_scan_groups
    from app.engine import ScanEngine
    from app.market.yahoo_client import YahooChartClient
    from app.repos.store import create_store
    from app.scanner import ScanOrchestrator

    parser = argparse.ArgumentParser(description="WaveScan signal scanner")
    parser.add_argument(
        "--mode",
        choices=["serve", "scan"],
        default="serve",
        help="serve: API + periodic scans; scan: one cycle then exit",
    )
    parser.add_argument("--scan-config", help="Path to scan.json (optional)")
    args = parser.parse_args()

    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    groups = load_scan_groups(args.scan_config)
    orchestrator = ScanOrchestrator(
        provider=YahooChartClient(config),
        symbols=config.symbols,
        groups=groups,
        max_concurrency=config.max_concurrency,
        fetch_timeout=config.fetch_timeout_seconds,
    )
    store = create_store(config)
    engine = ScanEngine(orchestrator, store, poll_interval=config.scan_interval_seconds)
    configure_routers(engine=engine, store=store, cron_secret=config.cron_secret)

    logger.info(
        "WaveScan: %d symbol(s), %d group(s): %s",
        len(config.symbols), len(groups), ", ".join(g.name for g in groups),
    )

    if args.mode == "scan":
        asyncio.run(_run_single_scan(engine))
        return

    asyncio.run(_serve(engine, config.port))


async def _run_single_scan(engine) -> None:
    """Run one cycle and print the snapshot summary."""
    from app.cli.dashboard import print_summary

    aggregate = await engine.run_once()
    print_summary(aggregate.to_dict())


async def _serve(engine, port: int) -> None:
    """Start the API server and the scan loop concurrently."""
    import asyncio

    import uvicorn

    uvi_config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(uvi_config)

    async def _run_server():
        await server.serve()
        engine.stop()

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(
        _run_server(),
        engine.run(),
        return_exceptions=True,
    )
    logger.info("WaveScan stopped. Results: %d cycle(s)", engine.cycle_count)
    for r in results:
        if isinstance(r, BaseException):
            logger.error("Task ended with error: %s", r)


if __name__ == "__main__":
    _run_cli()
