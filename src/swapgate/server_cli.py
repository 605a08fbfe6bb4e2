"""``swapgate-server``: run the gateway under uvicorn."""

import argparse


def build_parser(host: str, port: int, log_level: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swapgate-server",
        description="Swap wallet integration gateway (on-ramp ledger, proxies, RPC relay, price stream)",
    )
    parser.add_argument("--host", default=host, help=f"Bind address (default: {host}, SWAPGATE_HOST)")
    parser.add_argument("--port", type=int, default=port, help=f"Bind port (default: {port}, SWAPGATE_PORT)")
    parser.add_argument("--log-level", default=log_level, help="uvicorn log level")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    return parser


def main(argv: list[str] | None = None) -> None:
    from swapgate.config import settings

    args = build_parser(settings.host, settings.port, settings.log_level).parse_args(argv)

    import uvicorn

    # The factory reads the same settings; proxy headers carry the client IP used for gating
    uvicorn.run(
        "swapgate.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=args.reload,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
