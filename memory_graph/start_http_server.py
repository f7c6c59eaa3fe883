"""Command-line entry point for the knowledge graph HTTP server."""

import argparse
import os


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="memory-graph-server",
        description="Serve the agent memory knowledge graph over HTTP",
    )
    parser.add_argument("--host", default=os.getenv("KG_HTTP_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("KG_HTTP_PORT", "8765")))
    parser.add_argument("--log-level", default=os.getenv("KG_LOG_LEVEL", "INFO"))
    parser.add_argument("--workspace", help="Agent workspace, overrides OPENCLAW_WORKSPACE")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None):
    args = parse_args(argv)

    # Read by the app module at import and by GraphConfig.from_env() at startup
    os.environ["KG_LOG_LEVEL"] = args.log_level.upper()
    if args.workspace:
        os.environ["OPENCLAW_WORKSPACE"] = args.workspace

    import uvicorn

    uvicorn.run(
        "memory_graph.api.app:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
