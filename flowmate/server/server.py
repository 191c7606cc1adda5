#!/usr/bin/env python
"""
Flowmate API Server - HTTP API for workflows, credentials, OAuth and jobs.

Usage:
    python -m flowmate.server.server --host HOST --port PORT [--mongo URI] [--db DATABASE] [options]

Arguments:
    --host          Server host (e.g., 0.0.0.0 or 127.0.0.1)
    --port          Server port (e.g., 8000)
    --mongo         MongoDB connection URI (default: MONGODB_URI or mongodb://localhost:27017)
    --db            MongoDB database name (default: MONGODB_DATABASE or flowmate)
    -v, --verbose   Enable verbose logging
    --trace         Enable trace logging (includes pymongo and SSE internals)
"""

import argparse
import os
import re

from flowmate.server.logging_config import configure_logging


def validate_host(value: str) -> str:
    """Validate host format"""
    ip_pattern = r'^(\d{1,3}\.){3}\d{1,3}$'
    hostname_pattern = r'^[a-zA-Z0-9]([a-zA-Z0-9\-]*[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]*[a-zA-Z0-9])?)*$'

    if re.match(ip_pattern, value) or re.match(hostname_pattern, value):
        return value
    raise argparse.ArgumentTypeError(
        f"Invalid host format: '{value}'. "
        f"Expected: IP address (e.g., 0.0.0.0, 127.0.0.1) or hostname (e.g., localhost)"
    )


def validate_port(value: str) -> int:
    """Validate port number"""
    try:
        port = int(value)
    except ValueError:
        port = 0
    if 1 <= port <= 65535:
        return port
    raise argparse.ArgumentTypeError(
        f"Invalid port: '{value}'. Expected: integer between 1 and 65535 (e.g., 8000)"
    )


def validate_mongo_uri(value: str) -> str:
    """Validate MongoDB URI format"""
    if value.startswith("mongodb://") or value.startswith("mongodb+srv://"):
        return value
    raise argparse.ArgumentTypeError(
        f"Invalid MongoDB URI format: '{value}'. "
        f"Expected: mongodb://host:port or mongodb+srv://... (e.g., mongodb://localhost:27017)"
    )


def validate_db_name(value: str) -> str:
    """Validate database name format"""
    if re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', value) and len(value) <= 64:
        return value
    raise argparse.ArgumentTypeError(
        f"Invalid database name: '{value}'. "
        f"Expected: alphanumeric with underscores, starting with letter/underscore (e.g., flowmate)"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Start Flowmate API Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m flowmate.server.server --host 0.0.0.0 --port 8000 --mongo mongodb://localhost:27017 --db flowmate
    python -m flowmate.server.server --host 127.0.0.1 --port 8080 -v
        """
    )
    parser.add_argument("--host", required=True, type=validate_host,
                        help="Server host (e.g., 0.0.0.0 or 127.0.0.1)")
    parser.add_argument("--port", required=True, type=validate_port,
                        help="Server port (e.g., 8000)")
    parser.add_argument("--mongo", type=validate_mongo_uri,
                        default=os.environ.get("MONGODB_URI", "mongodb://localhost:27017"),
                        help="MongoDB connection URI (e.g., mongodb://localhost:27017)")
    parser.add_argument("--db", type=validate_db_name,
                        default=os.environ.get("MONGODB_DATABASE", "flowmate"),
                        help="MongoDB database name (e.g., flowmate)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose logging (DEBUG level)")
    parser.add_argument("--trace", action="store_true",
                        help="Enable trace logging (very verbose, includes SSE and pymongo)")
    return parser


def main():
    args = build_parser().parse_args()

    log_file = configure_logging(verbose=args.verbose, trace=args.trace)
    print(f"Logs written to: {log_file}")

    # The app reads its connection settings from the environment at startup
    os.environ["MONGODB_URI"] = args.mongo
    os.environ["MONGODB_DATABASE"] = args.db

    import uvicorn

    print("=" * 60)
    print("Flowmate API Server")
    print("=" * 60)
    print(f"  Host: {args.host}")
    print(f"  Port: {args.port}")
    print(f"  MongoDB: {args.mongo}")
    print(f"  Database: {args.db}")
    print()
    print("Endpoints:")
    print(f"  GET  http://{args.host}:{args.port}/modules/search?q=")
    print(f"  GET  http://{args.host}:{args.port}/authorize/{{provider}}")
    print(f"  POST http://{args.host}:{args.port}/workflows/{{id}}/run")
    print(f"  POST http://{args.host}:{args.port}/workflows/{{id}}/chat")
    print(f"  GET  http://{args.host}:{args.port}/health")
    print()
    print("Press Ctrl+C to stop")
    print("=" * 60)
    print()

    from flowmate.server.api.app import app

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="debug" if args.verbose else "info",
        timeout_keep_alive=300,
    )


if __name__ == "__main__":
    main()
