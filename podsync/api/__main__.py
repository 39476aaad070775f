#!/usr/bin/env python3
"""
Serve the HTTP API.

Usage:
    python -m podsync.api --host 0.0.0.0 --port 8000
"""

import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="podsync HTTP API")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    uvicorn.run("podsync.api.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
