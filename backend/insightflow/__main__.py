"""
Run the InsightFlow API server.

Usage:
    python -m insightflow --host 0.0.0.0 --port 8000
"""

import argparse

import uvicorn


def parse_args():
    parser = argparse.ArgumentParser(description="Run the InsightFlow API server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser.parse_args()


def main():
    args = parse_args()
    uvicorn.run("insightflow.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
