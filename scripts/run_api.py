"""
Run the FastAPI server.
"""

import argparse
import os
import sys

import uvicorn

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tournament_scheduler.core.config import API_HOST, API_PORT, LOG_LEVEL


def main():
    parser = argparse.ArgumentParser(description="Tournament Scheduling API server")
    parser.add_argument('--host', default=API_HOST, help=f'Bind address (default: {API_HOST})')
    parser.add_argument('--port', type=int, default=API_PORT, help=f'Port (default: {API_PORT})')
    parser.add_argument('--no-reload', action='store_true', help='Disable auto-reload on code changes')
    args = parser.parse_args()

    print("=" * 60)
    print("Tournament Scheduling API Server")
    print("=" * 60)
    print(f"Starting server on http://{args.host}:{args.port}")
    print(f"API Documentation: http://{args.host}:{args.port}/docs")
    print("=" * 60)

    uvicorn.run(
        "tournament_scheduler.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        log_level=LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
