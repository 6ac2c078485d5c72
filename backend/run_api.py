#!/usr/bin/env python
"""
Run the TutorLink API server.

Usage:
    python run_api.py
    python run_api.py --reload            # Development mode
    python run_api.py --ledger memory     # No database needed
    python run_api.py --ledger memory --seed seed.example.yaml
"""

import argparse
import os

import uvicorn

from shared.config import get_settings


def main():
    parser = argparse.ArgumentParser(description="Run TutorLink API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument(
        "--ledger",
        choices=["supabase", "memory"],
        help="Override TUTORLINK_LEDGER_BACKEND",
    )
    parser.add_argument(
        "--seed",
        type=str,
        help="YAML seed file for the memory backend (TUTORLINK_MEMORY_SEED_PATH)",
    )
    args = parser.parse_args()

    if args.ledger:
        # Set before settings load so reload workers see it too
        os.environ["TUTORLINK_LEDGER_BACKEND"] = args.ledger
    if args.seed:
        os.environ["TUTORLINK_MEMORY_SEED_PATH"] = os.path.abspath(args.seed)

    settings = get_settings()

    uvicorn.run(
        "api:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload or settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
