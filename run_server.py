#!/usr/bin/env python
"""
Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py
    Seed demo:    python run_server.py --seed --orders 300

    Or with Gunicorn:
    gunicorn src.main:app -c gunicorn.conf.py
"""

import argparse
import asyncio
import subprocess

import uvicorn

from src.config import get_settings

settings = get_settings()


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=port,
        reload=True,
        reload_dirs=["src"],
        log_level="debug",
    )


def run_prod_server(port: int):
    """Run with Uvicorn workers, no Gunicorn master."""
    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=port,
        workers=settings.api_workers,
        log_level=settings.monitoring.log_level.lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


def run_gunicorn():
    subprocess.run(["gunicorn", "src.main:app", "-c", "gunicorn.conf.py"], check=True)


def seed(n_orders: int):
    from src.ingestion.seed_db import main as seed_database

    asyncio.run(seed_database(n_orders=n_orders))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Partner Ledger API Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--gunicorn", action="store_true", help="Run with Gunicorn (production)")
    parser.add_argument("--seed", action="store_true", help="Create tables, load a demo store and exit")
    parser.add_argument("--orders", type=int, default=200, help="Demo orders to generate with --seed")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Port to run on")

    args = parser.parse_args()

    if args.seed:
        seed(args.orders)
    elif args.dev:
        run_dev_server(args.port)
    elif args.gunicorn:
        run_gunicorn()
    else:
        run_prod_server(args.port)
