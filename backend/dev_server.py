#!/usr/bin/env python3
"""
Dev server launcher for the MS Archive backend.

Usage:
    cd backend
    python dev_server.py [--port 8000] [--no-reload] [--enforce-captcha]

Runs against a local SQLite file unless DATABASE_URL is set. Run
`alembic upgrade head` first so the schema check at startup passes.
"""
import argparse
import os


def main():
    parser = argparse.ArgumentParser(description="Run the MS Archive backend for local development")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    parser.add_argument("--enforce-captcha", action="store_true", help="Reject submissions when Turnstile is unavailable")
    args = parser.parse_args()

    os.environ.setdefault("ENV", "dev")
    os.environ.setdefault("DATABASE_URL", "sqlite:///./msarchive.db")
    if args.enforce_captcha:
        os.environ["CAPTCHA_MODE"] = "enforce"

    import uvicorn

    print("Starting MS Archive Backend in DEV mode")
    print(f"Database: {os.environ['DATABASE_URL']}")
    print(f"CAPTCHA mode: {os.getenv('CAPTCHA_MODE', 'from settings.yaml')}")
    print(f"API docs at http://{args.host}:{args.port}/docs")
    print()

    uvicorn.run(
        "msarchive.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
