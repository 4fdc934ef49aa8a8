"""Run the drivetrack API with uvicorn."""

from __future__ import annotations

import argparse

import uvicorn


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="drivetrack", description="Drive tracking API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)
    uvicorn.run("drivetrack.main:app", host=args.host, port=args.port, reload=False)


if __name__ == "__main__":
    main()
