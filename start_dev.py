"""Run the Media Uploads API locally with auto-reload.

Usage:
    python start_dev.py                      # simulated uploads on :8000
    python start_dev.py --delay 0.5 -k 2     # slow fake transfers, two slots
    python start_dev.py --prod --upload-url http://localhost:8080/api/resources/uploads

Flags are turned into MEDIA_UPLOADS_* environment variables for the server
process; variables already set in the shell or in .env win over the defaults.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent
BACKEND_DIR = ROOT_DIR / "backend"
VENV_DIRS = (ROOT_DIR / ".venv", BACKEND_DIR / ".venv")


def find_python() -> str:
    """Prefer a project virtualenv, fall back to the current interpreter."""
    for venv in VENV_DIRS:
        candidate = venv / ("Scripts/python.exe" if os.name == "nt" else "bin/python")
        if candidate.exists():
            return str(candidate)
    return sys.executable


def missing_dependencies(python: str) -> bool:
    check = subprocess.run(
        [python, "-c", "import fastapi, uvicorn, httpx, multipart, media_uploads"],
        capture_output=True,
    )
    return check.returncode != 0


def build_env(args: argparse.Namespace) -> dict[str, str]:
    env = dict(os.environ)
    defaults = {
        "MEDIA_UPLOADS_MODE": "prod" if args.prod else "dev",
        "MEDIA_UPLOADS_DEBUG": "true",
        "MEDIA_UPLOADS_LOG_LEVEL": args.log_level,
        "MEDIA_UPLOADS_DEV_TRANSFER_DELAY_SECONDS": str(args.delay),
    }
    if args.concurrency is not None:
        defaults["MEDIA_UPLOADS_CONCURRENCY_LIMIT"] = str(args.concurrency)
    if args.upload_url:
        defaults["MEDIA_UPLOADS_UPLOAD_URL"] = args.upload_url
    for key, value in defaults.items():
        env.setdefault(key, value)
    return env


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--prod", action="store_true", help="upload to the real endpoint")
    parser.add_argument("--upload-url", help="remote store endpoint (with --prod)")
    parser.add_argument("-k", "--concurrency", type=int, help="simultaneous uploads per session")
    parser.add_argument("--delay", type=float, default=0.05, help="seconds per simulated progress step")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    python = find_python()

    if missing_dependencies(python):
        print(f"Missing dependencies for {python}. Run: pip install -e '.[dev]'", file=sys.stderr)
        return 1

    env = build_env(args)
    cmd = [
        python, "-m", "uvicorn", "media_uploads.main:app",
        "--reload", "--reload-dir", str(BACKEND_DIR / "media_uploads"),
        "--host", "127.0.0.1", "--port", str(args.port),
    ]
    print(f"Media Uploads ({env['MEDIA_UPLOADS_MODE']} mode) on http://127.0.0.1:{args.port}/api")
    print(f"  Docs: http://127.0.0.1:{args.port}/docs   (Ctrl+C to stop)")

    try:
        return subprocess.run(cmd, cwd=BACKEND_DIR, env=env).returncode
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
