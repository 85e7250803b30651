"""Tier Lobby — dev launcher. Starts the backend in watch mode."""

import argparse
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


def main():
    parser = argparse.ArgumentParser(description="Tier Lobby dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--profile-service", default=None,
                        help="Profile API base URL (default: preset dev profiles)")
    args = parser.parse_args()

    # Build env for the subprocess so the backend picks up the same settings
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())
    if args.profile_service:
        env["PROFILE_SERVICE_URL"] = args.profile_service

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    proc = subprocess.Popen(
        ["uv", "run", "uvicorn", "backend.app:app", "--reload", "--host", HOST, "--port", BACKEND_PORT],
        cwd=ROOT, env=env,
    )

    def shutdown(*_):
        print("\nShutting down...")
        proc.terminate()
        proc.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    proc.wait()


if __name__ == "__main__":
    main()
