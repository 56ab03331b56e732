"""Story Relay dev launcher. Starts the API server (and optionally the web frontend) in watch mode.

Run from the project root: .env, data/ and web/ are looked up in the current
directory.
"""

import argparse
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv


def main():
    root = Path.cwd()
    load_dotenv(root / ".env")
    host = os.getenv("HOST", "127.0.0.1")
    port = os.getenv("PORT", "8787")

    parser = argparse.ArgumentParser(description="Story Relay dev launcher")
    parser.add_argument("--root", type=Path, default=None,
                        help="Project root holding data/index.json (default: ./)")
    parser.add_argument("--worker", choices=["persistent", "ephemeral", "echo"], default=None,
                        help="How turns reach the narration engine")
    parser.add_argument("--log-level", default="info",
                        help="uvicorn log level (debug shows engine output)")
    parser.add_argument("--frontend", action="store_true",
                        help="Also run the web frontend dev server (bun run dev in web/)")
    args = parser.parse_args()

    # Build env for subprocesses so the server picks up the same settings
    env = os.environ.copy()
    if args.root:
        env["RELAY_ROOT"] = str(args.root.resolve())
    if args.worker:
        env["RELAY_WORKER_MODE"] = args.worker

    procs: list[subprocess.Popen] = []

    def shutdown(*_):
        print("\nShutting down...")
        for p in procs:
            p.terminate()
        for p in procs:
            p.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    print(f"Starting story relay on http://localhost:{port} ...")
    procs.append(subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "backend.app:app", "--reload",
         "--host", host, "--port", port, "--log-level", args.log_level],
        cwd=root, env=env,
    ))

    if args.frontend:
        print("Starting web frontend ...")
        procs.append(subprocess.Popen(["bun", "run", "dev"], cwd=root / "web", env=env))

    for p in procs:
        p.wait()


if __name__ == "__main__":
    main()
