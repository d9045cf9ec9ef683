"""Living World — dev launcher. Starts the API server in watch mode."""

import argparse
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "127.0.0.1")
PORT = os.getenv("PORT", "13015")


def main():
    parser = argparse.ArgumentParser(description="Living World dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Settings storage directory (default: ./data)")
    parser.add_argument("--worlds-dir", type=Path, default=None,
                        help="Read lorebooks from this directory instead of the host")
    parser.add_argument("--host-url", default=None,
                        help="Chat host base URL (default: $HOST_URL)")
    args = parser.parse_args()

    # Build env for the server process so it picks up the same options
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())
    if args.worlds_dir:
        env["WORLDS_DIR"] = str(args.worlds_dir.resolve())
    if args.host_url:
        env["HOST_URL"] = args.host_url

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

    print(f"Starting Living World on http://{HOST}:{PORT} ...")
    procs.append(subprocess.Popen(
        ["uv", "run", "uvicorn", "living_world.app:create_app", "--factory",
         "--reload", "--host", HOST, "--port", PORT],
        cwd=ROOT, env=env,
    ))

    for p in procs:
        p.wait()


if __name__ == "__main__":
    main()
