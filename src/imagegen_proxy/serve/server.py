"""Helper to launch the proxy under uvicorn from Python."""
from __future__ import annotations
import os
import subprocess
import sys

def build_command() -> list[str]:
    host = os.getenv("PROXY_HOST", "0.0.0.0")
    port = os.getenv("PROXY_PORT", "8000")
    workers = os.getenv("PROXY_WORKERS", "1")
    return [
        sys.executable,
        "-m",
        "uvicorn",
        "imagegen_proxy.serve.fastapi_app:get_app",
        "--factory",
        "--host", host,
        "--port", str(port),
        "--workers", str(workers),
    ]

def main() -> None:
    subprocess.run(build_command(), check=True)

if __name__ == "__main__":
    main()
