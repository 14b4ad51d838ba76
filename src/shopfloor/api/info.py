"""Process info endpoint."""

import os
import platform
import resource
import sys

from fastapi import APIRouter

router = APIRouter()


@router.get("/info")
async def process_info():
    """Arguments, runtime and resource usage of this server process."""
    args = sys.argv[1:]
    # ru_maxrss is KiB on Linux, bytes on macOS.
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    if sys.platform != "darwin":
        max_rss *= 1024
    return {
        "arguments": args or "no arguments given",
        "platform": sys.platform,
        "python_version": platform.python_version(),
        "max_rss_bytes": max_rss,
        "executable": sys.executable,
        "pid": os.getpid(),
        "cwd": os.getcwd(),
        "cpu_count": os.cpu_count(),
    }
