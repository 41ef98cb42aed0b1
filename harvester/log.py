"""
Console logging helper shared by all harvester components.
"""

import time


def log(source: str, message: str):
    """Print a timestamped log line tagged with its source."""
    timestamp = time.strftime("%H:%M:%S")
    print(f"[{timestamp}] [{source}] {message}", flush=True)
