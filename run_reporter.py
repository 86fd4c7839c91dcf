#!/usr/bin/env python3
"""Run the proxystat reporter for local development."""

import os

# Short interval and verbose logging for local development
os.environ.setdefault("PROXYSTAT_REPORT_INTERVAL", "30")
os.environ.setdefault("PROXYSTAT_STATS_HOST", "127.0.0.1")
os.environ.setdefault("PROXYSTAT_LOG_LEVEL", "DEBUG")

from reporter.main import run

if __name__ == "__main__":
    run()
