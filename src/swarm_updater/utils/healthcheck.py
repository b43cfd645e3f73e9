#!/usr/bin/env python3
"""
healthcheck.py
- Basic healthcheck script for Docker HEALTHCHECK.
- Returns exit code 0 if the service is healthy, 1 if not.
- Healthy means GET / on the local API answers with the echo envelope.
"""

import sys

import requests

from swarm_updater.core.config import ConfigError, load_config

TIMEOUT_SECONDS = 5


def check(port, host="127.0.0.1"):
    try:
        response = requests.get(f"http://{host}:{port}/", timeout=TIMEOUT_SECONDS)
        return response.ok and response.json().get("code") == "echo"
    except (requests.RequestException, ValueError):
        return False


def main():
    try:
        config = load_config()
    except ConfigError as e:
        print(f"❌ Healthcheck failed: {e}")
        sys.exit(1)

    if check(config.port):
        sys.exit(0)  # Healthy
    else:
        print(f"❌ Healthcheck failed: API not answering on port {config.port}")
        sys.exit(1)  # Unhealthy


if __name__ == "__main__":
    main()
