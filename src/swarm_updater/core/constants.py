"""
constants.py
- Project-wide constants shared by the server, the CLI and the health check.
"""

from importlib.metadata import PackageNotFoundError, version

APP_NAME = "swarm-updater"

try:
    VERSION = version(APP_NAME)
except PackageNotFoundError:
    VERSION = "unknown"  # running from a source checkout
