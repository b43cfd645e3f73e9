#!/usr/bin/env python3
"""
entrypoint.py
- Command-line entrypoint for swarm-updater.
- Usage:
    swarm-updater serve
    swarm-updater update --image <repository> --tag <tag> [--service <name>] [--dry-run]

- `update` runs a single update request without the HTTP server, e.g. from a CI job
  via `docker exec`.
"""

import argparse
import asyncio
import sys

from loguru import logger

from swarm_updater.core.config import ConfigError, configure_logging, load_config
from swarm_updater.core.docker_client import build_executor
from swarm_updater.lib.docker.errors import DockerError
from swarm_updater.lib.update.models import UpdateRequest


def build_parser():
    parser = argparse.ArgumentParser(
        prog="swarm-updater",
        description="Roll Docker Swarm services onto a new image tag.",
    )
    parser.add_argument("--config-path", help="Directory holding config.toml/json/yaml (default: $CONFIG_PATH or ./)")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("serve", help="Run the HTTP API")

    update = commands.add_parser("update", help="Update matching services once and exit")
    update.add_argument("--image", required=True, help="Image repository, without tag")
    update.add_argument("--tag", required=True, help="Tag to roll out")
    update.add_argument("--service", help="Update only the service with this exact name")
    update.add_argument("--dry-run", action="store_true", help="Select and report, but do not update")
    return parser


def print_outcomes(outcomes):
    if not outcomes:
        print("No service matched.")
        return
    for outcome in outcomes:
        line = f"{outcome.status.value:<8} {outcome.name:<30} {outcome.image}:{outcome.from_tag} → {outcome.to_tag} (v{outcome.version})"
        if outcome.error:
            line += f"  {outcome.error}"
        print(line)


def run_update(config, args):
    if args.dry_run:
        config = config.model_copy(update={"dry_run": True})
    executor = build_executor(config)
    request = UpdateRequest(image=args.image, tag=args.tag, service=args.service)

    try:
        outcomes = asyncio.run(executor.execute(request))
    except DockerError as e:
        logger.error(f"[update] Could not list services: {e}")
        return 1
    finally:
        executor.client.close()

    print_outcomes(outcomes)
    return 0 if all(outcome.ok for outcome in outcomes) else 1


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config_path)
    except ConfigError as e:
        print(f"❌ Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(config)

    if args.command == "serve":
        from swarm_updater.main import serve

        serve(config)
        return

    try:
        sys.exit(run_update(config, args))
    except KeyboardInterrupt:
        print("🛑 KeyboardInterrupt received. Exiting.")
        sys.exit(130)


if __name__ == "__main__":
    main()
