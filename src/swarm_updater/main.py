#!/usr/bin/env python3
"""
main.py
- HTTP entrypoint for swarm-updater.
- Exposes:
    - GET  /        echo / health
    - POST /update  roll matching Swarm services onto a new image tag
- Every answer, errors included, uses the {code, transaction, message, args, data} envelope.
"""

import asyncio
import hmac
import socket
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import sentry_sdk
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from swarm_updater.core.constants import APP_NAME, VERSION
from swarm_updater.core.docker_client import build_executor
from swarm_updater.lib.common.body_limit import BodyLimitMiddleware, BodyTooLarge, body_too_large_response
from swarm_updater.lib.common.envelope import envelope, error_response, new_transaction
from swarm_updater.lib.docker.errors import DockerError
from swarm_updater.lib.update.models import OutcomeStatus, UpdateRequest


class Unauthorized(Exception):
    pass


def require_token(request: Request):
    """Check the bearer token when tokens are configured; open access otherwise."""
    tokens = request.app.state.config.tokens
    if not tokens:
        return

    scheme, _, supplied = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not supplied:
        raise Unauthorized("Missing bearer token")
    if not any(hmac.compare_digest(supplied, token) for token in tokens):
        raise Unauthorized("Invalid bearer token")


def summarize(outcomes):
    if not outcomes:
        return "No service matched"
    if all(outcome.status == OutcomeStatus.DRY_RUN for outcome in outcomes):
        return f"Dry run: {len(outcomes)} service(s) would be updated"
    failed = sum(1 for outcome in outcomes if not outcome.ok)
    if failed:
        return f"Updated {len(outcomes) - failed} of {len(outcomes)} services"
    return "Service updated"


def create_app(config, executor=None):
    """
    Build the FastAPI application.

    Args:
        config (Config): Process configuration.
        executor (UpdateExecutor): Optional; built from config when omitted.
    """
    executor = executor or build_executor(config)

    @asynccontextmanager
    async def lifespan(app):
        yield
        close = getattr(app.state.executor.client, "close", None)
        if close:
            close()

    api = FastAPI(title=APP_NAME, version=VERSION, lifespan=lifespan)
    api.state.config = config
    api.state.executor = executor

    # --- Middleware ---
    # Last added runs outermost: CORS must wrap the body limit so a 413 carries its headers.
    api.add_middleware(BodyLimitMiddleware, limit=config.http_body_limit)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Error Handlers ---
    @api.exception_handler(BodyTooLarge)
    async def body_too_large(request: Request, exc: BodyTooLarge):
        return body_too_large_response(exc)

    @api.exception_handler(Unauthorized)
    async def unauthorized(request: Request, exc: Unauthorized):
        logger.warning(f"[api] {request.url.path}: {exc}")
        return error_response(str(exc), status_code=401, code="unauthorized")

    @api.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return error_response("Invalid request", status_code=422, args=errors)

    @api.exception_handler(DockerError)
    async def docker_error(request: Request, exc: DockerError):
        logger.error(f"[api] {request.url.path} failed: {exc}")
        return error_response(str(exc))

    @api.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"[api] Unexpected error on {request.url.path}")
        sentry_sdk.capture_exception(exc)
        return error_response(repr(exc))

    # --- Routes ---
    @api.get("/")
    async def echo():
        return envelope(
            "echo",
            "OK",
            data={
                "server": socket.gethostname(),
                "time": datetime.now(timezone.utc).isoformat(),
                "version": VERSION,
            },
        )

    @api.post("/update", dependencies=[Depends(require_token)])
    async def update(payload: UpdateRequest, request: Request):
        transaction = new_transaction()
        logger.info(f"[api] {transaction} update requested: {payload.model_dump(exclude_none=True)}")

        try:
            outcomes = await asyncio.wait_for(
                request.app.state.executor.execute(payload),
                timeout=config.http_request_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"[api] {transaction} timed out after {config.http_request_timeout}s")
            return error_response(
                f"Update timed out after {config.http_request_timeout}s", status_code=504
            )

        message = summarize(outcomes)
        logger.info(f"[api] {transaction} {message}")
        return envelope(
            "200",
            message,
            data=[outcome.to_response() for outcome in outcomes],
            transaction=transaction,
        )

    return api


def init_sentry(config):
    if config.sentry_dsn:
        sentry_sdk.init(
            dsn=config.sentry_dsn,
            traces_sample_rate=1.0,
            release=f"{APP_NAME}@{VERSION}",
        )
        logger.info("[api] Sentry error reporting enabled")


def serve(config):
    """Run the HTTP server until SIGINT/SIGTERM."""
    init_sentry(config)
    api = create_app(config)
    logger.info(f"[api] Starting server: {config.host}:{config.port}")
    uvicorn.run(
        api,
        host=config.host,
        port=config.port,
        log_level=config.loguru_level.lower(),
        timeout_graceful_shutdown=config.graceful_shutdown_timeout,
    )


if __name__ == "__main__":
    from swarm_updater.cli.entrypoint import main

    main(["serve"])
