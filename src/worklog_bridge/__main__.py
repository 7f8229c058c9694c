"""Run the worklog bridge under uvicorn.

Example
-------
    BRIDGE_PORT=8080 worklog-bridge
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from worklog_bridge.config import BridgeConfig
from worklog_bridge.servers import create_app
from worklog_bridge.utils.environment import env_str
from worklog_bridge.utils.logging import setup_logging

logger = logging.getLogger("worklog-bridge.cli")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Serve the Jira worklog webhook bridge.")
    parser.add_argument("--host", default=env_str("BRIDGE_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(env_str("BRIDGE_PORT", "8080") or 8080))
    args = parser.parse_args(argv)

    config = BridgeConfig.from_env()
    setup_logging(config.log_level)
    logger.info("Starting worklog bridge on %s:%s", args.host, args.port)
    uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
