#!/usr/bin/env python3
"""
eventalert - server event announcer

Connects to NATS and runs the alert plugin, which announces restarts and
shutdowns in game chat and counts down to them on every player's screen.

This file does ONE thing: coordinate startup and shutdown.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import nats
from nats.aio.client import Client as NATS

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from common.config import get_config
from plugins.alert.plugin import AlertPlugin


logger = logging.getLogger(__name__)


class EventAlert:
    """
    Runner for the alert plugin.

    Responsibilities:
    1. Connect to NATS
    2. Start the alert plugin
    3. Coordinate graceful shutdown
    """

    def __init__(self, config_path: str = "config.yaml"):
        self.config_dict, self.params = get_config(config_path)
        self.nc: Optional[NATS] = None
        self.plugin: Optional[AlertPlugin] = None

    async def start(self):
        """Start all components in correct order"""
        try:
            logger.info(f"Connecting to NATS at {self.params['nats_url']}...")
            self.nc = await nats.connect(
                servers=[self.params['nats_url']],
                name="eventalert",
            )

            logger.info("Starting alert plugin...")
            self.plugin = AlertPlugin(self.nc, self.params['plugin_config'])
            await self.plugin.initialize()

            logger.info("✅ eventalert started")

        except Exception as e:
            logger.error(f"Failed to start eventalert: {e}", exc_info=True)
            await self.stop()
            raise

    async def stop(self):
        """Stop all components in reverse order"""
        logger.info("Shutting down eventalert...")

        if self.plugin:
            await self.plugin.shutdown()
            self.plugin = None
        if self.nc and self.nc.is_connected:
            await self.nc.drain()

        logger.info("✅ eventalert stopped")


async def main(config_path: str):
    """Entry point"""
    app = EventAlert(config_path)

    try:
        await app.start()
        # Run until interrupted
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Received shutdown signal")
    finally:
        await app.stop()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print('usage: %s <config file>' % sys.argv[0], file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(main(sys.argv[1]))
    except KeyboardInterrupt:
        pass
