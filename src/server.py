"""Protean Engine runner for the logistics domain.

With the production overlay (``event_processing = "async"``) projectors and
event handlers run here instead of inside the request's unit of work:
- OutboxProcessor: polls the outbox table, publishes events to Redis Streams
- StreamSubscriptions: reads Redis Streams, invokes projectors and event handlers

Usage:
    python src/server.py
"""

import asyncio

from protean.server.engine import Engine


async def run():
    from logistics.domain import logistics

    logistics.init()
    await Engine(logistics).run()


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
