"""
Background workers module.

In-process import dispatcher that drains the durable import queue.

Dependencies: asyncio, customer_sync.application, customer_sync.boundary
System role: Background job processing
"""

from customer_sync.workers.dispatcher import Dispatcher, default_worker_id

__all__ = ["Dispatcher", "default_worker_id"]
