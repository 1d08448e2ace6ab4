"""
ASGI lifespan handling.

On shutdown every live messaging connection is asked to close, so the
presence registry is emptied by the sessions themselves instead of
disappearing with the process.
"""
import logging

logger = logging.getLogger("messaging.lifespan")


class LifespanApp:
    def __init__(self, service):
        self.service = service

    async def __call__(self, scope, receive, send):
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info("Messaging service started")
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.service.shutdown()
                except Exception as exc:
                    logger.exception("Messaging shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                else:
                    await send({"type": "lifespan.shutdown.complete"})
                return
