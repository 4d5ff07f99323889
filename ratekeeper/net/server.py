from __future__ import annotations

import asyncio

from ..domain.errors import StartupError
from ..domain.window import SlidingWindowKeeper, format_delay


class DelayServer:
    """TCP acceptor: every connection gets one delay string, then EOF.

    Notes:
    - Nothing is read from the client; the connection itself is the request.
    - The decision is taken before any await in the handler. asyncio starts the
      handler tasks in accept order, so decisions follow acceptance order.
    - The window lock is released before writing, and a failed write never
      undoes the decision.
    """

    def __init__(
        self,
        *,
        keeper: SlidingWindowKeeper,
        host: str,
        port: int,
        logger,
        backlog: int = 100,
    ) -> None:
        self._keeper = keeper
        self._host = host
        self._port = int(port)
        self._logger = logger
        self._backlog = backlog

        self._server: asyncio.Server | None = None

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        """Bound port; differs from the requested one when started with port 0."""

        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._port

    async def start(self) -> None:
        if self._server is not None:
            return

        try:
            self._server = await asyncio.start_server(
                self._handle_connection,
                host=self._host,
                port=self._port,
                backlog=self._backlog,
            )
        except OSError as e:
            raise StartupError(
                code="BIND_FAILED",
                message=f"cannot listen on {self._host}:{self._port}: {e.strerror or e}",
                details={"host": self._host, "port": self._port, "errno": e.errno},
            ) from e

        self._logger.info(
            "acceptor.start",
            bind_ip=self._host,
            bind_port=self.port,
        )

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is None:
            return

        try:
            self._logger.info(
                "acceptor.stop",
                bind_ip=self._host,
                bind_port=self.port,
            )
        finally:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        delay_s = self._keeper.record_and_decide()
        payload = format_delay(delay_s)
        peer = writer.get_extra_info("peername")

        self._logger.info(
            "conn.decided",
            peer=str(peer) if peer is not None else None,
            delay_s=payload,
            overflow=self._keeper.overflow,
        )

        try:
            writer.write(payload.encode("utf-8"))
            await writer.drain()
        except (ConnectionError, OSError) as e:
            self._logger.info("conn.write_failed", peer=str(peer) if peer is not None else None, error=str(e))
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                # Peer already gone; nothing left to deliver.
                pass
