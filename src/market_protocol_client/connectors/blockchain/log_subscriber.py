"""Contract log subscriptions using eth_subscribe over a websocket RPC connection."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from websockets import connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from ...config.constants import WS_CONNECT_ATTEMPTS, WS_CONNECT_BACKOFF_SECONDS
from ...core.exceptions import ProviderError
from ...utils.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from websockets.asyncio.client import ClientConnection

    LogCallback = Callable[[dict[str, Any]], Awaitable[None] | None]
    ErrorCallback = Callable[[Exception], None]

logger = get_logger(__name__)

REQUEST_TIMEOUT_SECONDS = 30


@dataclass
class _Subscription:
    callback: LogCallback
    on_error: ErrorCallback | None = None


class LogSubscriber:
    """Multiplexes ``eth_subscribe("logs")`` subscriptions over one websocket connection.

    Each subscription gets the raw log entries matching its filter. When the connection
    drops, every open subscription's ``on_error`` callback receives a ``ProviderError`` and
    the subscription is discarded; callers re-subscribe on a new connection if they need to.
    """

    def __init__(
        self,
        ws_url: str,
        connect_attempts: int = WS_CONNECT_ATTEMPTS,
        connect_backoff: float = WS_CONNECT_BACKOFF_SECONDS,
        request_timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        """Initialize log subscriber.

        Args:
            ws_url: WebSocket RPC URL (e.g., ws://localhost:9545)
            connect_attempts: Attempts to establish the connection before giving up
            connect_backoff: Initial delay between connection attempts in seconds
            request_timeout: Seconds to wait for a JSON-RPC response
        """
        self.ws_url = ws_url
        self.connect_attempts = connect_attempts
        self.connect_backoff = connect_backoff
        self.request_timeout = request_timeout

        self.ws: ClientConnection | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._request_id = 0
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._subscriptions: dict[str, _Subscription] = {}
        self._connect_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        if self.ws is None or self._listen_task is None:
            return False
        return not self._listen_task.done()

    async def connect(self) -> None:
        """Open the websocket connection if it is not already open.

        Raises:
            ProviderError: If the connection cannot be established
        """
        async with self._connect_lock:
            if self.is_connected:
                return

            logger.info("Connecting log subscriber", url=self.ws_url)
            try:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self.connect_attempts),
                    wait=wait_exponential(multiplier=self.connect_backoff, max=30),
                    retry=retry_if_exception_type((OSError, TimeoutError, InvalidHandshake)),
                    reraise=True,
                ):
                    with attempt:
                        self.ws = await connect(self.ws_url)
            except (OSError, TimeoutError, InvalidHandshake, InvalidURI) as e:
                raise ProviderError(f"Failed to connect to {self.ws_url}: {e}") from e

            self._listen_task = asyncio.create_task(self._listen_loop())

    async def subscribe(
        self,
        address: str,
        topics: list[Any] | None,
        callback: LogCallback,
        on_error: ErrorCallback | None = None,
    ) -> str:
        """Subscribe to logs emitted by ``address`` matching ``topics``.

        Args:
            address: Emitting contract address
            topics: eth_subscribe topic filter (a nested list expresses OR at a position)
            callback: Called with each raw log entry (sync or async)
            on_error: Called once if the subscription dies with the connection

        Returns:
            str: Subscription id

        Raises:
            ProviderError: If the node rejects the subscription or cannot be reached
        """
        await self.connect()

        log_filter: dict[str, Any] = {"address": address}
        if topics:
            log_filter["topics"] = topics

        subscription_id = await self._request("eth_subscribe", ["logs", log_filter])
        self._subscriptions[subscription_id] = _Subscription(callback=callback, on_error=on_error)

        logger.debug("Log subscription created", subscription_id=subscription_id, address=address)
        return subscription_id

    async def unsubscribe(self, subscription_id: str) -> None:
        """Cancel a subscription. Unknown ids and closed connections are ignored."""
        if self._subscriptions.pop(subscription_id, None) is None:
            return
        if not self.is_connected:
            return

        try:
            await self._request("eth_unsubscribe", [subscription_id])
            logger.debug("Log subscription cancelled", subscription_id=subscription_id)
        except ProviderError as e:
            # The node drops the subscription with the connection anyway
            logger.warning(
                "Failed to cancel log subscription",
                subscription_id=subscription_id,
                error=str(e),
            )

    async def close(self) -> None:
        """Close the connection and fail every open subscription."""
        if self._listen_task is not None:
            self._listen_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listen_task
            self._listen_task = None

        if self.ws is not None:
            with contextlib.suppress(ConnectionClosed, OSError):
                await self.ws.close()
            self.ws = None

        self._fail_all(ProviderError("Log subscriber closed"))
        logger.info("Log subscriber closed", url=self.ws_url)

    async def _request(self, method: str, params: list[Any]) -> Any:
        if self.ws is None:
            raise ProviderError("Log subscriber is not connected")

        self._request_id += 1
        request_id = self._request_id
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        request = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        try:
            await self.ws.send(json.dumps(request))
            response = await asyncio.wait_for(future, timeout=self.request_timeout)
        except ConnectionClosed as e:
            raise ProviderError(f"Connection closed during {method}: {e}") from e
        except asyncio.TimeoutError as e:
            raise ProviderError(f"No response to {method} within {self.request_timeout}s") from e
        finally:
            self._pending.pop(request_id, None)

        if "error" in response:
            raise ProviderError(f"{method} failed: {response['error']}")
        return response.get("result")

    async def _listen_loop(self) -> None:
        """Route responses to pending requests and notifications to subscriptions."""
        try:
            async for raw_message in self.ws:
                message = raw_message if isinstance(raw_message, str) else raw_message.decode()
                await self._process_message(message)
        except ConnectionClosed as e:
            logger.warning("Log subscriber connection closed", error=str(e), url=self.ws_url)
            self.ws = None
            self._fail_all(ProviderError(f"Websocket connection closed: {e}"))
            return

        logger.warning("Log subscriber connection ended", url=self.ws_url)
        self.ws = None
        self._fail_all(ProviderError("Websocket connection ended"))

    async def _process_message(self, message: str) -> None:
        """Process one incoming JSON-RPC message.

        Args:
            message: JSON-RPC response or subscription notification
        """
        try:
            data = json.loads(message)
        except json.JSONDecodeError as e:
            logger.error("Malformed message from node", error=str(e), message=message)
            return

        request_id = data.get("id")
        if request_id is not None:
            future = self._pending.get(request_id)
            if future is not None and not future.done():
                future.set_result(data)
            return

        if data.get("method") != "eth_subscription":
            return

        params = data.get("params") or {}
        subscription = self._subscriptions.get(params.get("subscription"))
        if subscription is None:
            logger.debug("Log for unknown subscription", subscription_id=params.get("subscription"))
            return

        try:
            result = subscription.callback(params.get("result"))
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "Log callback failed",
                subscription_id=params.get("subscription"),
                error=str(e),
                exc_info=True,
            )

    def _fail_all(self, error: ProviderError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        for subscription in subscriptions:
            if subscription.on_error is not None:
                subscription.on_error(error)
