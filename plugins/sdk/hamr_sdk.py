#!/usr/bin/env python3
"""
Hamr Socket Plugin SDK

Connects a plugin to the hamr daemon and routes its JSON-RPC 2.0 requests
(length-prefixed JSON over a Unix socket) to plain Python handlers.

Example usage:

    from hamr_sdk import HamrPlugin

    plugin = HamrPlugin(id="my-plugin", name="My Plugin", icon="extension")

    @plugin.on_search
    def handle_search(query: str, context: str | None) -> dict:
        return HamrPlugin.results([{"id": "1", "name": "Result"}])

    @plugin.on_action
    def handle_action(item_id: str, action: str | None, context: str | None) -> dict:
        return HamrPlugin.copy_and_close("Hello")

    plugin.run()

Handlers may be sync or async. Requests are handled one at a time, in order.
"""

import asyncio
import inspect
import json
import logging
import os
import signal
import struct
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

HEADER = struct.Struct(">I")


def get_socket_path() -> str:
    """Get the hamr daemon socket path.

    Prefers the dev socket (hamr-dev.sock) when it exists so plugins work
    against both dev and production daemons.
    """
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR", "/tmp")
    dev_socket = os.path.join(runtime_dir, "hamr-dev.sock")
    if os.path.exists(dev_socket):
        return dev_socket
    return os.path.join(runtime_dir, "hamr.sock")


def is_debug_enabled() -> bool:
    """Check if debug logging is enabled via environment variable."""
    return os.environ.get("HAMR_PLUGIN_DEBUG", "").lower() in ("1", "true", "yes")


def encode_message(message: dict) -> bytes:
    data = json.dumps(message).encode("utf-8")
    return HEADER.pack(len(data)) + data


@dataclass
class PluginManifest:
    """Plugin manifest for registration."""

    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    priority: int = 0

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "priority": self.priority,
        }
        if self.description:
            result["description"] = self.description
        if self.icon:
            result["icon"] = self.icon
        return result


class HamrPlugin:
    """
    Socket-based hamr plugin.

    Handles connection, registration, and message routing.
    """

    def __init__(
        self,
        id: str,
        name: str,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        priority: int = 0,
        socket_path: Optional[str] = None,
    ):
        self.manifest = PluginManifest(
            id=id,
            name=name,
            description=description,
            icon=icon,
            priority=priority,
        )
        self.socket_path = socket_path or get_socket_path()

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._request_id = 0
        self._shutdown = False

        self._on_initial: Optional[Callable] = None
        self._on_search: Optional[Callable] = None
        self._on_action: Optional[Callable] = None

    def on_initial(self, handler: Callable):
        """Decorator for the handler run when the plugin is opened."""
        self._on_initial = handler
        return handler

    def on_search(self, handler: Callable):
        """Decorator for search request handler."""
        self._on_search = handler
        return handler

    def on_action(self, handler: Callable):
        """Decorator for action request handler."""
        self._on_action = handler
        return handler

    # ========== Response Builders ==========

    @staticmethod
    def results(
        items: list[dict],
        *,
        input_mode: Optional[str] = None,
        placeholder: Optional[str] = None,
        clear_input: bool = False,
    ) -> dict:
        """Build a results response."""
        response: dict[str, Any] = {"type": "results", "results": items}
        if input_mode:
            response["inputMode"] = input_mode
        if placeholder:
            response["placeholder"] = placeholder
        if clear_input:
            response["clearInput"] = clear_input
        return response

    @staticmethod
    def close() -> dict:
        """Build a close response."""
        return {"type": "execute", "close": True}

    @staticmethod
    def copy_and_close(text: str) -> dict:
        """Build a copy-and-close response."""
        return {"type": "execute", "copy": text, "close": True}

    @staticmethod
    def error(message: str, *, details: str | None = None) -> dict:
        """Build an error response."""
        result = {"type": "error", "message": message}
        if details:
            result["details"] = details
        return result

    # ========== Transport ==========

    async def connect(self) -> None:
        """Connect to the hamr daemon socket."""
        logger.debug("Connecting to %s", self.socket_path)
        self._reader, self._writer = await asyncio.open_unix_connection(
            self.socket_path
        )

    async def register(self) -> dict:
        """Register this plugin with the daemon."""
        self._request_id += 1
        await self._write_message(
            {
                "jsonrpc": "2.0",
                "method": "register",
                "params": {
                    "role": {
                        "type": "plugin",
                        "id": self.manifest.id,
                        "manifest": self.manifest.to_dict(),
                    }
                },
                "id": self._request_id,
            }
        )

        # Read the reply directly, the message loop has not started yet
        response = await self._read_message()
        if response is None:
            raise RuntimeError("No response to register")
        if "error" in response:
            raise RuntimeError(response["error"].get("message", "Unknown error"))
        logger.debug("Registered as %s", self.manifest.id)
        return response.get("result", {})

    async def _write_message(self, message: dict) -> None:
        if not self._writer:
            raise RuntimeError("Not connected")
        self._writer.write(encode_message(message))
        await self._writer.drain()

    async def _read_message(self) -> Optional[dict]:
        if not self._reader:
            return None
        try:
            header = await self._reader.readexactly(HEADER.size)
            (length,) = HEADER.unpack(header)
            data = await self._reader.readexactly(length)
            return json.loads(data.decode("utf-8"))
        except asyncio.IncompleteReadError:
            return None
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Dropping unreadable message: %s", e)
            return {}

    # ========== Dispatch ==========

    async def dispatch(self, method: str, params: dict) -> Any:
        """Route one request to its handler and return the handler's result."""
        if method == "initial" and self._on_initial:
            return await self._call_handler(self._on_initial, params)
        if method == "search" and self._on_search:
            return await self._call_handler(
                self._on_search, params.get("query", ""), params.get("context")
            )
        if method == "action" and self._on_action:
            return await self._call_handler(
                self._on_action,
                params.get("item_id", ""),
                params.get("action"),
                params.get("context"),
            )
        return None

    async def _handle_message(self, message: dict) -> None:
        method = message.get("method", "")
        request_id = message.get("id")
        # method names only; params can carry what the user typed
        logger.debug("Received %s (id=%s)", method or "<reply>", request_id)

        result = await self.dispatch(method, message.get("params") or {})

        if request_id is not None and method:
            await self._write_message(
                {"jsonrpc": "2.0", "result": result or {}, "id": request_id}
            )

    async def _call_handler(self, handler: Callable, *args) -> Any:
        """Call a sync or async handler with as many args as it accepts."""
        try:
            max_params = len(inspect.signature(handler).parameters)
            args = args[:max_params]
        except (ValueError, TypeError):
            pass

        result = handler(*args)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    async def _message_loop(self) -> None:
        while not self._shutdown:
            message = await self._read_message()
            if message is None:
                logger.debug("Connection closed")
                break
            if not message:
                continue
            try:
                await self._handle_message(message)
            except Exception:
                logger.exception("Handler error")

    async def _run_async(self) -> None:
        loop = asyncio.get_running_loop()

        def shutdown():
            self._shutdown = True

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown)

        try:
            await self.connect()
            await self.register()
            await self._message_loop()
        except (OSError, RuntimeError) as e:
            logger.error("Lost connection to hamr: %s", e)
        finally:
            if self._writer:
                self._writer.close()
                await self._writer.wait_closed()

    def run(self) -> None:
        """Run the plugin (blocking)."""
        asyncio.run(self._run_async())
