"""Sui JSON-RPC implementation of ``ChainReader`` built on aiohttp."""

from __future__ import annotations

import asyncio
import base64
import itertools
from collections.abc import Sequence
from types import TracebackType
from typing import Any

import aiohttp
import base58

from defi_flow.chain.bcs import (
    CallInput,
    OwnedObjectInput,
    SharedObjectInput,
    encode_move_call_kind,
    normalize_address,
    pure_u64,
)
from defi_flow.chain.protocols import InspectResult, MoveArgument, ObjectArgument, U64Argument
from defi_flow.config.constants import DEFAULT_HTTP_TIMEOUT, DEFAULT_RPC_URL
from defi_flow.errors import ExternalReadFailedError
from defi_flow.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="chain")


class SuiRpcReader:
    """Read balances and inspect view functions over Sui JSON-RPC.

    Use as an async context manager to share one HTTP session across calls;
    otherwise each request opens and closes its own session. No retries are
    attempted: every transport or RPC failure surfaces as
    ``ExternalReadFailedError``.
    """

    def __init__(
        self,
        url: str = DEFAULT_RPC_URL,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = False
        self._ids = itertools.count(1)

    async def __aenter__(self) -> SuiRpcReader:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._owns_session = False

    async def _post(self, session: aiohttp.ClientSession, payload: dict[str, Any]) -> Any:
        async with session.post(self.url, json=payload, timeout=self.timeout) as response:
            if response.status != 200:
                text = await response.text()
                raise ExternalReadFailedError(
                    f"RPC {payload['method']} returned HTTP {response.status}: {text[:200]}",
                    method=payload["method"],
                )
            return await response.json()

    async def call(self, method: str, params: list[Any]) -> Any:
        """Issue one JSON-RPC request and return its ``result``."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug(f"RPC {method}", method=method)
        try:
            if self._session is not None:
                body = await self._post(self._session, payload)
            else:
                async with aiohttp.ClientSession(timeout=self.timeout) as session:
                    body = await self._post(session, payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ExternalReadFailedError(
                f"RPC {method} failed: {exc}", method=method, original_error=exc
            ) from exc

        if not isinstance(body, dict):
            raise ExternalReadFailedError(f"RPC {method} returned a malformed body", method=method)
        error = body.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ExternalReadFailedError(f"RPC {method} error: {message}", method=method)
        return body.get("result")

    async def get_balance(self, owner: str, coin_type: str) -> int:
        result = await self.call("suix_getBalance", [owner, coin_type])
        try:
            return int(result["totalBalance"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ExternalReadFailedError(
                f"Unexpected balance payload for {coin_type}", method="suix_getBalance"
            ) from exc

    async def resolve_object(self, object_id: str) -> CallInput:
        """Look up an object's reference for use as a call input."""
        result = await self.call("sui_getObject", [object_id, {"showOwner": True}])
        data = (result or {}).get("data")
        if not data:
            reason = (result or {}).get("error", "not found")
            raise ExternalReadFailedError(
                f"Object {object_id} unavailable: {reason}", method="sui_getObject"
            )

        owner = data.get("owner")
        try:
            if isinstance(owner, dict) and "Shared" in owner:
                return SharedObjectInput(
                    object_id=normalize_address(data["objectId"]),
                    initial_shared_version=int(owner["Shared"]["initial_shared_version"]),
                )
            return OwnedObjectInput(
                object_id=normalize_address(data["objectId"]),
                version=int(data["version"]),
                digest=base58.b58decode(data["digest"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ExternalReadFailedError(
                f"Unexpected object payload for {object_id}", method="sui_getObject"
            ) from exc

    async def _to_inputs(self, arguments: Sequence[MoveArgument]) -> list[CallInput]:
        inputs: list[CallInput] = []
        for argument in arguments:
            if isinstance(argument, ObjectArgument):
                inputs.append(await self.resolve_object(argument.object_id))
            elif isinstance(argument, U64Argument):
                inputs.append(pure_u64(argument.value))
            else:
                raise TypeError(f"Unsupported move argument: {argument!r}")
        return inputs

    async def inspect_move_call(
        self, target: str, arguments: Sequence[MoveArgument], *, sender: str
    ) -> InspectResult:
        inputs = await self._to_inputs(arguments)
        tx_kind = base64.b64encode(encode_move_call_kind(target, inputs)).decode("ascii")
        result = await self.call("sui_devInspectTransactionBlock", [sender, tx_kind, None, None])
        return parse_inspect_result(result)


def parse_inspect_result(result: Any) -> InspectResult:
    """Convert a ``sui_devInspectTransactionBlock`` result into ``InspectResult``."""
    if not isinstance(result, dict):
        return InspectResult(error="malformed devInspect result")

    commands: list[tuple[bytes, ...]] = []
    for command in result.get("results") or []:
        values = []
        for entry in command.get("returnValues") or []:
            raw = entry[0] if entry else []
            values.append(bytes(raw))
        commands.append(tuple(values))
    return InspectResult(error=result.get("error"), results=tuple(commands))


__all__ = ["SuiRpcReader", "parse_inspect_result"]
