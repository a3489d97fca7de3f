from __future__ import annotations

import base64
from typing import Any

import aiohttp
import base58
import pytest

from defi_flow.chain import SuiRpcReader, parse_inspect_result
from defi_flow.chain.bcs import OwnedObjectInput, SharedObjectInput, encode_call_input
from defi_flow.chain.protocols import ObjectArgument, U64Argument
from defi_flow.errors import ExternalReadFailedError

RPC_URL = "https://rpc.example"


class FakeResponse:
    def __init__(self, status: int, body: Any) -> None:
        self.status = status
        self._body = body

    async def json(self) -> Any:
        return self._body

    async def text(self) -> str:
        return str(self._body)

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


class FakeSession:
    """Records JSON-RPC payloads and replies from a queue keyed by method."""

    def __init__(self, replies: dict[str, list[Any]]) -> None:
        self.replies = replies
        self.requests: list[dict[str, Any]] = []

    def post(self, url: str, *, json: dict[str, Any], timeout: Any) -> FakeResponse:
        self.requests.append(json)
        reply = self.replies[json["method"]].pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, FakeResponse):
            return reply
        return FakeResponse(200, reply)


def _reader(replies: dict[str, list[Any]]) -> tuple[SuiRpcReader, FakeSession]:
    session = FakeSession(replies)
    return SuiRpcReader(RPC_URL, session=session), session


@pytest.mark.asyncio
async def test_get_balance() -> None:
    reader, session = _reader(
        {"suix_getBalance": [{"jsonrpc": "2.0", "result": {"totalBalance": "1500"}}]}
    )

    assert await reader.get_balance("0xabc", "0x2::sui::SUI") == 1500
    request = session.requests[0]
    assert request["method"] == "suix_getBalance"
    assert request["params"] == ["0xabc", "0x2::sui::SUI"]
    assert request["jsonrpc"] == "2.0"


@pytest.mark.asyncio
async def test_rpc_error_is_raised() -> None:
    reader, _ = _reader(
        {"suix_getBalance": [{"error": {"code": -32602, "message": "Invalid params"}}]}
    )

    with pytest.raises(ExternalReadFailedError, match="Invalid params") as exc_info:
        await reader.get_balance("0xabc", "0x2::sui::SUI")

    assert exc_info.value.context["method"] == "suix_getBalance"


@pytest.mark.asyncio
async def test_http_error_is_raised() -> None:
    reader, _ = _reader({"suix_getBalance": [FakeResponse(503, "unavailable")]})

    with pytest.raises(ExternalReadFailedError, match="HTTP 503"):
        await reader.get_balance("0xabc", "0x2::sui::SUI")


@pytest.mark.asyncio
async def test_transport_error_is_wrapped() -> None:
    reader, _ = _reader({"suix_getBalance": [aiohttp.ClientConnectionError("refused")]})

    with pytest.raises(ExternalReadFailedError, match="refused") as exc_info:
        await reader.get_balance("0xabc", "0x2::sui::SUI")

    assert isinstance(exc_info.value.original_error, aiohttp.ClientError)


@pytest.mark.asyncio
async def test_malformed_balance_payload() -> None:
    reader, _ = _reader({"suix_getBalance": [{"result": {"coinType": "x"}}]})

    with pytest.raises(ExternalReadFailedError, match="Unexpected balance payload"):
        await reader.get_balance("0xabc", "0x2::sui::SUI")


@pytest.mark.asyncio
async def test_resolve_shared_and_owned_objects() -> None:
    digest = bytes(range(32))
    reader, _ = _reader(
        {
            "sui_getObject": [
                {
                    "result": {
                        "data": {
                            "objectId": "0x6",
                            "version": "12",
                            "digest": "ignored",
                            "owner": {"Shared": {"initial_shared_version": 1}},
                        }
                    }
                },
                {
                    "result": {
                        "data": {
                            "objectId": "0xabc",
                            "version": "7",
                            "digest": base58.b58encode(digest).decode(),
                            "owner": {"AddressOwner": "0x1"},
                        }
                    }
                },
                {"result": {"error": {"code": "notExists"}}},
            ]
        }
    )

    shared = await reader.resolve_object("0x6")
    owned = await reader.resolve_object("0xabc")

    assert shared == SharedObjectInput(object_id="0x" + "0" * 63 + "6", initial_shared_version=1)
    assert isinstance(owned, OwnedObjectInput)
    assert owned.version == 7
    assert owned.digest == digest
    with pytest.raises(ExternalReadFailedError, match="unavailable"):
        await reader.resolve_object("0xdead")


@pytest.mark.asyncio
async def test_inspect_move_call_encodes_transaction_kind() -> None:
    reader, session = _reader(
        {
            "sui_getObject": [
                {
                    "result": {
                        "data": {
                            "objectId": "0x6",
                            "version": "3",
                            "digest": "x",
                            "owner": {"Shared": {"initial_shared_version": 1}},
                        }
                    }
                }
            ],
            "sui_devInspectTransactionBlock": [
                {"result": {"results": [{"returnValues": [[[232, 3, 0, 0, 0, 0, 0, 0], "u64"]]}]}}
            ],
        }
    )

    result = await reader.inspect_move_call(
        "0x2::clock::timestamp_ms",
        [ObjectArgument("0x6"), U64Argument(5)],
        sender="0x" + "0" * 64,
    )

    assert result.error is None
    assert result.results == ((bytes([232, 3, 0, 0, 0, 0, 0, 0]),),)

    sender, tx_kind, gas_price, epoch = session.requests[-1]["params"]
    assert sender == "0x" + "0" * 64
    assert gas_price is None and epoch is None
    decoded = base64.b64decode(tx_kind)
    shared = SharedObjectInput(object_id="0x6", initial_shared_version=1)
    assert decoded.startswith(b"\x00\x02" + encode_call_input(shared))


@pytest.mark.asyncio
async def test_context_manager_owns_its_session(monkeypatch) -> None:
    closed: list[bool] = []

    class ClosingSession(FakeSession):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__({"suix_getBalance": [{"result": {"totalBalance": "1"}}]})

        async def close(self) -> None:
            closed.append(True)

    monkeypatch.setattr(aiohttp, "ClientSession", ClosingSession)

    async with SuiRpcReader(RPC_URL) as reader:
        assert await reader.get_balance("0x1", "0x2::sui::SUI") == 1

    assert closed == [True]


def test_parse_inspect_result_keeps_execution_error() -> None:
    result = parse_inspect_result(
        {"error": "MoveAbort(0x2::pool, 3)", "results": None, "effects": {}}
    )

    assert result.error == "MoveAbort(0x2::pool, 3)"
    assert result.results == ()


def test_parse_inspect_result_with_empty_return_values() -> None:
    result = parse_inspect_result({"results": [{"returnValues": []}, {}]})

    assert result.results == ((), ())


def test_parse_inspect_result_rejects_malformed_payload() -> None:
    assert parse_inspect_result(None).error == "malformed devInspect result"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data",
    [
        {"version": "7", "digest": "11111111111111111111111111111111"},
        {"objectId": "0xabc", "digest": "11111111111111111111111111111111"},
        {"objectId": "0xabc", "version": "7"},
        {"objectId": "0xabc", "version": "7", "digest": "not base58 0OIl"},
        {"objectId": "0x6", "owner": {"Shared": {}}},
        {"objectId": "not-hex", "version": "1", "digest": "1111"},
    ],
)
async def test_resolve_object_rejects_malformed_payloads(data) -> None:
    reader, _ = _reader({"sui_getObject": [{"result": {"data": data}}]})

    with pytest.raises(ExternalReadFailedError, match="Unexpected object payload for 0xabc"):
        await reader.resolve_object("0xabc")
