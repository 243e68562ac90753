"""Ontology JSON-RPC client for read-only WASM contract invocations."""

from __future__ import annotations

import secrets
from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from beartype import beartype
from httpx import Client, HTTPError

from reserve_snapshot.chain.codec import ZERO_ADDRESS, Address, ByteWriter, encode_wasm_param
from reserve_snapshot.utils.config import (
    DEFAULT_RPC_TIMEOUT,
    PRE_EXEC_SUCCESS_STATE,
    WASM_INVOKE_TX_TYPE,
)
from reserve_snapshot.utils.errors import DecodeError, InvocationError
from reserve_snapshot.utils.logger import get_logger

logger = get_logger(__name__)

WasmParam = str | bytes | bool | int | Address


@runtime_checkable
class ChainClient(Protocol):
    """Anything able to run a read-only contract call and return its raw result."""

    def pre_exec_invoke(
        self,
        contract: Address,
        method: str,
        params: Sequence[WasmParam] = (),
    ) -> bytes: ...


@beartype
def build_wasm_invoke_transaction(
    contract: Address,
    method: str,
    params: Sequence[object] = (),
    nonce: int = 0,
) -> bytes:
    """
    Serialize an unsigned WASM invoke transaction for pre-execution.

    Args:
        contract: Target contract address
        method: Contract entry point name
        params: Entry point arguments
        nonce: Transaction nonce (u32)

    Returns:
        Serialized transaction bytes
    """
    args = ByteWriter().write_string(method)
    for param in params:
        encode_wasm_param(args, param)

    code = ByteWriter().write_address(contract).write_var_bytes(args.to_bytes())

    tx = ByteWriter()
    tx.write_byte(0)  # version
    tx.write_byte(WASM_INVOKE_TX_TYPE)
    tx.write_uint32(nonce)
    tx.write_uint64(0)  # gas price
    tx.write_uint64(0)  # gas limit
    tx.write_address(ZERO_ADDRESS)  # payer
    tx.write_var_bytes(code.to_bytes())
    tx.write_var_uint(0)  # attributes
    tx.write_var_uint(0)  # signatures
    return tx.to_bytes()


class OntologyRpcClient:
    """Client for an Ontology node's JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_address: str,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        http_client: Client | None = None,
        nonce_factory: Callable[[], int] | None = None,
    ) -> None:
        """
        Initialize the RPC client.

        Args:
            rpc_address: JSON-RPC endpoint URL
            timeout: Request timeout in seconds
            http_client: Optional preconfigured httpx client (creates new if None)
            nonce_factory: Optional nonce source (random u32 if None)
        """
        self.rpc_address = rpc_address
        self.client = http_client if http_client is not None else Client(timeout=timeout)
        self.nonce_factory = nonce_factory or (lambda: secrets.randbits(32))
        self._request_id = 0

    def _call(self, method: str, params: list[Any]) -> Any:
        """
        Send one JSON-RPC request and return its ``result`` field.

        Raises:
            InvocationError: On transport, HTTP, JSON or node-reported errors
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }
        try:
            response = self.client.post(self.rpc_address, json=payload)
            response.raise_for_status()
            body = response.json()
        except HTTPError as e:
            raise InvocationError(f"{method}: request to {self.rpc_address} failed: {e}") from e
        except ValueError as e:
            raise InvocationError(f"{method}: invalid JSON response: {e}") from e

        if not isinstance(body, dict):
            raise InvocationError(f"{method}: unexpected response body: {body!r}")

        error_code = body.get("error", 0)
        if error_code != 0:
            raise InvocationError(
                f"{method}: node returned error {error_code} ({body.get('desc')}): {body.get('result')}",
            )
        return body.get("result")

    @beartype
    def get_block_count(self) -> int:
        """
        Get the current block count of the node.

        Returns:
            Number of blocks in the chain
        """
        result = self._call("getblockcount", [])
        if isinstance(result, bool) or not isinstance(result, int):
            raise InvocationError(f"getblockcount: unexpected result {result!r}")
        return result

    @beartype
    def pre_exec_invoke(
        self,
        contract: Address,
        method: str,
        params: Sequence[object] = (),
    ) -> bytes:
        """
        Pre-execute a WASM contract call without committing a transaction.

        Args:
            contract: Target contract address
            method: Contract entry point name
            params: Entry point arguments

        Returns:
            Raw result bytes returned by the contract

        Raises:
            InvocationError: If the call fails or the VM reports a failed state
            DecodeError: If the returned result is not valid hex
        """
        tx = build_wasm_invoke_transaction(contract, method, params, nonce=self.nonce_factory())
        logger.debug(f"Pre-exec {method} on {contract}")
        result = self._call("sendrawtransaction", [tx.hex(), 1])

        if not isinstance(result, dict):
            raise InvocationError(f"{method} on {contract}: unexpected pre-exec result {result!r}")
        state = result.get("State")
        if state != PRE_EXEC_SUCCESS_STATE:
            raise InvocationError(
                f"{method} on {contract}: execution failed with state {state}: {result.get('Result')}",
            )

        raw = result.get("Result")
        if not isinstance(raw, str):
            raise DecodeError(f"{method} on {contract}: result is not a hex string: {raw!r}")
        try:
            return bytes.fromhex(raw)
        except ValueError as e:
            raise DecodeError(f"{method} on {contract}: invalid result hex: {e}") from e

    def close(self) -> None:
        """Close the underlying HTTP client."""
        logger.debug("Closing RPC client connection")
        self.client.close()

    def __enter__(self) -> OntologyRpcClient:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
