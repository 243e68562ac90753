"""Binary encoding helpers for Ontology contract buffers and transactions."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from reserve_snapshot.utils.errors import DecodeError

ADDRESS_LENGTH = 20
I128_LENGTH = 16

I128_MIN = -(1 << 127)
I128_MAX = (1 << 127) - 1


@dataclass(frozen=True)
class Address:
    """20-byte Ontology contract address."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != ADDRESS_LENGTH:
            raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.raw)}")

    @classmethod
    def from_hex(cls, value: str) -> Address:
        """
        Parse an address from its Ontology hex form.

        The hex form is the byte-reversed encoding of the raw address, the
        same representation the node and SDK tooling print. An optional
        ``0x`` prefix is accepted.

        Args:
            value: 40 hex characters, optionally prefixed with 0x

        Returns:
            Parsed Address

        Raises:
            ValueError: If the value is not valid hex or has the wrong length
        """
        text = value.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            data = bytes.fromhex(text)
        except ValueError as e:
            raise ValueError(f"Invalid address hex: {value!r}") from e
        if len(data) != ADDRESS_LENGTH:
            raise ValueError(f"Invalid address length: {value!r}")
        return cls(data[::-1])

    def to_hex(self) -> str:
        """Return the canonical (lowercase, reversed, unprefixed) hex form."""
        return self.raw[::-1].hex()

    def __str__(self) -> str:
        return self.to_hex()


ZERO_ADDRESS = Address(bytes(ADDRESS_LENGTH))


class ByteReader:
    """Sequential reader over a result buffer."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def next_bytes(self, size: int) -> bytes:
        """Read exactly ``size`` bytes or raise DecodeError."""
        if size < 0 or self.remaining < size:
            raise DecodeError(
                f"Unexpected end of buffer: need {size} bytes at offset {self.offset}, "
                f"{self.remaining} left",
            )
        chunk = self.data[self.offset : self.offset + size]
        self.offset += size
        return chunk

    def next_byte(self) -> int:
        return self.next_bytes(1)[0]

    def next_bool(self) -> bool:
        value = self.next_byte()
        if value not in (0, 1):
            raise DecodeError(f"Invalid bool byte: {value:#x}")
        return value == 1

    def next_uint16(self) -> int:
        return struct.unpack("<H", self.next_bytes(2))[0]

    def next_uint32(self) -> int:
        return struct.unpack("<I", self.next_bytes(4))[0]

    def next_uint64(self) -> int:
        return struct.unpack("<Q", self.next_bytes(8))[0]

    def next_var_uint(self) -> int:
        """
        Read a variable-length unsigned integer.

        Values that use a wider prefix than necessary are irregular and
        rejected.

        Returns:
            Decoded integer

        Raises:
            DecodeError: On a short read or an irregular encoding
        """
        prefix = self.next_byte()
        if prefix < 0xFD:
            return prefix
        if prefix == 0xFD:
            value = self.next_uint16()
            minimum = 0xFD
        elif prefix == 0xFE:
            value = self.next_uint32()
            minimum = 0x10000
        else:
            value = self.next_uint64()
            minimum = 0x100000000
        if value < minimum:
            raise DecodeError(f"Irregular var-uint encoding: prefix {prefix:#x} for value {value}")
        return value

    def next_var_bytes(self) -> bytes:
        return self.next_bytes(self.next_var_uint())

    def next_string(self) -> str:
        raw = self.next_var_bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid utf-8 string: {e}") from e

    def next_address(self) -> Address:
        return Address(self.next_bytes(ADDRESS_LENGTH))

    def next_i128(self) -> int:
        """Read a 128-bit little-endian two's complement integer."""
        return int.from_bytes(self.next_bytes(I128_LENGTH), "little", signed=True)


class ByteWriter:
    """Append-only buffer builder, the mirror image of ByteReader."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def write_bytes(self, data: bytes) -> ByteWriter:
        self._buffer += data
        return self

    def write_byte(self, value: int) -> ByteWriter:
        self._buffer.append(value)
        return self

    def write_bool(self, value: bool) -> ByteWriter:
        return self.write_byte(1 if value else 0)

    def write_uint16(self, value: int) -> ByteWriter:
        return self.write_bytes(struct.pack("<H", value))

    def write_uint32(self, value: int) -> ByteWriter:
        return self.write_bytes(struct.pack("<I", value))

    def write_uint64(self, value: int) -> ByteWriter:
        return self.write_bytes(struct.pack("<Q", value))

    def write_var_uint(self, value: int) -> ByteWriter:
        if value < 0:
            raise ValueError(f"var-uint must be non-negative, got {value}")
        if value < 0xFD:
            return self.write_byte(value)
        if value <= 0xFFFF:
            return self.write_byte(0xFD).write_uint16(value)
        if value <= 0xFFFFFFFF:
            return self.write_byte(0xFE).write_uint32(value)
        return self.write_byte(0xFF).write_uint64(value)

    def write_var_bytes(self, data: bytes) -> ByteWriter:
        return self.write_var_uint(len(data)).write_bytes(data)

    def write_string(self, value: str) -> ByteWriter:
        return self.write_var_bytes(value.encode("utf-8"))

    def write_address(self, address: Address) -> ByteWriter:
        return self.write_bytes(address.raw)

    def write_i128(self, value: int) -> ByteWriter:
        if not I128_MIN <= value <= I128_MAX:
            raise ValueError(f"Value out of i128 range: {value}")
        return self.write_bytes(value.to_bytes(I128_LENGTH, "little", signed=True))


def encode_wasm_param(writer: ByteWriter, param: object) -> None:
    """
    Append one WASM contract argument to ``writer``.

    Args:
        writer: Target buffer
        param: Argument value (str, bytes, bool, int as i128, or Address)

    Raises:
        TypeError: If the argument type has no WASM encoding
    """
    # bool before int: bool is an int subclass
    if isinstance(param, bool):
        writer.write_bool(param)
    elif isinstance(param, int):
        writer.write_i128(param)
    elif isinstance(param, str):
        writer.write_string(param)
    elif isinstance(param, bytes):
        writer.write_var_bytes(param)
    elif isinstance(param, Address):
        writer.write_address(param)
    else:
        raise TypeError(f"Unsupported WASM parameter type: {type(param).__name__}")
