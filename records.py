# records.py
"""
Canonical byte serialization for committed records.

A record can be any value that serializes to bytes deterministically. The
store, the native verifier and the circuit allocation all call serialize(),
so the three always agree on a record's byte form.

New record types plug in either by defining __bytes__ or with
serialize.register(SomeType).
"""

from functools import singledispatch

# Integers are encoded like a 256-bit big integer: 4 little-endian 64-bit limbs,
# i.e. 32 bytes little-endian.
INT_RECORD_BYTES = 32


class SerializationError(ValueError):
    """A record has no canonical byte form."""


@singledispatch
def serialize(record) -> bytes:
    """
    Return the canonical bytes of a record.

    Raises:
        SerializationError: the record type is not serializable
    """
    if hasattr(type(record), "__bytes__"):
        try:
            return bytes(record)
        except TypeError as exc:
            raise SerializationError(f"{type(record).__name__}.__bytes__ failed: {exc}") from exc
    raise SerializationError(f"no canonical serialization for {type(record).__name__}")


@serialize.register(int)
def _serialize_int(record: int) -> bytes:
    if record < 0:
        raise SerializationError(f"negative integer record: {record}")
    try:
        return record.to_bytes(INT_RECORD_BYTES, byteorder="little", signed=False)
    except OverflowError as exc:
        raise SerializationError(
            f"integer record does not fit in {INT_RECORD_BYTES} bytes"
        ) from exc


@serialize.register(bool)
def _serialize_bool(record: bool) -> bytes:
    # one byte, so True and 1 never share a leaf
    return b"\x01" if record else b"\x00"


@serialize.register(bytes)
@serialize.register(bytearray)
def _serialize_bytes(record) -> bytes:
    return bytes(record)


@serialize.register(str)
def _serialize_str(record: str) -> bytes:
    return record.encode("utf-8")
