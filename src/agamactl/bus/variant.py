"""Variant codec — tagged bus values to plain Python values and back.

A :class:`TaggedValue` is a self-describing value: a tag from
:class:`~agamactl.domain.types.Tag` plus a payload. Containers hold further
tagged values, so arbitrarily nested wire data keeps its type information
until it is decoded.

``lift()`` builds tagged values from a D-Bus signature and the native value
``dbus-fast`` hands out. ``decode()`` turns them into plain values.

INVARIANT: decoding is total over the supported tags and fails with
DecodeError otherwise. Payloads are never coerced to a different type.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from dbus_fast.errors import InvalidSignatureError
from dbus_fast.signature import SignatureTree, SignatureType, Variant

from agamactl.domain.errors import DecodeError
from agamactl.domain.types import Tag

_T = TypeVar("_T")

_STRING_CODES = frozenset("sog")
_INTEGER_CODES = frozenset("ynqiuxth")


@dataclass(frozen=True)
class TaggedValue:
    """A value carrying its own type tag.

    Container payloads are tuples: ``ARRAY`` and ``STRUCT`` hold tagged
    items, ``DICT`` holds ``(key, value)`` pairs of tagged values and
    ``VARIANT`` holds a single tagged value.
    """

    tag: str
    payload: Any

    @classmethod
    def string(cls, value: str) -> TaggedValue:
        return cls(Tag.STRING, value)

    @classmethod
    def boolean(cls, value: bool) -> TaggedValue:
        return cls(Tag.BOOLEAN, value)

    @classmethod
    def integer(cls, value: int) -> TaggedValue:
        return cls(Tag.INTEGER, value)

    @classmethod
    def double(cls, value: float) -> TaggedValue:
        return cls(Tag.DOUBLE, value)

    @classmethod
    def array(cls, *items: TaggedValue) -> TaggedValue:
        return cls(Tag.ARRAY, tuple(items))

    @classmethod
    def struct(cls, *items: TaggedValue) -> TaggedValue:
        return cls(Tag.STRUCT, tuple(items))

    @classmethod
    def mapping(cls, pairs: Mapping[str, TaggedValue]) -> TaggedValue:
        return cls(Tag.DICT, tuple((cls.string(k), v) for k, v in pairs.items()))

    @classmethod
    def variant(cls, inner: TaggedValue) -> TaggedValue:
        return cls(Tag.VARIANT, inner)


# ── Decoding ─────────────────────────────────────────────────────────


def decode(value: TaggedValue) -> Any:
    """Decode a tagged value into a plain Python value.

    Arrays become lists, structs tuples, dicts dicts; variants are unwrapped
    transparently.

    Raises:
        DecodeError: Unknown tag or a payload that does not match its tag.
    """
    return _decode(value, "$")


def _decode(value: Any, path: str) -> Any:
    if not isinstance(value, TaggedValue):
        msg = f"Expected a tagged value at {path}, got {type(value).__name__}"
        raise DecodeError(msg, path=path)
    if not isinstance(value.tag, str):
        raise DecodeError(
            f"Malformed tag {value.tag!r} at {path}",
            unknown_tag=repr(value.tag),
            path=path,
        )
    decoder = _DECODERS.get(value.tag)
    if decoder is None:
        raise DecodeError(
            f"Unknown tag {value.tag!r} at {path}",
            unknown_tag=str(value.tag),
            path=path,
        )
    return decoder(value.payload, path)


def _scalar(expected: type | tuple[type, ...], kind: str) -> Callable[[Any, str], Any]:
    def decoder(payload: Any, path: str) -> Any:
        # bool is an int subclass; never let it pass as an integer or double.
        if isinstance(payload, bool) and kind != "boolean":
            raise DecodeError(f"Malformed {kind} at {path}: got bool", path=path)
        if not isinstance(payload, expected):
            msg = f"Malformed {kind} at {path}: got {type(payload).__name__}"
            raise DecodeError(msg, path=path)
        return payload

    return decoder


def _items(payload: Any, kind: str, path: str) -> tuple[Any, ...]:
    if not isinstance(payload, tuple):
        msg = f"Malformed {kind} at {path}: payload must be a tuple"
        raise DecodeError(msg, path=path)
    return payload


def _decode_array(payload: Any, path: str) -> list[Any]:
    return [_decode(item, f"{path}[{i}]") for i, item in enumerate(_items(payload, "array", path))]


def _decode_struct(payload: Any, path: str) -> tuple[Any, ...]:
    return tuple(
        _decode(item, f"{path}.{i}") for i, item in enumerate(_items(payload, "struct", path))
    )


def _decode_dict(payload: Any, path: str) -> dict[Any, Any]:
    result: dict[Any, Any] = {}
    for pair in _items(payload, "dict", path):
        if not isinstance(pair, tuple) or len(pair) != 2:
            raise DecodeError(f"Malformed dict entry at {path}", path=path)
        key = _decode(pair[0], f"{path}{{key}}")
        try:
            hash(key)
        except TypeError:
            msg = f"Unhashable dict key at {path}: got {type(key).__name__}"
            raise DecodeError(msg, path=f"{path}{{key}}") from None
        result[key] = _decode(pair[1], f"{path}.{key}")
    return result


def _decode_variant(payload: Any, path: str) -> Any:
    return _decode(payload, path)


_DECODERS: dict[str, Callable[[Any, str], Any]] = {
    Tag.STRING: _scalar(str, "string"),
    Tag.BOOLEAN: _scalar(bool, "boolean"),
    Tag.INTEGER: _scalar(int, "integer"),
    Tag.DOUBLE: _scalar((int, float), "double"),
    Tag.ARRAY: _decode_array,
    Tag.STRUCT: _decode_struct,
    Tag.DICT: _decode_dict,
    Tag.VARIANT: _decode_variant,
}


def unwrap(value: TaggedValue) -> TaggedValue:
    """Strip any number of variant layers, returning the innermost tagged value."""
    while isinstance(value, TaggedValue) and value.tag == Tag.VARIANT:
        value = value.payload
    return value


def decode_struct(value: TaggedValue, fields: Sequence[str]) -> dict[str, Any]:
    """Decode a struct positionally into a dict keyed by *fields*.

    Raises:
        DecodeError: *value* is not a struct or its arity differs from *fields*.
    """
    inner = unwrap(value)
    if not isinstance(inner, TaggedValue) or inner.tag != Tag.STRUCT:
        raise DecodeError(f"Expected a struct for fields {list(fields)}")
    items = decode(inner)
    if len(items) != len(fields):
        msg = f"Struct arity {len(items)} does not match fields {list(fields)}"
        raise DecodeError(msg)
    return dict(zip(fields, items, strict=True))


def require(mapping: Mapping[str, Any], key: str, expected: type[_T]) -> _T:
    """Return ``mapping[key]``, checking presence and type.

    Raises:
        DecodeError: The key is missing or holds a value of another type.
    """
    if key not in mapping:
        raise DecodeError(f"Missing required field {key!r}", path=key)
    return expect(mapping[key], key, expected)


def optional(mapping: Mapping[str, Any], key: str, expected: type[_T]) -> _T | None:
    """Like :func:`require`, but an absent key yields ``None``."""
    if key not in mapping:
        return None
    return expect(mapping[key], key, expected)


def expect(value: Any, key: str, expected: type[_T]) -> _T:
    """Check that *value* (field *key*) is an instance of *expected*."""
    if isinstance(value, bool) and expected is not bool:
        raise DecodeError(f"Field {key!r} must be {expected.__name__}, got bool", path=key)
    if not isinstance(value, expected):
        msg = f"Field {key!r} must be {expected.__name__}, got {type(value).__name__}"
        raise DecodeError(msg, path=key)
    return value


# ── Lifting native dbus-fast values ──────────────────────────────────


def lift(signature: str, value: Any) -> TaggedValue:
    """Build a tagged value from a single complete D-Bus type and its native value.

    Raises:
        DecodeError: Invalid signature, unsupported type code, or a value
            that does not fit the signature.
    """
    types = _parse(signature)
    if len(types) != 1:
        raise DecodeError(f"Expected a single complete type, got {signature!r}")
    return _lift(types[0], value, "$")


def lift_args(signature: str, values: Sequence[Any]) -> tuple[TaggedValue, ...]:
    """Lift a message body (one value per complete type in *signature*)."""
    types = _parse(signature)
    if len(types) != len(values):
        msg = f"Signature {signature!r} expects {len(types)} values, got {len(values)}"
        raise DecodeError(msg)
    return tuple(_lift(t, v, f"${i}") for i, (t, v) in enumerate(zip(types, values, strict=True)))


def _parse(signature: str) -> list[SignatureType]:
    try:
        return list(SignatureTree(signature).types)
    except InvalidSignatureError as exc:
        raise DecodeError(f"Invalid signature {signature!r}: {exc}") from exc


def _lift(sig: SignatureType, value: Any, path: str) -> TaggedValue:
    token = sig.token
    if token in _STRING_CODES:
        return TaggedValue.string(_native(value, str, token, path))
    if token == "b":
        return TaggedValue.boolean(_native(value, bool, token, path))
    if token in _INTEGER_CODES:
        return TaggedValue.integer(_native(value, int, token, path))
    if token == "d":
        return TaggedValue.double(float(_native(value, (int, float), token, path)))
    if token == "v":
        if not isinstance(value, Variant):
            raise DecodeError(f"Expected a Variant at {path}", path=path)
        return TaggedValue.variant(lift(value.signature, value.value))
    if token == "a":
        child = sig.children[0]
        if child.token == "{":
            return _lift_dict(child, value, path)
        if isinstance(value, (bytes, bytearray)):
            return TaggedValue(Tag.ARRAY, tuple(TaggedValue.integer(b) for b in value))
        if not isinstance(value, (list, tuple)):
            raise DecodeError(f"Expected a list at {path}", path=path)
        return TaggedValue(
            Tag.ARRAY,
            tuple(_lift(child, item, f"{path}[{i}]") for i, item in enumerate(value)),
        )
    if token == "(":
        if not isinstance(value, (list, tuple)) or len(value) != len(sig.children):
            raise DecodeError(f"Struct at {path} does not match {sig.signature!r}", path=path)
        return TaggedValue(
            Tag.STRUCT,
            tuple(
                _lift(child, item, f"{path}.{i}")
                for i, (child, item) in enumerate(zip(sig.children, value, strict=True))
            ),
        )
    raise DecodeError(f"Unsupported type code {token!r} at {path}", unknown_tag=token, path=path)


def _lift_dict(entry: SignatureType, value: Any, path: str) -> TaggedValue:
    if not isinstance(value, Mapping):
        raise DecodeError(f"Expected a mapping at {path}", path=path)
    key_sig, value_sig = entry.children
    return TaggedValue(
        Tag.DICT,
        tuple(
            (_lift(key_sig, k, f"{path}{{key}}"), _lift(value_sig, v, f"{path}.{k}"))
            for k, v in value.items()
        ),
    )


def _native(value: Any, expected: type | tuple[type, ...], token: str, path: str) -> Any:
    if isinstance(value, bool) and expected is not bool:
        raise DecodeError(f"Value at {path} does not match {token!r}: got bool", path=path)
    if not isinstance(value, expected):
        msg = f"Value at {path} does not match {token!r}: got {type(value).__name__}"
        raise DecodeError(msg, path=path)
    return value
