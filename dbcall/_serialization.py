from typing import Any

import msgspec

__all__ = ("decode_json", "encode_json")


def _default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)


_msgspec_json_encoder = msgspec.json.Encoder(enc_hook=_default)
_msgspec_json_decoder = msgspec.json.Decoder()


def encode_json(data: Any, *, as_bytes: bool = False) -> Any:
    """Encode data to JSON using msgspec.

    Returns:
        ``str`` by default, ``bytes`` when ``as_bytes`` is set.
    """
    encoded = _msgspec_json_encoder.encode(data)
    if as_bytes:
        return encoded
    return encoded.decode("utf-8")


def decode_json(data: "str | bytes") -> Any:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return _msgspec_json_decoder.decode(data)
