"""Release state decoding.

Helm persists each release revision as a JSON document that is gzipped and
base64 encoded by Helm itself. The Secret storage driver adds Kubernetes'
own base64 layer on top, and some tooling wraps Helm's string in a small
JSON envelope (`{"release": "<helm encoded>"}`). The ConfigMap driver skips
the Kubernetes layer. ``unwrap_payload`` peels whichever layers are present:

- base64(base64(gzip(json)))         Secret driver
- base64({"release": base64(...)})   enveloped
- base64(gzip(json))                 ConfigMap driver
- any of the above without gzip
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib

from helmtree.core.result import Err, Ok, Result
from helmtree.core.structured import StrDict, as_str_dict, get_list, get_table, get_text
from helmtree.helm.errors import DecodeError
from helmtree.helm.models import ReleaseDocument

__all__ = [
    "decode_release",
    "document_from_dict",
    "encode_payload",
    "unwrap_payload",
]

GZIP_MAGIC = b"\x1f\x8b"


def _b64decode(data: bytes) -> bytes | None:
    try:
        return base64.b64decode(b"".join(data.split()), validate=True)
    except (binascii.Error, ValueError):
        return None


def _looks_like_json(data: bytes) -> bool:
    return data.lstrip()[:1] in (b"{", b"[")


def _decompress(data: bytes) -> bytes:
    """Gunzip if possible, otherwise assume the bytes are already plain."""
    if not data.startswith(GZIP_MAGIC):
        return data
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error):
        return data


def _unwrap_envelope(data: bytes) -> Result[bytes | None, DecodeError]:
    """Return the nested encoded release of a JSON envelope.

    Ok(None) means ``data`` is JSON but not an envelope, i.e. it already is
    the release document.
    """
    try:
        obj: object = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        return Err(DecodeError(stage="json", message=f"invalid JSON after base64 decode: {e}"))

    table = as_str_dict(obj)
    if table is None or "release" not in table:
        return Ok(None)

    inner = table["release"]
    if not isinstance(inner, str) or not inner.strip():
        return Err(
            DecodeError(stage="inner_unwrap", message="envelope 'release' field is not a string")
        )
    return Ok(inner.encode("utf-8"))


def unwrap_payload(raw: bytes | str) -> Result[bytes, DecodeError]:
    """Strip transport encodings and compression, returning plain JSON bytes."""
    data = raw.encode("utf-8") if isinstance(raw, str) else raw

    outer = _b64decode(data)
    if not outer:
        return Err(DecodeError(stage="outer_decode", message="release data is not valid base64"))

    candidate = outer
    if _looks_like_json(outer):
        envelope = _unwrap_envelope(outer)
        if isinstance(envelope, Err):
            return envelope
        if envelope.value is None:
            return Ok(outer)
        candidate = envelope.value

    if candidate.startswith(GZIP_MAGIC):
        return Ok(_decompress(candidate))
    if _looks_like_json(candidate):
        return Ok(candidate)

    inner = _b64decode(candidate)
    if not inner:
        return Err(
            DecodeError(stage="inner_unwrap", message="inner release data is not valid base64")
        )
    return Ok(_decompress(inner))


def document_from_dict(data: StrDict) -> Result[ReleaseDocument, DecodeError]:
    chart = get_table(data, "chart") or {}
    metadata = get_table(chart, "metadata")
    if metadata is None:
        return Err(DecodeError(stage="json", message="release has no chart metadata"))
    lock = get_table(chart, "lock") or {}

    lock_deps = get_list(lock, "dependencies")
    meta_deps = get_list(metadata, "dependencies")
    return Ok(
        ReleaseDocument(
            chart_name=get_text(metadata, "name"),
            chart_version=get_text(metadata, "version"),
            app_version=get_text(metadata, "appVersion"),
            lock_dependencies=tuple(lock_deps) if lock_deps is not None else None,
            metadata_dependencies=tuple(meta_deps) if meta_deps is not None else None,
        )
    )


def decode_release(raw: bytes | str) -> Result[ReleaseDocument, DecodeError]:
    """Decode persisted release state into a ReleaseDocument.

    Args:
        raw: The Secret/ConfigMap `release` field as retrieved.

    Returns:
        Ok(ReleaseDocument), or Err(DecodeError) naming the failing layer.
    """
    plain = unwrap_payload(raw)
    if isinstance(plain, Err):
        return plain

    try:
        obj: object = json.loads(plain.value)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        return Err(DecodeError(stage="json", message=f"release payload is not valid JSON: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(DecodeError(stage="json", message="release payload is not a JSON object"))
    return document_from_dict(data)


def encode_payload(plain: bytes, *, compress: bool = True, envelope: bool = False) -> bytes:
    """Layer plain release JSON the way the Secret driver stores it.

    Gzip output is deterministic (mtime=0), so encoding a payload produced
    by this function after unwrapping it reproduces the same bytes.
    """
    body = gzip.compress(plain, mtime=0) if compress else plain
    helm_encoded = base64.b64encode(body)
    if envelope:
        wrapped = json.dumps({"release": helm_encoded.decode("ascii")}).encode("utf-8")
        return base64.b64encode(wrapped)
    return base64.b64encode(helm_encoded)
