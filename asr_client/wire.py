"""Request/response helpers shared by the submitter and the poller.

Every response shape is decoded once through its pydantic model; a
missing or mistyped field surfaces as a single named error.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from asr_client.errors import EncodingError, NetworkError, ResponseFormatError

M = TypeVar("M", bound=BaseModel)


def encode(payload: dict[str, Any]) -> str:
    try:
        return json.dumps(payload)
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"failed to encode request body: {exc}") from exc


def decode(
    model: type[M],
    payload: Any,
    error_cls: type[ResponseFormatError] = ResponseFormatError,
) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        err = exc.errors()[0]
        field = ".".join(str(p) for p in err["loc"]) or "<root>"
        raise error_cls(f"{model.__name__}: field '{field}' {err['msg']}", field=field) from exc


def read_json(resp: httpx.Response, step: str) -> Any:
    if resp.status_code >= 400:
        raise NetworkError(f"{step}: HTTP {resp.status_code}: {resp.text[:200]}")
    try:
        return resp.json()
    except ValueError as exc:
        raise ResponseFormatError(f"{step}: response is not valid JSON") from exc


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str],
    step: str,
) -> Any:
    body = encode(payload)
    try:
        resp = await client.post(url, content=body, headers=headers)
    except httpx.HTTPError as exc:
        raise NetworkError(f"{step}: request failed: {exc}") from exc
    return read_json(resp, step)
