"""Pydantic model for the JSON-RPC relay request."""

from typing import Any

from pydantic import BaseModel


class RpcRequest(BaseModel):
    method: str | None = None
    params: Any = None
    id: int | str | None = None
