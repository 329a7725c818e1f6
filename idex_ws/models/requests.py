"""
Outbound request frames for the IDEX WebSocket API.

Wire Format:
    {"method": "subscribe", "cid": "abc", "subscriptions": [...], "token": "..."}
    {"method": "unsubscribe", "subscriptions": [...]}
    {"method": "subscriptions"}

Absent keys are omitted rather than sent as null.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class RequestMethod(str, Enum):
    """Request methods accepted by the server."""

    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    SUBSCRIPTIONS = "subscriptions"


class WebSocketRequest(BaseModel):
    """
    A single request frame.

    Attributes:
        method: Request method.
        cid: Client supplied correlation id echoed back by the server.
        subscriptions: Subscriptions in wire form, or bare topic names.
        token: Wallet auth token for authenticated subscriptions.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    method: RequestMethod = Field(..., description="Request method")
    cid: Optional[str] = Field(default=None, description="Correlation id")
    subscriptions: Optional[List[Union[str, Dict[str, Any]]]] = Field(
        default=None,
        description="Subscriptions in wire form",
    )
    token: Optional[str] = Field(default=None, description="Wallet auth token")

    def to_json(self) -> str:
        """Serialize to the JSON text sent over the socket."""
        return json.dumps(self.model_dump(mode="json", exclude_none=True))
