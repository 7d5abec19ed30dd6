"""Inbound queue messages and the pick-completion notification they carry."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """Opaque text-bodied message read from the inbound queue."""

    body: Optional[str] = None


class PickCompleteNotification(BaseModel):
    """
    Notification published by the WMS when a pick finishes.

    Fields the engine does not use are kept in ``model_extra`` instead of
    being rejected, so upstream can add fields freely.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    pick_id: int = Field(..., alias="id")
    straggler: bool = False

    @property
    def others(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})
