"""Checklist aggregate models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripboard.models.common import Priority


class ChecklistItem(BaseModel):
    """Stored checklist item."""

    id: str
    text: str = ""
    completed: bool = False
    category: str | None = None
    priority: Priority | None = None


class ChecklistItemInput(BaseModel):
    """Payload for creating a checklist item."""

    text: str = Field(..., min_length=1)
    completed: bool = False
    category: str | None = None
    priority: Priority | None = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value.strip()

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ChecklistItemPatch(BaseModel):
    """Partial update of a checklist item."""

    text: str | None = Field(None, min_length=1)
    completed: bool | None = None
    category: str | None = None
    priority: Priority | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class Checklist(BaseModel):
    """Formatted checklist snapshot; ``item_order`` only references existing items."""

    model_config = ConfigDict(populate_by_name=True)

    items: dict[str, ChecklistItem] = Field(default_factory=dict)
    item_order: list[str] = Field(default_factory=list, alias="itemOrder")

    def ordered_items(self) -> list[ChecklistItem]:
        return [self.items[item_id] for item_id in self.item_order]


class ChecklistProgress(BaseModel):
    """Completion counters for the checklist header."""

    completed: int
    total: int
    percent: int
