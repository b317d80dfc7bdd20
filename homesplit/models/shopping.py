"""
Shopping List Models

The shared shopping list is plain CRUD data; it never feeds into balances.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from homesplit.models.roster import UserId


class ItemPriority(str, Enum):
    """How urgently an item is needed."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ShoppingItem(BaseModel):
    """A single entry on the shared shopping list."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique item ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What to buy"
    )
    quantity: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Free-text quantity (e.g., '2 kg')"
    )
    assigned_to: Optional[UserId] = None
    priority: ItemPriority = ItemPriority.MEDIUM
    notes: Optional[str] = Field(
        default=None,
        max_length=500
    )
    completed: bool = False
    added_by: UserId
    added_at: datetime = Field(default_factory=datetime.now)
