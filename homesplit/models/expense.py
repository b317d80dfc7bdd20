"""
Core Data Models for HomeSplit

These models define the schemas for all expense data flowing through the
system. They are designed to:
1. Make the split strategy a closed, tagged set of variants
2. Be immutable once created (edits are not supported)
3. Be serializable for storage and logging

DESIGN DECISION: The models are deliberately permissive about amounts and
split sums. Records come back from storage long after they were created and
must still load; strict checks live in ExpenseValidator, which runs once,
before an expense is saved.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from homesplit.models.roster import UserId


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SplitType(str, Enum):
    """How an expense's amount is attributed to debtors."""
    EQUAL = "equal"
    CUSTOM = "custom"
    FULL_PAYMENT = "full_payment"


class ExpenseCategory(str, Enum):
    """
    Suggested expense categories.

    Stored expenses keep the category as free text so older records with
    categories outside this list still load.
    """
    GROCERIES = "Groceries"
    UTILITIES = "Utilities"
    RENT = "Rent"
    FOOD_AND_DINING = "Food & Dining"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    HOUSEHOLD_ITEMS = "Household Items"
    MEDICAL = "Medical"
    OTHER = "Other"


def _unique_in_order(user_ids: list[UserId]) -> list[UserId]:
    seen = set()
    result = []
    for user_id in user_ids:
        if user_id not in seen:
            seen.add(user_id)
            result.append(user_id)
    return result


# =============================================================================
# SPLIT STRATEGIES
# =============================================================================

class EqualSplit(BaseModel):
    """
    Amount is shared equally by the participants.

    The payer may or may not be among the participants; if they are, their
    own slice is simply not a debt.
    """
    model_config = ConfigDict(frozen=True)

    split_type: Literal["equal"] = "equal"
    participants: list[UserId] = Field(
        default_factory=list,
        description="Users sharing the cost"
    )

    @field_validator('participants')
    @classmethod
    def collapse_duplicates(cls, v: list[UserId]) -> list[UserId]:
        return _unique_in_order(v)


class CustomSplit(BaseModel):
    """Each listed user owes exactly the stated amount."""
    model_config = ConfigDict(frozen=True)

    split_type: Literal["custom"] = "custom"
    custom_splits: dict[UserId, Decimal] = Field(
        default_factory=dict,
        description="Exact amount each user owes for this expense"
    )


class FullPaymentSplit(BaseModel):
    """
    The payer covered the whole amount on behalf of others (a loan).

    The recipients never include the payer.
    """
    model_config = ConfigDict(frozen=True)

    split_type: Literal["full_payment"] = "full_payment"
    loan_to: list[UserId] = Field(
        default_factory=list,
        description="Users the payer paid for"
    )

    @field_validator('loan_to')
    @classmethod
    def collapse_duplicates(cls, v: list[UserId]) -> list[UserId]:
        return _unique_in_order(v)


SplitStrategy = Annotated[
    Union[EqualSplit, CustomSplit, FullPaymentSplit],
    Field(discriminator="split_type"),
]


# =============================================================================
# EXPENSE
# =============================================================================

class Expense(BaseModel):
    """
    A recorded household expense.

    CRITICAL: Expenses are immutable. The system never edits a stored
    expense; balances are always re-folded from the full collection.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )

    description: str = Field(
        default="",
        max_length=500,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        ...,
        description="Total amount paid"
    )
    paid_by: UserId = Field(
        ...,
        description="User who paid the total amount"
    )
    split: SplitStrategy = Field(
        default_factory=EqualSplit,
        description="How the amount is divided"
    )
    date: datetime = Field(
        default_factory=datetime.now,
        description="When the expense was recorded"
    )

    # Descriptive only - no effect on balances
    category: Optional[str] = Field(
        default=None,
        max_length=100
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )

    @property
    def split_type(self) -> SplitType:
        return SplitType(self.split.split_type)

    @property
    def participants(self) -> list[UserId]:
        """The users this expense's split names."""
        split = self.split
        if isinstance(split, EqualSplit):
            return list(split.participants)
        if isinstance(split, CustomSplit):
            return list(split.custom_splits.keys())
        return list(split.loan_to)

    @property
    def is_loan(self) -> bool:
        return isinstance(self.split, FullPaymentSplit)
