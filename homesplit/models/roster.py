"""
Roster Models

The roster is the fixed, externally supplied set of people who share the
household. It defines the universe of accounts: anyone not on the roster
cannot be credited or debited.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

UserId = str


class Member(BaseModel):
    """A single household member."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UserId = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Opaque member identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    avatar: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Emoji or short avatar text"
    )


class Roster(BaseModel):
    """
    The ordered, non-empty list of household members.

    Member order is the display order and the iteration order of the
    balance calculator.
    """
    model_config = ConfigDict(frozen=True)

    members: list[Member] = Field(
        ...,
        min_length=1,
        description="Household members"
    )

    @model_validator(mode='after')
    def validate_unique_ids(self) -> 'Roster':
        """Member ids must be unique."""
        seen = set()
        for member in self.members:
            if member.id in seen:
                raise ValueError(f"Duplicate member id in roster: {member.id}")
            seen.add(member.id)
        return self

    @classmethod
    def from_ids(cls, user_ids: list[UserId]) -> 'Roster':
        """Build a roster from bare ids (names default to the id)."""
        return cls(members=[Member(id=user_id, name=user_id) for user_id in user_ids])

    @property
    def user_ids(self) -> list[UserId]:
        return [member.id for member in self.members]

    def contains(self, user_id: UserId) -> bool:
        return any(member.id == user_id for member in self.members)

    def get(self, user_id: UserId) -> Optional[Member]:
        for member in self.members:
            if member.id == user_id:
                return member
        return None

    def display_name(self, user_id: UserId) -> str:
        """Name to show for a user id, falling back to the raw id."""
        member = self.get(user_id)
        return member.name if member else user_id

    def __len__(self) -> int:
        return len(self.members)
