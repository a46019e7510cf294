"""
Core Data Models for Finance Tracker

These models define the schemas for everything the stores persist:
expenses, their categories and the wallets that partition them.

DESIGN DECISION: A category is a tagged union of a fixed system category
and a user-defined custom category. Two categories are the same category
when their (kind, id) pair matches - never by display name, because
custom names can be edited after expenses reference them.
"""

import unicodedata
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Iterable, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


CUSTOM_KEY_PREFIX = "custom:"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SystemCategory(str, Enum):
    """
    Built-in expense categories.

    The raw values are persisted verbatim and must never change.
    """
    FOOD = "food"
    EATING_OUT = "eatingOut"
    RENT = "rent"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    TRANSPORTATION = "transportation"
    UTILITIES = "utilities"
    SUBSCRIPTIONS = "subscriptions"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    OTHERS = "others"

    @property
    def display_name(self) -> str:
        return _SYSTEM_DISPLAY_NAMES[self]


_SYSTEM_DISPLAY_NAMES = {
    SystemCategory.FOOD: "Food",
    SystemCategory.EATING_OUT: "Eating Out",
    SystemCategory.RENT: "Rent",
    SystemCategory.SHOPPING: "Shopping",
    SystemCategory.ENTERTAINMENT: "Entertainment",
    SystemCategory.TRANSPORTATION: "Transportation",
    SystemCategory.UTILITIES: "Utilities",
    SystemCategory.SUBSCRIPTIONS: "Subscriptions",
    SystemCategory.HEALTHCARE: "Healthcare",
    SystemCategory.EDUCATION: "Education",
    SystemCategory.OTHERS: "Others",
}


class WalletKind(str, Enum):
    """Kind of wallet. Both kinds are local to this device."""
    PERSONAL = "personal"
    SHARED = "shared"


# =============================================================================
# CATEGORIES
# =============================================================================

class _CategoryBase(BaseModel):
    """Identity semantics shared by both category variants."""

    model_config = ConfigDict(frozen=True)

    def identity(self) -> tuple[str, str]:
        return (self.kind, self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _CategoryBase):
            return NotImplemented
        return self.identity() == other.identity()

    def __hash__(self) -> int:
        return hash(self.identity())


class SystemCategoryRef(_CategoryBase):
    """Reference to one of the built-in categories."""

    kind: Literal["system"] = "system"
    system: SystemCategory

    @property
    def id(self) -> str:
        return self.system.value

    @property
    def display_name(self) -> str:
        return self.system.display_name

    @property
    def emoji(self) -> Optional[str]:
        return None


class CustomCategory(_CategoryBase):
    """
    A user-defined category.

    The emoji is normalised to a single visible character so that
    pasted text can't turn the icon into a sentence.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    kind: Literal["custom"] = "custom"
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Stable identifier, survives renames"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=60,
        description="Display name"
    )
    emoji: str = Field(
        default="",
        description="Single emoji shown as the category icon"
    )

    @field_validator('emoji')
    @classmethod
    def normalize_emoji(cls, v: str) -> str:
        return first_grapheme(v.strip())

    @property
    def display_name(self) -> str:
        return self.name


Category = Annotated[
    Union[SystemCategoryRef, CustomCategory],
    Field(discriminator="kind"),
]


def system_category(value: Union[SystemCategory, str]) -> SystemCategoryRef:
    """Build a category reference for a built-in category (enum or raw value)."""
    return SystemCategoryRef(system=SystemCategory(value))


FALLBACK_CATEGORY = system_category(SystemCategory.OTHERS)


def first_grapheme(text: str) -> str:
    """
    Return the first user-perceived character of text.

    Keeps combining marks, variation selectors, skin tone modifiers and
    zero-width-joiner sequences attached to the first code point.
    """
    if not text:
        return ""
    end = 1
    while end < len(text):
        ch = text[end]
        code = ord(ch)
        if ch == "\u200d" and end + 1 < len(text):
            end += 2
        elif (
            unicodedata.combining(ch)
            or 0xFE00 <= code <= 0xFE0F
            or 0x1F3FB <= code <= 0x1F3FF
            or 0xE0020 <= code <= 0xE007F
        ):
            end += 1
        else:
            break
    return text[:end]


def category_key(category: Union[SystemCategoryRef, CustomCategory]) -> str:
    """
    Persistence key for a category.

    System categories serialize as their raw enum value,
    custom categories as "custom:<id>".
    """
    if isinstance(category, CustomCategory):
        return f"{CUSTOM_KEY_PREFIX}{category.id}"
    return category.id


def category_from_key(
    key: str,
    custom_categories: Iterable[CustomCategory] = (),
) -> Union[SystemCategoryRef, CustomCategory]:
    """
    Resolve a persistence key back to a category.

    Unknown system values and custom ids missing from custom_categories
    resolve to the fallback "Others" category rather than failing.
    """
    if key.startswith(CUSTOM_KEY_PREFIX):
        custom_id = key[len(CUSTOM_KEY_PREFIX):]
        for custom in custom_categories:
            if custom.id == custom_id:
                return custom
        return FALLBACK_CATEGORY

    try:
        return system_category(key)
    except ValueError:
        return FALLBACK_CATEGORY


# =============================================================================
# EXPENSE
# =============================================================================

class Expense(BaseModel):
    """
    One recorded transaction.

    Amounts are not range-checked here: validation of user input is the
    form's job, and aggregation simply sums whatever it is given.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: UUID = Field(
        default_factory=uuid4,
        frozen=True,
        description="Unique expense ID, assigned at creation"
    )
    title: str = Field(
        default="",
        max_length=200,
        description="Free-text label"
    )
    amount: float = Field(
        ...,
        allow_inf_nan=False,
        description="Amount in the wallet currency"
    )
    occurred_at: date = Field(
        ...,
        description="Calendar date of the expense"
    )
    category: Category = Field(
        default=FALLBACK_CATEGORY,
        description="System or custom category"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="User notes about this expense"
    )

    @field_validator('occurred_at', mode='before')
    @classmethod
    def truncate_datetime(cls, v: Any) -> Any:
        """Only the calendar date matters for bucketing."""
        if isinstance(v, datetime):
            return v.date()
        return v

    def to_record(self) -> dict[str, Any]:
        """
        Convert to the persisted JSON record.

        The category is stored as its key; custom categories also keep a
        copy of their name and emoji so records stay readable on their own.
        """
        record: dict[str, Any] = {
            "id": str(self.id),
            "title": self.title,
            "amount": self.amount,
            "occurred_at": self.occurred_at.isoformat(),
            "category": category_key(self.category),
            "notes": self.notes,
        }
        if isinstance(self.category, CustomCategory):
            record["category_name"] = self.category.name
            record["category_emoji"] = self.category.emoji
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Expense":
        """Rebuild an expense from a persisted JSON record."""
        key = str(record.get("category", ""))
        if key.startswith(CUSTOM_KEY_PREFIX) and record.get("category_name"):
            category = CustomCategory(
                id=key[len(CUSTOM_KEY_PREFIX):],
                name=record["category_name"],
                emoji=record.get("category_emoji") or "",
            )
        else:
            category = category_from_key(key)

        return cls(
            id=record["id"],
            title=record.get("title", ""),
            amount=record["amount"],
            occurred_at=record["occurred_at"],
            category=category,
            notes=record.get("notes"),
        )


# =============================================================================
# WALLET
# =============================================================================

class Wallet(BaseModel):
    """
    A local partition of expenses and budgets.

    Wallets never leave the device.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique wallet ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Wallet name"
    )
    kind: WalletKind = Field(
        default=WalletKind.PERSONAL,
        description="Personal or shared wallet"
    )
    currency_code: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        description="Currency the wallet's amounts are recorded in"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the wallet was created"
    )
