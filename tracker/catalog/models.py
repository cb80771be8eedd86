"""
==============================================================================
Product Record Models Module
==============================================================================

Pydantic models and enums for evaluated candidate products.

Models:
-------
- RecordInput: Immutable, validated input for add/update
- ProductRecord: Stored record with derived fields

Enums:
------
- TrialState: Four-state tried/outcome machine
- Outcome: Authoritative outcome of a market test
- SortOption: The twelve supported listing orders
- RatingTier / ProfitTier / PriceBand: Display classification

Trial State Machine:
-------------------
    ┌─────────┐  toggle   ┌───────────────┐
    │ UNTRIED │ ────────▶ │ TRIED_UNKNOWN │
    └─────────┘ ◀──────── └───────────────┘
         ▲        toggle      │        │
         │            success │        │ failure
         │ toggle             ▼        ▼
         │     ┌─────────────────┐  ┌──────────────┐
         └──── │ TRIED_SUCCEEDED │◀▶│ TRIED_FAILED │
               └─────────────────┘  └──────────────┘

    success/failure are accepted from every state.

==============================================================================
"""

import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic import ValidationError as PydanticValidationError

from tracker.core.exceptions import InvalidSortOptionError, ValidationError


# =============================================================================
# CLASSIFICATION THRESHOLDS
# =============================================================================

RATING_LOW_MAX = 3
RATING_MID_MAX = 7

PROFIT_STRONG_MIN = Decimal("301")
PROFIT_GOOD_MIN = Decimal("250")
PROFIT_FAIR_MIN = Decimal("151")

SUPPLIER_PRICE_HIGH_ABOVE = Decimal("1000")
MARKETPLACE_PRICE_MEDIUM_MIN = Decimal("1000")
MARKETPLACE_PRICE_HIGH_ABOVE = Decimal("1500")


# =============================================================================
# ENUMS
# =============================================================================

class Outcome(str, enum.Enum):
    """Result of a market test. UNTRIED until success or failure is asserted."""

    UNTRIED = "untried"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


class TrialState(str, enum.Enum):
    """
    Tried/outcome state of a record.

    - UNTRIED: Not market-tested yet
    - TRIED_UNKNOWN: Tested, outcome not chosen
    - TRIED_SUCCEEDED: Tested and succeeded
    - TRIED_FAILED: Tested and failed

    Valid Transitions (see transition()):
    - UNTRIED → TRIED_UNKNOWN (toggle)
    - TRIED_* → UNTRIED (toggle, i.e. revert)
    - any → TRIED_SUCCEEDED / TRIED_FAILED (explicit outcome)
    """

    UNTRIED = "untried"
    TRIED_UNKNOWN = "tried_unknown"
    TRIED_SUCCEEDED = "tried_succeeded"
    TRIED_FAILED = "tried_failed"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value

    @property
    def tried(self) -> bool:
        """Check if the product has been market-tested."""
        return self is not TrialState.UNTRIED

    @property
    def outcome(self) -> Outcome:
        """Authoritative outcome for this state."""
        if self is TrialState.TRIED_SUCCEEDED:
            return Outcome.SUCCEEDED
        if self is TrialState.TRIED_FAILED:
            return Outcome.FAILED
        return Outcome.UNTRIED

    def transition(self, succeeded: Optional[bool] = None) -> "TrialState":
        """
        Compute the next state.

        Args:
            succeeded: None toggles tried/untried; True/False asserts the outcome

        Returns:
            The next TrialState
        """
        if succeeded is None:
            if self is TrialState.UNTRIED:
                return TrialState.TRIED_UNKNOWN
            return TrialState.UNTRIED

        return TrialState.TRIED_SUCCEEDED if succeeded else TrialState.TRIED_FAILED


class SortOption(str, enum.Enum):
    """
    Listing orders.

    Values are "<field>-<direction>". The field part names the sort key,
    the direction is "asc" or "desc".
    """

    RATING_DESC = "rating-desc"
    RATING_ASC = "rating-asc"
    SUPPLIER_PRICE_DESC = "supplierPrice-desc"
    SUPPLIER_PRICE_ASC = "supplierPrice-asc"
    MARKETPLACE_PRICE_DESC = "marketplacePrice-desc"
    MARKETPLACE_PRICE_ASC = "marketplacePrice-asc"
    OTHER_COSTS_DESC = "otherCosts-desc"
    OTHER_COSTS_ASC = "otherCosts-asc"
    NET_PROFIT_DESC = "netProfit-desc"
    NET_PROFIT_ASC = "netProfit-asc"
    CREATED_AT_DESC = "createdAt-desc"
    CREATED_AT_ASC = "createdAt-asc"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value

    @property
    def key(self) -> str:
        """Sort key name, e.g. 'netProfit'."""
        return self.value.rsplit("-", 1)[0]

    @property
    def descending(self) -> bool:
        """Check if the order is descending."""
        return self.value.endswith("-desc")

    @classmethod
    def parse(cls, value: Any) -> "SortOption":
        """
        Resolve a sort option from its string value.

        Raises:
            InvalidSortOptionError: If the value is not a supported option
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidSortOptionError(
                str(value), [option.value for option in cls]
            ) from None


class RatingTier(str, enum.Enum):
    """Rating classification: 1-3 low, 4-7 mid, 8-10 high."""

    LOW = "low"
    MID = "mid"
    HIGH = "high"

    @classmethod
    def classify(cls, rating: int) -> "RatingTier":
        if rating <= RATING_LOW_MAX:
            return cls.LOW
        if rating <= RATING_MID_MAX:
            return cls.MID
        return cls.HIGH


class ProfitTier(str, enum.Enum):
    """Net profit classification."""

    STRONG = "strong"
    GOOD = "good"
    FAIR = "fair"
    WEAK = "weak"

    @classmethod
    def classify(cls, profit: Decimal) -> "ProfitTier":
        if profit >= PROFIT_STRONG_MIN:
            return cls.STRONG
        if profit >= PROFIT_GOOD_MIN:
            return cls.GOOD
        if profit >= PROFIT_FAIR_MIN:
            return cls.FAIR
        return cls.WEAK


class PriceBand(str, enum.Enum):
    """Price classification for supplier and marketplace prices."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def classify_supplier(cls, price: Decimal) -> "PriceBand":
        return cls.HIGH if price > SUPPLIER_PRICE_HIGH_ABOVE else cls.LOW

    @classmethod
    def classify_marketplace(cls, price: Decimal) -> "PriceBand":
        if price > MARKETPLACE_PRICE_HIGH_ABOVE:
            return cls.HIGH
        if price >= MARKETPLACE_PRICE_MEDIUM_MIN:
            return cls.MEDIUM
        return cls.LOW


# =============================================================================
# INPUT MODEL
# =============================================================================

def reject_bool(value: Any) -> Any:
    """
    Refuse booleans for integer fields.

    pydantic's lax mode reads True/False as 1/0; numeric strings
    are still accepted.
    """
    if isinstance(value, bool):
        raise ValueError("Input should be a valid integer, not a boolean")
    return value


class RecordInput(BaseModel):
    """
    Validated input for creating or editing a product record.

    Instances are immutable. Build them with from_data() to get a
    ValidationError naming the first offending field.

    Attributes:
        name: Product display name
        storefront_url: Storefront listing link
        supplier_url: Supplier listing link
        ad_library_url: Ad library link
        supplier_price: Purchase price from the supplier
        marketplace_price: Current marketplace price, None if not listed
        target_sale_price: Planned sale price
        other_costs: Shipping, ads and other per-unit costs
        creative_count: Number of ad creatives produced
        rating: Evaluation score 1-10
        notes: Free text
        image_reference: Opaque preview reference
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    name: str = Field(..., min_length=1, description="Product name")
    storefront_url: str = Field(..., min_length=1, description="Storefront link")
    supplier_url: str = Field(..., min_length=1, description="Supplier link")
    ad_library_url: str = Field(..., min_length=1, description="Ad library link")
    supplier_price: Decimal = Field(..., ge=0)
    marketplace_price: Optional[Decimal] = Field(default=None, ge=0)
    target_sale_price: Decimal = Field(..., ge=0)
    other_costs: Decimal = Field(..., ge=0)
    creative_count: int = Field(..., ge=0)
    rating: int = Field(default=5, ge=1, le=10)
    notes: str = Field(default="")
    image_reference: str = Field(default="")

    @field_validator("marketplace_price", mode="before")
    @classmethod
    def blank_marketplace_price(cls, value: Any) -> Any:
        """An empty marketplace price means the product is not listed yet."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("creative_count", "rating", mode="before")
    @classmethod
    def integer_not_bool(cls, value: Any) -> Any:
        return reject_bool(value)

    @classmethod
    def from_data(cls, data: Any) -> "RecordInput":
        """
        Validate raw input in a single pass.

        Args:
            data: Mapping of field values (strings or numbers) or a RecordInput

        Returns:
            Fully typed RecordInput

        Raises:
            ValidationError: Naming the first field that failed
        """
        if isinstance(data, cls):
            return data

        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error.get("loc", ())) or "input"
            raise ValidationError(field, error.get("msg", "invalid value")) from exc


# =============================================================================
# RECORD MODEL
# =============================================================================

class ProductRecord(BaseModel):
    """
    One evaluated candidate product.

    Records are immutable; the store replaces a record with an updated copy.
    Derived fields are computed properties and are never stored.

    Example:
        >>> record.net_profit
        Decimal('250')
        >>> record.rating_tier
        <RatingTier.MID: 'mid'>
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., min_length=1)
    name: str
    storefront_url: str
    supplier_url: str
    ad_library_url: str
    supplier_price: Decimal = Field(..., ge=0)
    marketplace_price: Optional[Decimal] = Field(default=None, ge=0)
    target_sale_price: Decimal = Field(..., ge=0)
    other_costs: Decimal = Field(..., ge=0)
    creative_count: int = Field(..., ge=0)
    rating: int = Field(..., ge=1, le=10)
    notes: str = ""
    image_reference: str = ""
    state: TrialState = TrialState.UNTRIED
    # Last asserted success/failure. Kept across a revert to UNTRIED.
    recorded_outcome: Outcome = Outcome.UNTRIED
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_timezone(cls, value: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("creative_count", "rating", mode="before")
    @classmethod
    def integer_not_bool(cls, value: Any) -> Any:
        return reject_bool(value)

    # =========================================================================
    # DERIVED FIELDS
    # =========================================================================

    @computed_field
    @property
    def net_profit(self) -> Decimal:
        """Target sale price minus supplier price and other costs."""
        return self.target_sale_price - self.supplier_price - self.other_costs

    @computed_field
    @property
    def tried(self) -> bool:
        return self.state.tried

    @computed_field
    @property
    def outcome(self) -> Outcome:
        return self.state.outcome

    @computed_field
    @property
    def rating_tier(self) -> RatingTier:
        return RatingTier.classify(self.rating)

    @computed_field
    @property
    def profit_tier(self) -> ProfitTier:
        return ProfitTier.classify(self.net_profit)

    @computed_field
    @property
    def supplier_price_band(self) -> PriceBand:
        return PriceBand.classify_supplier(self.supplier_price)

    @computed_field
    @property
    def marketplace_price_band(self) -> Optional[PriceBand]:
        if self.marketplace_price is None:
            return None
        return PriceBand.classify_marketplace(self.marketplace_price)

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @classmethod
    def create(
        cls,
        record_id: str,
        data: RecordInput,
        created_at: datetime
    ) -> "ProductRecord":
        """Build a new untried record from validated input."""
        return cls(id=record_id, created_at=created_at, **data.model_dump())

    def with_input(self, data: RecordInput) -> "ProductRecord":
        """
        Copy with every mutable field replaced by the input.

        id, created_at and the trial state are kept. An empty image
        reference keeps the current preview.
        """
        changes = data.model_dump()
        if not changes["image_reference"]:
            changes["image_reference"] = self.image_reference
        return self.model_copy(update=changes)

    def with_outcome(self, succeeded: Optional[bool] = None) -> "ProductRecord":
        """Copy with the trial state advanced by one transition."""
        changes: dict = {"state": self.state.transition(succeeded)}
        if succeeded is not None:
            changes["recorded_outcome"] = (
                Outcome.SUCCEEDED if succeeded else Outcome.FAILED
            )
        return self.model_copy(update=changes)


STORED_FIELDS: List[str] = list(ProductRecord.model_fields)
