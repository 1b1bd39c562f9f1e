"""Cart line and cart state schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from canteen.schemas.catalog import MenuItem, Restaurant


class CartLine(BaseModel):
    """A menu item snapshot plus a positive quantity."""

    model_config = ConfigDict(frozen=True)

    item: MenuItem
    quantity: int = Field(ge=1)

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def line_total(self) -> Decimal:
        return self.item.price * self.quantity


class CartState(BaseModel):
    """In-progress order. Lines keep insertion order and unique item ids."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    restaurant: Restaurant | None = None
    lines: tuple[CartLine, ...] = ()

    @field_validator("lines")
    @classmethod
    def _unique_ids(cls, lines: tuple[CartLine, ...]) -> tuple[CartLine, ...]:
        ids = [line.id for line in lines]
        if len(ids) != len(set(ids)):
            raise ValueError("cart lines must have unique item ids")
        return lines

    @computed_field
    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def line_for(self, item_id: str) -> CartLine | None:
        for line in self.lines:
            if line.id == item_id:
                return line
        return None
