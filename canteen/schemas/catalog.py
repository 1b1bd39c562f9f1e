"""Restaurant and menu item schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field

from canteen.schemas.records import Record


class OpeningHours(BaseModel):
    open: str = "09:00"
    close: str = "17:00"


class Restaurant(Record):
    """A campus canteen, owned by one vendor."""

    vendor_id: str = Field(alias="vendorId")
    name: str
    description: str = ""
    image_url: str = Field(default="", alias="imageUrl")
    location: str = ""
    opening_hours: OpeningHours = Field(default_factory=OpeningHours, alias="openingHours")
    tags: list[str] = Field(default_factory=list)


class MenuItem(Record):
    """Dish offered by a restaurant."""

    restaurant_id: str = Field(alias="restaurantId")
    name: str
    description: str = ""
    price: Decimal = Field(ge=0)
    image_url: str = Field(default="", alias="imageUrl")
    category: str = ""
    is_available: bool = Field(default=True, alias="isAvailable")
    preparation_time: int = Field(default=0, ge=0, alias="preparationTime")
    tags: list[str] = Field(default_factory=list)
