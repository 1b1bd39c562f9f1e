"""Identity and user profile schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from canteen.schemas.records import Record


class Role(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"


class Identity(BaseModel):
    """Signed-in identity as reported by the identity service."""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str
    display_name: str = ""
    photo_url: str | None = None
    provider: str = "password"


class UserProfile(Record):
    """Profile stored in the ``users`` collection under the identity uid."""

    uid: str
    email: str
    display_name: str = Field(default="", alias="displayName")
    photo_url: str | None = Field(default=None, alias="photoURL")
    role: Role = Role.CUSTOMER
    phone_number: str | None = Field(default=None, alias="phoneNumber")

    @property
    def is_staff(self) -> bool:
        return self.role in {Role.ADMIN, Role.VENDOR}
