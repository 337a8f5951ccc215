"""Magic link recipients and their delivery capabilities."""

from enum import Enum
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, validate_email
from pydantic_core import PydanticCustomError


class NotificationChannel(str, Enum):
    """Delivery channels a magic link can travel through."""

    MAIL = "mail"
    SMS = "sms"
    WHATSAPP = "whatsapp"


class EmailIdentifier(BaseModel):
    """Email-shaped identifier, stored in the `email` column."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["email"] = "email"
    value: str = Field(..., min_length=1, description="邮箱")

    capabilities: ClassVar[tuple[NotificationChannel, ...]] = (NotificationChannel.MAIL,)
    column: ClassVar[str] = "email"


class PhoneIdentifier(BaseModel):
    """Anything that is not an email address; stored in the `phone` column."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["phone"] = "phone"
    value: str = Field(..., min_length=1, description="手机号")

    capabilities: ClassVar[tuple[NotificationChannel, ...]] = (
        NotificationChannel.WHATSAPP,
        NotificationChannel.SMS,
    )
    column: ClassVar[str] = "phone"


Recipient = Annotated[EmailIdentifier | PhoneIdentifier, Field(discriminator="kind")]


def classify_identifier(identifier: str) -> EmailIdentifier | PhoneIdentifier:
    """Classify a raw identifier as email or phone.

    Classification never fails: whatever does not validate as an email
    address is treated as a phone number.
    """
    value = identifier.strip()
    try:
        validate_email(value)
    except PydanticCustomError:
        return PhoneIdentifier(value=value)
    return EmailIdentifier(value=value)
