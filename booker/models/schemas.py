from datetime import date
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TIME_24H_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class Preferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    days_ahead: int | None = Field(default=None, ge=0, le=14)
    start_hour: int | None = Field(default=None, ge=0, le=23)
    end_hour: int | None = Field(default=None, ge=1, le=24)
    min_minutes: int | None = Field(default=None, ge=30, le=120)
    indoor_only: bool | None = None
    locations: list[str] | None = None
    dates: list[date] | None = Field(default=None, description="Explicit ISO dates to keep")

    @model_validator(mode="after")
    def check_hour_window(self) -> "Preferences":
        if (
            self.start_hour is not None
            and self.end_hour is not None
            and self.start_hour >= self.end_hour
        ):
            raise ValueError("start_hour must be earlier than end_hour")
        return self


class BookingRequest(BaseModel):
    facility_url: str = Field(..., description="A deep_link previously returned by a scan")
    time_24h: str = Field(..., pattern=TIME_24H_PATTERN, description="Start time as HH:MM")
    duration_hours: Literal[1, 2] = 1
    num_people: int = Field(default=1, ge=1, le=4)

    @field_validator("facility_url")
    @classmethod
    def check_facility_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("facility_url must be an http(s) URL")
        return value


class CheckNowRequest(BaseModel):
    preferences: Preferences = Field(default_factory=Preferences)


class SlotResponse(BaseModel):
    date_iso: str
    time_24h: str
    minutes: int
    location: str
    deep_link: str | None = None


class CheckNowResponse(BaseModel):
    slots: list[SlotResponse]
    degraded: bool = False
    reason: str | None = None


class BookedSlotResponse(BaseModel):
    time: str
    duration: int
    location: str


class BookingResponse(BaseModel):
    success: bool
    message: str
    confirmation_number: str | None = None
    booked_slot: BookedSlotResponse | None = None


class NotifyPriority(str, Enum):
    INFO = "info"
    WARN = "warn"
    URGENT = "urgent"


class NotifyTarget(BaseModel):
    email: str | None = None
    sms: str | None = None
    telegram_chat_id: str | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str | None) -> str | None:
        if value is not None and "@" not in value:
            raise ValueError("email must be a valid address")
        return value


class NotifyRequest(BaseModel):
    notify: NotifyTarget | None = None
    text: str = Field(..., min_length=1)
    priority: NotifyPriority | None = None


class NotifyResponse(BaseModel):
    ok: bool = True
    via: Literal["telegram", "sms", "email"]
    target: str
