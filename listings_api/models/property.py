from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LISTING_TYPE = "buyers"


class PropertyRecord(BaseModel):
    """One listing as persisted by either store backend.

    Unknown keys are kept so records written by older versions survive a
    load/save cycle untouched.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    title: str = ""
    description: str = ""
    location: str | None = None
    type: str = DEFAULT_LISTING_TYPE  # buyers, sellers, rentals
    category: str | None = None       # flat, villa, plot, ...
    price: float | None = None
    negotiable: bool = False
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    carpetArea: float | None = Field(default=None, ge=0)
    builtupArea: float | None = Field(default=None, ge=0)
    area: float | None = Field(default=None, ge=0)
    images: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)
    createdAt: datetime | None = None
    updatedAt: datetime | None = None

    def to_document(self) -> dict:
        """Plain dict for storage; unset optional fields are left out."""
        return self.model_dump(mode="json", exclude_none=True)
