from pydantic import BaseModel, ConfigDict, Field, field_validator

_TRUTHY = {"on", "true", "1", "yes"}


class ListingFields(BaseModel):
    """Scalar listing fields as submitted by the admin upload form.

    Every field is optional: on create unset fields fall back to the record
    defaults, on update only the fields actually sent are overwritten.
    """

    title: str | None = None
    description: str | None = None
    location: str | None = None
    type: str | None = None
    category: str | None = None
    price: float | None = None
    negotiable: bool | None = None
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    carpetArea: float | None = Field(default=None, ge=0)
    builtupArea: float | None = Field(default=None, ge=0)
    area: float | None = Field(default=None, ge=0)

    @field_validator(
        "price", "bedrooms", "bathrooms", "carpetArea", "builtupArea", "area",
        mode="before",
    )
    @classmethod
    def _blank_number_is_none(cls, v):
        # HTML forms send "" for empty number inputs
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("negotiable", mode="before")
    @classmethod
    def _checkbox(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in _TRUTHY
        return v


class ListingCreated(BaseModel):
    success: bool = True
    id: str
    property: dict


class ListingUpdated(BaseModel):
    success: bool = True
    property: dict


class ListingDeleted(BaseModel):
    success: bool = True
    message: str = "Property deleted successfully"


class SellerSubmission(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    email: str | None = None
    type: str | None = None
    location: str | None = None
    description: str | None = None
