from pydantic import BaseModel, ConfigDict


class AppBaseModel(BaseModel):
    """Base for request bodies, responses and stream envelopes."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        str_max_length=65536,
        extra="forbid",
        validate_default=True,
    )
