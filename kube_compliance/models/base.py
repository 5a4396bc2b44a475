"""Base model configuration for all data structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base model with standard configuration.

    Unknown fields are ignored so that documents written by newer aggregator
    versions still validate.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)
