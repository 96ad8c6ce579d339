"""Pydantic models for the catalog hierarchy and writer inputs."""

from __future__ import annotations

import re
from datetime import timedelta
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
from urllib.request import url2pathname

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from h5series.utils.timefmt import to_unit_string

_CATALOG_ID = re.compile(r"^(?:/[a-zA-Z_][a-zA-Z_0-9]*)+$")
_RESOURCE_ID = re.compile(r"^[a-zA-Z_][a-zA-Z_0-9]*$")
_REPRESENTATION_ID = re.compile(r"^[a-zA-Z0-9_]+$")


class Representation(BaseModel):
    """One stored form of a resource, e.g. the 1 s mean. Maps to one dataset."""

    model_config = ConfigDict(frozen=True)

    id: str
    sample_period: timedelta | None = None

    @field_validator("id")
    @classmethod
    def check_id(cls, v: str) -> str:
        if not _REPRESENTATION_ID.match(v):
            raise ValueError(f"Invalid representation id '{v}'.")
        return v

    @classmethod
    def from_sample_period(cls, sample_period: timedelta, kind: str = "original") -> Representation:
        """Build a representation whose id is derived from its sample period.

        Example:
            Representation.from_sample_period(timedelta(seconds=1)).id          # "1_s"
            Representation.from_sample_period(timedelta(seconds=1), "mean").id  # "1_s_mean"
        """
        rep_id = to_unit_string(sample_period, underscore=True)
        if kind != "original":
            rep_id = f"{rep_id}_{kind}"
        return cls(id=rep_id, sample_period=sample_period)


class Resource(BaseModel):
    """A measured quantity within a catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    properties: dict[str, Any] | None = None
    representations: list[Representation] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def check_id(cls, v: str) -> str:
        if not _RESOURCE_ID.match(v):
            raise ValueError(f"Invalid resource id '{v}'.")
        return v


class Catalog(BaseModel):
    """A collection of resources, identified by a path-like id such as /A/B/C."""

    model_config = ConfigDict(frozen=True)

    id: str
    properties: dict[str, Any] | None = None
    resources: list[Resource] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def check_id(cls, v: str) -> str:
        if not _CATALOG_ID.match(v):
            raise ValueError(f"Invalid catalog id '{v}'.")
        return v

    def catalog_items(self) -> list[CatalogItem]:
        """One item per resource/representation pair, without parameters."""
        return [
            CatalogItem(catalog=self, resource=resource, representation=representation)
            for resource in self.resources
            for representation in resource.representations
        ]


class CatalogItem(BaseModel):
    """Identifies one logical time series."""

    model_config = ConfigDict(frozen=True)

    catalog: Catalog
    resource: Resource
    representation: Representation
    parameters: dict[str, str] | None = None


class WriteRequest(BaseModel):
    """A block of samples for one catalog item."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    catalog_item: CatalogItem
    data: np.ndarray

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, v: Any) -> np.ndarray:
        arr = np.ascontiguousarray(v, dtype=np.float64)
        if arr.ndim != 1:
            raise ValueError(f"Sample buffer must be one-dimensional, got shape {arr.shape}")
        return arr


class WriterContext(BaseModel):
    """Host-supplied context: where files go plus free-form configuration."""

    resource_locator: Path
    system_configuration: dict[str, Any] | None = None
    request_configuration: dict[str, Any] | None = None

    @field_validator("resource_locator", mode="before")
    @classmethod
    def coerce_locator(cls, v: Any) -> Any:
        if isinstance(v, str) and v.startswith("file:"):
            return Path(url2pathname(urlparse(v).path))
        return v
