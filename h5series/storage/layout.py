"""Namespace construction: catalog items -> group/dataset tree for one file.

The layout is computed in memory before anything touches the disk. The writer
then commits it through a ContainerBackend in a single pass.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Iterator

from h5series.errors import GeometryError, LayoutError
from h5series.storage.chunking import plan_chunks
from h5series.storage.format import DATASET_PREFIX, JSON_INDENT
from h5series.utils.schema import CatalogItem
from h5series.utils.timefmt import format_date_time, to_unit_string

logger = logging.getLogger(__name__)

DatasetKey = tuple[str, str, str]


def physical_id(catalog_id: str) -> str:
    """Group name for a catalog: /A/B/C -> A_B_C."""
    return catalog_id.lstrip("/").replace("/", "_")


def dataset_name(representation_id: str, parameters: dict[str, str] | None = None) -> str:
    """Dataset name for a representation, e.g. dataset_1_s or dataset_1_s(window=5).

    Parameters are sorted by key so equal maps always give the same name.
    """
    name = f"{DATASET_PREFIX}{representation_id}"
    if parameters:
        pairs = ",".join(f"{key}={value}" for key, value in sorted(parameters.items()))
        name = f"{name}({pairs})"
    return name


def dataset_key(item: CatalogItem) -> DatasetKey:
    return (
        physical_id(item.catalog.id),
        item.resource.id,
        dataset_name(item.representation.id, item.parameters),
    )


def serialize_properties(properties: dict[str, Any] | None) -> str | None:
    if properties is None:
        return None
    return json.dumps(properties, indent=JSON_INDENT)


@dataclass
class DatasetNode:
    name: str
    length: int
    chunk_length: int
    chunk_count: int


@dataclass
class ResourceNode:
    id: str
    properties: str | None = None
    datasets: dict[str, DatasetNode] = field(default_factory=dict)


@dataclass
class CatalogNode:
    physical_id: str
    catalog_id: str
    properties: str | None = None
    resources: dict[str, ResourceNode] = field(default_factory=dict)


@dataclass
class FileLayout:
    """Complete namespace of one period file."""

    date_time: str
    sample_period: str
    total_length: int
    catalogs: dict[str, CatalogNode] = field(default_factory=dict)

    def walk(self) -> Iterator[tuple[CatalogNode, ResourceNode, DatasetNode]]:
        for catalog in self.catalogs.values():
            for resource in catalog.resources.values():
                for dataset in resource.datasets.values():
                    yield catalog, resource, dataset

    @property
    def num_datasets(self) -> int:
        return sum(1 for _ in self.walk())

    def __repr__(self) -> str:
        return (
            f"FileLayout(date_time='{self.date_time}', sample_period='{self.sample_period}', "
            f"catalogs={len(self.catalogs)}, datasets={self.num_datasets})"
        )


def build_layout(
    begin: datetime,
    sample_period: timedelta,
    total_length: int,
    catalog_items: Iterable[CatalogItem],
) -> FileLayout:
    """Build the group/dataset tree for all catalog items of one file.

    Args:
        begin: Period begin.
        sample_period: Sample period shared by every dataset in the file.
        total_length: Elements per dataset.
        catalog_items: Items to declare. Items sharing a catalog or resource
            share the corresponding group.

    Returns:
        The file layout.

    Raises:
        GeometryError: If total_length leaves no positive chunk length.
        LayoutError: If two items map onto the same dataset, or two catalogs
            onto the same group.
    """
    layout = FileLayout(
        date_time=format_date_time(begin),
        sample_period=to_unit_string(sample_period),
        total_length=total_length,
    )
    chunk_length, chunk_count = plan_chunks(total_length)

    for item in catalog_items:
        catalog_id, resource_id, name = dataset_key(item)

        catalog = layout.catalogs.get(catalog_id)
        if catalog is None:
            catalog = CatalogNode(
                catalog_id, item.catalog.id, serialize_properties(item.catalog.properties)
            )
            layout.catalogs[catalog_id] = catalog
        elif catalog.catalog_id != item.catalog.id:
            raise LayoutError(
                f"Catalogs '{catalog.catalog_id}' and '{item.catalog.id}' both map to group '{catalog_id}'."
            )

        resource = catalog.resources.get(resource_id)
        if resource is None:
            resource = ResourceNode(resource_id, serialize_properties(item.resource.properties))
            catalog.resources[resource_id] = resource

        if chunk_length <= 0:
            raise GeometryError(
                f"Sample rate too low: sample period {layout.sample_period} leaves "
                f"no samples for '{item.catalog.id}/{resource_id}/{item.representation.id}'."
            )
        if "/" in name:
            raise LayoutError(f"Dataset name '{name}' must not contain '/'.")
        if name in resource.datasets:
            raise LayoutError(
                f"Duplicate dataset '{name}' in '{item.catalog.id}/{resource_id}'."
            )

        resource.datasets[name] = DatasetNode(name, chunk_length * chunk_count, chunk_length, chunk_count)

    logger.debug("Built %r", layout)
    return layout
