"""h5series — period-chunked HDF5 writer for numeric time series.

Persists blocks of samples into one HDF5 file per period, laid out as
/<catalog>/<resource>/dataset_<representation>, with shuffle + gzip
compressed chunks and JSON property bags as attributes.

Quick start:
    from datetime import datetime, timedelta, timezone
    from h5series import Catalog, Hdf5Writer, Representation, Resource, WriteRequest, WriterContext

    catalog = Catalog(
        id="/plant/line1",
        properties={"site": "north"},
        resources=[
            Resource(id="temperature", representations=[
                Representation.from_sample_period(timedelta(seconds=1)),
            ]),
        ],
    )
    items = catalog.catalog_items()

    with Hdf5Writer() as writer:
        writer.set_context(WriterContext(resource_locator="exports/"))
        writer.open(datetime(2020, 1, 1, tzinfo=timezone.utc), timedelta(hours=1), timedelta(seconds=1), items)
        writer.write(timedelta(0), [WriteRequest(catalog_item=items[0], data=samples)])
"""

__version__ = "0.1.0"

from h5series.cancellation import CancellationToken, OperationCancelled
from h5series.errors import (
    ConfigurationError,
    ContractViolation,
    GeometryError,
    H5SeriesError,
    LayoutError,
    TargetExistsError,
    WriterStateError,
)
from h5series.utils.schema import (
    Catalog,
    CatalogItem,
    Representation,
    Resource,
    WriteRequest,
    WriterContext,
)
from h5series.writer import Hdf5Writer

WRITER_DESCRIPTION = {"label": "HDF5 1.10 (*.h5)"}

__all__ = [
    "CancellationToken",
    "Catalog",
    "CatalogItem",
    "ConfigurationError",
    "ContractViolation",
    "GeometryError",
    "H5SeriesError",
    "Hdf5Writer",
    "LayoutError",
    "OperationCancelled",
    "Representation",
    "Resource",
    "TargetExistsError",
    "WRITER_DESCRIPTION",
    "WriteRequest",
    "WriterContext",
    "WriterStateError",
    "__version__",
]
