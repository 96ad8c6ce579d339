"""h5series Example: Exporting two hours of plant measurements

Simulates a host pipeline that exports two catalogs of 1 Hz sensor data
into hourly HDF5 files, delivering samples in 10-minute blocks through
the async API, then prints the resulting file layout.

No external dependencies beyond h5series required.

Run:
    python examples/export_measurements.py

Output:
    - Creates exports/2024-03-01T00-00-00Z_1 s.h5 and exports/2024-03-01T01-00-00Z_1 s.h5
    - Prints each file's groups and datasets
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import h5py
import numpy as np

from h5series import (
    Catalog,
    Hdf5Writer,
    Representation,
    Resource,
    WriteRequest,
    WriterContext,
)

OUTPUT_DIR = Path("exports")
BEGIN = datetime(2024, 3, 1, tzinfo=timezone.utc)
FILE_PERIOD = timedelta(hours=1)
SAMPLE_PERIOD = timedelta(seconds=1)
BLOCK_PERIOD = timedelta(minutes=10)


def build_catalogs() -> list[Catalog]:
    one_second = Representation.from_sample_period(SAMPLE_PERIOD)
    one_second_mean = Representation.from_sample_period(SAMPLE_PERIOD, "mean")

    return [
        Catalog(
            id="/plant/line1",
            properties={"site": "north", "commissioned": 2019},
            resources=[
                Resource(
                    id="motor_speed",
                    properties={"unit": "rpm"},
                    representations=[one_second, one_second_mean],
                ),
                Resource(id="motor_current", properties={"unit": "A"}, representations=[one_second]),
            ],
        ),
        Catalog(
            id="/plant/weather",
            resources=[
                Resource(id="temperature", properties={"unit": "°C"}, representations=[one_second]),
            ],
        ),
    ]


def simulate_block(rng: np.random.Generator, start: int, length: int) -> np.ndarray:
    t = np.arange(start, start + length)
    return 100 + 10 * np.sin(2 * np.pi * t / 3600) + rng.normal(0, 0.5, length)


async def export(hours: int = 2) -> list[Path]:
    rng = np.random.default_rng(0)
    items = [item for catalog in build_catalogs() for item in catalog.catalog_items()]
    block_length = BLOCK_PERIOD // SAMPLE_PERIOD
    paths = []

    for hour in range(hours):
        writer = Hdf5Writer()
        writer.set_context(WriterContext(resource_locator=OUTPUT_DIR))

        file_begin = BEGIN + hour * FILE_PERIOD
        paths.append(await writer.open_async(file_begin, FILE_PERIOD, SAMPLE_PERIOD, items))

        try:
            offset = timedelta(0)
            while offset < FILE_PERIOD:
                start = (hour * FILE_PERIOD + offset) // SAMPLE_PERIOD
                requests = [
                    WriteRequest(catalog_item=item, data=simulate_block(rng, start, block_length))
                    for item in items
                ]
                await writer.write_async(
                    offset,
                    requests,
                    progress=lambda p: print(f"  {file_begin:%H:%M} +{offset}: {p:.0%}"),
                )
                offset += BLOCK_PERIOD
        finally:
            await writer.close_async()

    return paths


def print_layout(path: Path) -> None:
    print(f"\n{path}")
    with h5py.File(path, "r") as f:
        print(f"  date_time={f.attrs['date_time']}  sample_period={f.attrs['sample_period']}")

        def visit(name: str, node) -> None:
            if isinstance(node, h5py.Dataset):
                print(f"  /{name}  shape={node.shape}  chunks={node.chunks}  mean={np.nanmean(node[:]):.2f}")
            else:
                print(f"  /{name}/")

        f.visititems(visit)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    for path in asyncio.run(export()):
        print_layout(path)
