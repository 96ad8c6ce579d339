"""Hdf5Writer — persists period-aligned sample blocks into chunked HDF5 files.

Usage:
    from h5series import Catalog, Hdf5Writer, WriteRequest, WriterContext

    writer = Hdf5Writer()
    writer.set_context(WriterContext(resource_locator="exports/"))

    items = catalog.catalog_items()
    writer.open(begin, timedelta(hours=1), timedelta(seconds=1), items)

    for offset, blocks in host_blocks():
        writer.write(offset, [WriteRequest(catalog_item=i, data=b) for i, b in zip(items, blocks)])

    writer.close()

Or from asyncio, with cooperative cancellation:

    token = CancellationToken()
    await writer.open_async(begin, period, sample_period, items, token=token)
    await writer.write_async(timedelta(0), requests, progress=print, token=token)
    await writer.close_async()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Iterable

import numpy as np

from h5series.cancellation import CancellationToken, OperationCancelled
from h5series.errors import ContractViolation, TargetExistsError, WriterStateError
from h5series.storage.backend import ContainerBackend
from h5series.storage.format import (
    DATE_TIME_ATTR,
    PROPERTIES_ATTR,
    SAMPLE_PERIOD_ATTR,
)
from h5series.storage.h5 import H5pyBackend
from h5series.storage.layout import DatasetKey, FileLayout, build_layout, dataset_key
from h5series.utils.schema import CatalogItem, WriteRequest, WriterContext
from h5series.utils.timefmt import element_offset, file_name, period_length

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

_IDLE = "idle"
_OPEN = "open"
_CLOSED = "closed"


class Hdf5Writer:
    """Writes one HDF5 file per period.

    Lifecycle is single-shot: open() once, write() any number of times,
    close() once. Calls on one instance must not overlap.

    Args:
        backend: Storage backend. Defaults to H5pyBackend.
    """

    def __init__(self, backend: ContainerBackend | None = None) -> None:
        self._backend = backend or H5pyBackend()
        self._context: WriterContext | None = None
        self._logger = logger

        self._state = _IDLE
        self._path: Path | None = None
        self._file: Any = None
        self._datasets: dict[DatasetKey, Any] = {}
        self._sample_period: timedelta | None = None
        self._total_length = 0

    def set_context(self, context: WriterContext, logger: logging.Logger | None = None) -> None:
        """Attach the host context. Must be called before open()."""
        self._context = context
        if logger is not None:
            self._logger = logger

    # ── Open ──────────────────────────────────────────────

    def open(
        self,
        file_begin: datetime,
        file_period: timedelta,
        sample_period: timedelta,
        catalog_items: Iterable[CatalogItem],
        token: CancellationToken | None = None,
    ) -> Path:
        """Create the file for one period and declare every dataset in it.

        Args:
            file_begin: Period begin (UTC).
            file_period: Period covered by the file.
            sample_period: Sample period of every dataset.
            catalog_items: Every time series that will be written to this file.
            token: Optional cancellation token, polled once per catalog.

        Returns:
            Path of the created file.

        Raises:
            TargetExistsError: If the file already exists.
            GeometryError: If the sample period leaves no samples in the period.
            LayoutError: If two items map onto the same dataset.
        """
        if self._state != _IDLE:
            raise WriterStateError(f"Writer is {self._state}; open() may only be called once.")
        if self._context is None:
            raise WriterStateError("No context set. Call .set_context() first.")

        length = period_length(file_period, sample_period)
        root = self._context.resource_locator
        path = root / file_name(file_begin, sample_period)

        if path.exists():
            raise TargetExistsError(
                f"The file {path} already exists. Extending an already existing file "
                "with additional resources is not supported."
            )

        layout = build_layout(file_begin, sample_period, length, catalog_items)

        root.mkdir(parents=True, exist_ok=True)
        file = self._backend.create_file(path)

        try:
            datasets = self._commit(file, layout, token)
            if token is not None:
                token.raise_if_cancelled()
            self._backend.flush(file)
        except BaseException:
            self._logger.warning("Open of %s failed, removing partial file.", path)
            self._backend.close(file)
            self._backend.remove(path)
            raise

        self._path = path
        self._file = file
        self._datasets = datasets
        self._sample_period = sample_period
        self._total_length = length
        self._state = _OPEN

        self._logger.info(
            "Created %s (%d catalogs, %d datasets of %d samples)",
            path,
            len(layout.catalogs),
            len(datasets),
            length,
        )
        return path

    def _commit(
        self, file: Any, layout: FileLayout, token: CancellationToken | None
    ) -> dict[DatasetKey, Any]:
        """Materialize the layout in a freshly created file."""
        backend = self._backend
        datasets: dict[DatasetKey, Any] = {}

        backend.set_string_attribute(file, DATE_TIME_ATTR, layout.date_time)
        backend.set_string_attribute(file, SAMPLE_PERIOD_ATTR, layout.sample_period)

        for catalog in layout.catalogs.values():
            if token is not None:
                token.raise_if_cancelled()

            catalog_group = backend.require_group(file, catalog.physical_id)
            if catalog.properties is not None:
                backend.set_string_attribute(catalog_group, PROPERTIES_ATTR, catalog.properties)

            for resource in catalog.resources.values():
                resource_group = backend.require_group(catalog_group, resource.id)
                if resource.properties is not None:
                    backend.set_string_attribute(resource_group, PROPERTIES_ATTR, resource.properties)

                for node in resource.datasets.values():
                    key = (catalog.physical_id, resource.id, node.name)
                    datasets[key] = backend.create_dataset(
                        resource_group, node.name, node.length, node.chunk_length
                    )

        return datasets

    # ── Write ─────────────────────────────────────────────

    def write(
        self,
        file_offset: timedelta,
        requests: Iterable[WriteRequest],
        progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Write sample blocks starting at file_offset within the period.

        Every request is resolved and bounds-checked before any data is
        written. Writes then proceed catalog by catalog; progress receives
        the fraction of requests written after each catalog.

        Args:
            file_offset: Offset from the period begin. Must be a multiple of
                the sample period.
            requests: Sample blocks, one per catalog item.
            progress: Optional callback receiving values in (0, 1].
            token: Optional cancellation token, polled before each request.

        Raises:
            ContractViolation: On a fractional offset, an undeclared item, or
                a block extending past the end of the period.
            OperationCancelled: If the token is cancelled. Blocks already
                written stay written.
        """
        if self._state != _OPEN:
            raise WriterStateError(f"Writer is {self._state}; call .open() before writing.")

        assert self._sample_period is not None
        offset = element_offset(file_offset, self._sample_period)
        requests = list(requests)

        groups: dict[str, list[tuple[Any, np.ndarray]]] = {}
        for request in requests:
            dataset = self._resolve(request.catalog_item)
            end = offset + len(request.data)
            if end > self._total_length:
                raise ContractViolation(
                    f"Write of {len(request.data)} samples at offset {offset} exceeds "
                    f"the file length of {self._total_length} samples."
                )
            groups.setdefault(request.catalog_item.catalog.id, []).append((dataset, request.data))

        backend = self._backend
        written = 0

        try:
            for group in groups.values():
                for dataset, data in group:
                    if token is not None:
                        token.raise_if_cancelled()
                    if len(data):
                        backend.write(dataset, offset, data)

                written += len(group)
                if progress is not None:
                    progress(written / len(requests))
        except BaseException as exc:
            if isinstance(exc, OperationCancelled):
                self._logger.info(
                    "Write at offset %d cancelled after %d of %d requests.",
                    offset,
                    written,
                    len(requests),
                )
            try:
                backend.flush(self._file)
            except Exception:
                # Keep the original error; the flush failure is only logged
                self._logger.exception("Flush of %s after a failed write also failed.", self._path)
            raise

        backend.flush(self._file)

        self._logger.debug(
            "Wrote %d requests in %d catalogs at offset %d", len(requests), len(groups), offset
        )

    def _resolve(self, item: CatalogItem) -> Any:
        key = dataset_key(item)
        try:
            return self._datasets[key]
        except KeyError:
            raise ContractViolation(
                f"Dataset '/{'/'.join(key)}' was not declared when the file was opened."
            ) from None

    # ── Close ─────────────────────────────────────────────

    def close(self) -> None:
        """Flush and release the file. No-op if the file was never opened."""
        if self._state != _OPEN:
            return

        file = self._file
        self._datasets = {}
        self._file = None
        self._state = _CLOSED

        self._backend.close(file)
        self._logger.info("Closed %s", self._path)

    def _discard(self) -> None:
        """Undo an open() whose caller was already told it was cancelled."""
        if self._state != _OPEN:
            return

        file, path = self._file, self._path
        self._datasets = {}
        self._file = None
        self._path = None
        self._state = _IDLE

        self._backend.close(file)
        self._backend.remove(path)
        self._logger.info("Discarded %s after cancelled open.", path)

    # ── Async surface ─────────────────────────────────────

    async def open_async(
        self,
        file_begin: datetime,
        file_period: timedelta,
        sample_period: timedelta,
        catalog_items: Iterable[CatalogItem],
        token: CancellationToken | None = None,
    ) -> Path:
        """open() on a worker thread."""
        return await self._run(
            self.open,
            file_begin,
            file_period,
            sample_period,
            list(catalog_items),
            token=token,
            rollback=self._discard,
        )

    async def write_async(
        self,
        file_offset: timedelta,
        requests: Iterable[WriteRequest],
        progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """write() on a worker thread. progress is called from that thread."""
        await self._run(self.write, file_offset, list(requests), progress, token=token)

    async def close_async(self) -> None:
        await asyncio.to_thread(self.close)

    @staticmethod
    async def _run(
        func: Callable[..., Any],
        *args: Any,
        token: CancellationToken | None,
        rollback: Callable[[], None] | None = None,
    ) -> Any:
        """Run func on a worker thread; on cancellation, stop it and wait for it to unwind.

        rollback runs if the worker completed anyway after the caller was cancelled.
        """
        token = token or CancellationToken()
        future = asyncio.ensure_future(asyncio.to_thread(func, *args, token=token))
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # Stop the worker at its next poll, then wait until it releases its handles
            token.cancel()
            await asyncio.wait({future})
            if not future.cancelled() and future.exception() is None and rollback is not None:
                await asyncio.to_thread(rollback)
            raise

    # ── Properties ────────────────────────────────────────

    @property
    def path(self) -> Path | None:
        """Path of the open (or last opened) file."""
        return self._path

    @property
    def is_open(self) -> bool:
        return self._state == _OPEN

    @property
    def total_length(self) -> int:
        """Samples per dataset in the open file."""
        return self._total_length

    @property
    def sample_period(self) -> timedelta | None:
        return self._sample_period

    # Context manager support
    def __enter__(self) -> Hdf5Writer:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Hdf5Writer(path={str(self._path) if self._path else None!r}, status={self._state})"
