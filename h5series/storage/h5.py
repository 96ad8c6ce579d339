"""h5py implementation of the container backend."""

from __future__ import annotations

from pathlib import Path

import h5py
import numpy as np

from h5series.storage.backend import ContainerBackend
from h5series.storage.format import (
    COMPRESSION,
    COMPRESSION_OPTS,
    FILL_VALUE,
    SHUFFLE,
)


class H5pyBackend(ContainerBackend):
    """Stores period files as HDF5 through h5py.

    Datasets are float64, chunked, filtered with shuffle + gzip, and filled
    with NaN where nothing has been written.
    """

    def __init__(self, compression_opts: int = COMPRESSION_OPTS) -> None:
        self.compression_opts = compression_opts

    def create_file(self, path: Path) -> h5py.File:
        # "x" fails if the file exists
        return h5py.File(str(path), "x")

    def require_group(self, parent: h5py.Group, name: str) -> h5py.Group:
        return parent.require_group(name)

    def set_string_attribute(self, node: h5py.Group, name: str, value: str) -> None:
        node.attrs[name] = value

    def create_dataset(
        self, parent: h5py.Group, name: str, length: int, chunk_length: int
    ) -> h5py.Dataset:
        return parent.create_dataset(
            name,
            shape=(length,),
            dtype=np.float64,
            chunks=(chunk_length,),
            shuffle=SHUFFLE,
            compression=COMPRESSION,
            compression_opts=self.compression_opts,
            fillvalue=FILL_VALUE,
        )

    def write(self, dataset: h5py.Dataset, offset: int, data: np.ndarray) -> None:
        dataset[offset : offset + len(data)] = data

    def flush(self, file: h5py.File) -> None:
        if file.id.valid:
            file.flush()

    def close(self, file: h5py.File) -> None:
        if file.id.valid:
            file.close()
