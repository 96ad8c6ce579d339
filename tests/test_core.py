"""Tests for the h5series core pipeline: declare → open → write → close → read back."""

import json
import math
from datetime import datetime, timedelta, timezone

import h5py
import numpy as np
import pytest

from h5series import (
    Catalog,
    CatalogItem,
    Hdf5Writer,
    Representation,
    Resource,
    WriteRequest,
    WriterContext,
)

BEGIN = datetime(2020, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
SAMPLE_PERIOD = timedelta(seconds=1)
FILE_PERIOD = timedelta(seconds=2000)
LENGTH = 1000


def make_catalogs() -> list[Catalog]:
    return [
        Catalog(
            id="/A/B/C",
            properties={"my-custom-prop": "my-custom-value", "nested": {"a": [1, 2, 3]}},
            resources=[
                Resource(
                    id="resource1",
                    properties={"unit": "m/s", "groups": ["group1", "group2"]},
                    representations=[
                        Representation(id="1_s"),
                        Representation(id="1_s_mean"),
                    ],
                ),
                Resource(
                    id="resource2",
                    representations=[Representation(id="1_s")],
                ),
            ],
        ),
        Catalog(
            id="/D/E/F",
            properties={"description": "second catalog"},
            resources=[
                Resource(
                    id="resource3",
                    properties={"unit": "°C"},
                    representations=[Representation(id="1_s")],
                ),
            ],
        ),
    ]


def read_attr(node, name):
    value = node.attrs[name]
    return value.decode() if isinstance(value, bytes) else value


# ── Schema Models ──────────────────────────────────────────


class TestSchemaModels:
    def test_catalog_items_expand_all_representations(self):
        catalogs = make_catalogs()
        items = catalogs[0].catalog_items()
        assert len(items) == 3
        assert [(i.resource.id, i.representation.id) for i in items] == [
            ("resource1", "1_s"),
            ("resource1", "1_s_mean"),
            ("resource2", "1_s"),
        ]
        assert all(i.parameters is None for i in items)

    def test_representation_from_sample_period(self):
        assert Representation.from_sample_period(timedelta(seconds=1)).id == "1_s"
        assert Representation.from_sample_period(timedelta(milliseconds=100), "mean").id == "100_ms_mean"

    def test_invalid_ids_rejected(self):
        with pytest.raises(ValueError):
            Catalog(id="A/B")
        with pytest.raises(ValueError):
            Catalog(id="/A//B")
        with pytest.raises(ValueError):
            Resource(id="1abc")
        with pytest.raises(ValueError):
            Representation(id="1/s")

    def test_write_request_coerces_to_float64(self):
        item = make_catalogs()[0].catalog_items()[0]
        request = WriteRequest(catalog_item=item, data=[1, 2, 3])
        assert request.data.dtype == np.float64
        assert request.data.flags["C_CONTIGUOUS"]

    def test_write_request_rejects_2d(self):
        item = make_catalogs()[0].catalog_items()[0]
        with pytest.raises(ValueError, match="one-dimensional"):
            WriteRequest(catalog_item=item, data=np.zeros((2, 2)))

    def test_context_accepts_file_uri(self, tmp_path):
        context = WriterContext(resource_locator=tmp_path.as_uri())
        assert context.resource_locator == tmp_path


# ── End to end ─────────────────────────────────────────────


class TestEndToEnd:
    @pytest.fixture
    def written_file(self, tmp_path):
        """Two catalogs, two writes of the same 1000 samples at 0 s and 1000 s."""
        catalogs = make_catalogs()
        items = [item for catalog in catalogs for item in catalog.catalog_items()]

        rng = np.random.default_rng(1)
        data = [
            rng.random(LENGTH) * 1e4,
            rng.random(LENGTH) * -1,
            rng.random(LENGTH) * math.pi,
            rng.random(LENGTH),
        ]
        requests = [WriteRequest(catalog_item=item, data=d) for item, d in zip(items, data)]

        writer = Hdf5Writer()
        writer.set_context(WriterContext(resource_locator=tmp_path))
        writer.open(BEGIN, FILE_PERIOD, SAMPLE_PERIOD, items)
        writer.write(timedelta(0), requests)
        writer.write(timedelta(seconds=LENGTH), requests)
        writer.close()

        return tmp_path, catalogs, data

    def test_single_file_created(self, written_file):
        folder, _, _ = written_file
        files = sorted(folder.iterdir())
        assert len(files) == 1
        assert files[0].name == "2020-01-01T00-00-00Z_1 s.h5"

    def test_root_attributes(self, written_file):
        folder, _, _ = written_file
        with h5py.File(next(folder.iterdir()), "r") as f:
            assert read_attr(f, "date_time") == "2020-01-01T00:00:00Z"
            assert read_attr(f, "sample_period") == "1 s"

    def test_group_counts(self, written_file):
        folder, catalogs, _ = written_file
        with h5py.File(next(folder.iterdir()), "r") as f:
            assert set(f.keys()) == {"A_B_C", "D_E_F"}
            assert len(f["A_B_C"]) == len(catalogs[0].resources)
            assert len(f["A_B_C/resource1"]) == len(catalogs[0].resources[0].representations)
            assert len(f["D_E_F"]) == len(catalogs[1].resources)
            assert len(f["D_E_F/resource3"]) == 1

    def test_properties_attributes(self, written_file):
        folder, catalogs, _ = written_file
        with h5py.File(next(folder.iterdir()), "r") as f:
            assert read_attr(f["A_B_C"], "properties") == json.dumps(catalogs[0].properties, indent=2)
            assert read_attr(f["A_B_C/resource1"], "properties") == json.dumps(
                catalogs[0].resources[0].properties, indent=2
            )
            assert read_attr(f["D_E_F"], "properties") == json.dumps(catalogs[1].properties, indent=2)
            assert read_attr(f["D_E_F/resource3"], "properties") == json.dumps(
                catalogs[1].resources[0].properties, indent=2
            )

    def test_properties_omitted_when_absent(self, written_file):
        folder, _, _ = written_file
        with h5py.File(next(folder.iterdir()), "r") as f:
            assert "properties" not in f["A_B_C/resource2"].attrs

    def test_data_concatenated(self, written_file):
        folder, _, data = written_file
        with h5py.File(next(folder.iterdir()), "r") as f:
            np.testing.assert_array_equal(
                f["A_B_C/resource1/dataset_1_s"][:], np.concatenate([data[0], data[0]])
            )
            np.testing.assert_array_equal(
                f["A_B_C/resource1/dataset_1_s_mean"][:], np.concatenate([data[1], data[1]])
            )
            np.testing.assert_array_equal(
                f["A_B_C/resource2/dataset_1_s"][:], np.concatenate([data[2], data[2]])
            )
            np.testing.assert_array_equal(
                f["D_E_F/resource3/dataset_1_s"][:], np.concatenate([data[3], data[3]])
            )

    def test_dataset_storage_options(self, written_file):
        folder, _, _ = written_file
        with h5py.File(next(folder.iterdir()), "r") as f:
            ds = f["A_B_C/resource1/dataset_1_s"]
            assert ds.shape == (2000,)
            assert ds.dtype == np.float64
            assert ds.chunks == (2000,)
            assert ds.shuffle
            assert ds.compression == "gzip"
            assert math.isnan(ds.fillvalue)


# ── Partial writes ─────────────────────────────────────────


class TestPartialWrites:
    def test_unwritten_elements_are_nan(self, tmp_path):
        items = make_catalogs()[1].catalog_items()
        with Hdf5Writer() as writer:
            writer.set_context(WriterContext(resource_locator=tmp_path))
            path = writer.open(BEGIN, timedelta(seconds=100), SAMPLE_PERIOD, items)
            writer.write(timedelta(seconds=10), [WriteRequest(catalog_item=items[0], data=np.arange(5.0))])

        with h5py.File(path, "r") as f:
            values = f["D_E_F/resource3/dataset_1_s"][:]
        assert np.isnan(values[:10]).all()
        np.testing.assert_array_equal(values[10:15], np.arange(5.0))
        assert np.isnan(values[15:]).all()

    def test_disjoint_writes_out_of_order(self, tmp_path):
        items = make_catalogs()[1].catalog_items()
        with Hdf5Writer() as writer:
            writer.set_context(WriterContext(resource_locator=tmp_path))
            path = writer.open(BEGIN, timedelta(seconds=30), SAMPLE_PERIOD, items)
            writer.write(timedelta(seconds=20), [WriteRequest(catalog_item=items[0], data=np.full(10, 3.0))])
            writer.write(timedelta(seconds=0), [WriteRequest(catalog_item=items[0], data=np.full(10, 1.0))])
            writer.write(timedelta(seconds=10), [WriteRequest(catalog_item=items[0], data=np.full(10, 2.0))])

        with h5py.File(path, "r") as f:
            values = f["D_E_F/resource3/dataset_1_s"][:]
        np.testing.assert_array_equal(values, np.repeat([1.0, 2.0, 3.0], 10))

    def test_parameterized_representations(self, tmp_path):
        catalog = Catalog(
            id="/X",
            resources=[Resource(id="r", representations=[Representation(id="1_s")])],
        )
        base = catalog.catalog_items()[0]
        windowed = CatalogItem(
            catalog=catalog,
            resource=base.resource,
            representation=base.representation,
            parameters={"window": "5"},
        )

        with Hdf5Writer() as writer:
            writer.set_context(WriterContext(resource_locator=tmp_path))
            path = writer.open(BEGIN, timedelta(seconds=4), SAMPLE_PERIOD, [base, windowed])
            writer.write(
                timedelta(0),
                [
                    WriteRequest(catalog_item=base, data=[1, 2, 3, 4]),
                    WriteRequest(catalog_item=windowed, data=[5, 6, 7, 8]),
                ],
            )

        with h5py.File(path, "r") as f:
            assert set(f["X/r"].keys()) == {"dataset_1_s", "dataset_1_s(window=5)"}
            np.testing.assert_array_equal(f["X/r/dataset_1_s(window=5)"][:], [5, 6, 7, 8])
