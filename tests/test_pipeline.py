import json

import pytest

from geosample.errors import SchemaDetectionError
from geosample.pipeline import load_dataset, load_file, switch_dataset_field

MULTI_FIELD_CSV = "lat,lon,temp,salinity\n10,20,15,35.1\n11,21,16,35.4\n12,22,17,\n"


def test_load_dataset_success(end_to_end_csv):
    progress = []

    result = load_dataset(
        end_to_end_csv,
        "sst.csv",
        max_points=100,
        on_progress=lambda percent, message: progress.append(percent),
    )

    assert result.success
    assert result.error is None
    dataset = result.data
    assert dataset.name == "sst.csv"
    assert len(dataset) == 3
    assert dataset.selected_field == "value"
    assert dataset.fields == ("lat", "lon", "value")
    assert (dataset.value_range.min, dataset.value_range.max) == (5.0, 7.0)
    assert result.metadata.total_rows == 4
    assert progress[0] == 0.0 and progress[-1] == 100.0
    assert progress == sorted(progress)


def test_load_dataset_json():
    text = json.dumps([{"lat": 1, "lon": 2, "depth": 30}, {"lat": 3, "lon": 4, "depth": 10}])

    result = load_dataset(text, "casts.json", max_points=100)

    assert result.success
    assert result.data.selected_field == "depth"
    assert (result.data.value_range.min, result.data.value_range.max) == (10.0, 30.0)


def test_explicit_format_overrides_name(end_to_end_csv):
    result = load_dataset(end_to_end_csv, "upload", max_points=100, source_format="csv")

    assert result.success


@pytest.mark.parametrize(
    "text, name, fragment",
    [
        ("", "empty.csv", "empty"),
        ("lat,lon,value\n", "header.csv", "no data rows"),
        ("a,b,c\n1,2,3", "bad.csv", "lat"),
        ("{broken", "bad.json", "Malformed JSON"),
        ("lat,lon,value\n100,20,5", "range.csv", "No valid data points"),
        ("lat,lon,value\n1,2,3", "ocean.nc", "NetCDF"),
        ("lat,lon,value\n1,2,3", "notes.txt", "Unsupported"),
    ],
)
def test_load_dataset_failures_are_returned(text, name, fragment):
    result = load_dataset(text, name, max_points=100)

    assert not result.success
    assert result.data is None
    assert fragment in result.error


def test_failing_progress_callback_does_not_raise(end_to_end_csv):
    def on_progress(percent, message):
        raise RuntimeError("display closed")

    result = load_dataset(end_to_end_csv, "sst.csv", max_points=100, on_progress=on_progress)

    assert not result.success
    assert "display closed" in result.error


def test_load_file(tmp_path, end_to_end_csv):
    path = tmp_path / "sst.csv"
    path.write_text(end_to_end_csv)

    result = load_file(path, max_points=100)

    assert result.success
    assert result.data.name == "sst.csv"
    assert len(result.data) == 3


def test_load_file_strips_byte_order_mark(tmp_path, end_to_end_csv):
    path = tmp_path / "excel.csv"
    path.write_text(end_to_end_csv, encoding="utf-8-sig")

    result = load_file(path, max_points=100)

    assert result.success
    assert result.metadata.lat_field == "lat"


def test_load_file_missing_and_empty(tmp_path):
    missing = load_file(tmp_path / "nope.csv")
    assert not missing.success
    assert "File not found" in missing.error

    empty_path = tmp_path / "empty.csv"
    empty_path.write_text("")
    empty = load_file(empty_path)
    assert not empty.success
    assert "empty" in empty.error


def test_switch_dataset_field():
    original = load_dataset(MULTI_FIELD_CSV, "ctd.csv", max_points=100).data

    switched = switch_dataset_field(original, MULTI_FIELD_CSV, "salinity", max_points=100)

    assert switched.selected_field == "salinity"
    assert [p.value for p in switched.points] == [35.1, 35.4]
    assert (switched.value_range.min, switched.value_range.max) == (35.1, 35.4)
    assert switched.fields == original.fields
    # the original dataset is untouched
    assert original.selected_field == "temp"
    assert len(original) == 3


def test_switch_dataset_field_unknown_field():
    original = load_dataset(MULTI_FIELD_CSV, "ctd.csv", max_points=100).data

    with pytest.raises(SchemaDetectionError):
        switch_dataset_field(original, MULTI_FIELD_CSV, "oxygen")
