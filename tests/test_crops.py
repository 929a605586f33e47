"""Tests for the crop table reader."""

import io
import json

import pytest
from pydantic import ValidationError

from irrigation_layout.crops import read_crop_table

ROWS = [
    {"value": "corn", "name": "Corn", "rowSpacing": 75, "plantSpacing": 25, "yield": 1500, "price": 8, "waterRequirement": 2},
    {"value": "cassava", "name": "Cassava", "row_spacing_cm": 100, "plant_spacing_cm": 80, "yield_per_rai": 3500, "price_per_kg": 3},
]


class TestReadCropTable:
    def test_reads_path(self, tmp_path):
        path = tmp_path / "crops.json"
        path.write_text(json.dumps(ROWS))
        table = read_crop_table(path)
        assert list(table) == ["corn", "cassava"]
        assert table["corn"].row_spacing_cm == 75
        assert table["corn"].water_requirement == 2
        assert table["cassava"].water_requirement is None

    def test_reads_wrapped_bytes(self):
        table = read_crop_table(data=json.dumps({"crops": ROWS}).encode())
        assert table["cassava"].yield_per_rai == 3500

    def test_reads_file_object(self):
        table = read_crop_table(file=io.BytesIO(json.dumps(ROWS).encode()))
        assert len(table) == 2

    def test_requires_a_source(self):
        with pytest.raises(ValueError, match="Provide either"):
            read_crop_table()

    def test_rejects_duplicates(self):
        with pytest.raises(ValueError, match="Duplicate"):
            read_crop_table(data=json.dumps([ROWS[0], ROWS[0]]))

    def test_rejects_wrong_shape(self):
        with pytest.raises(ValueError, match="list of crops"):
            read_crop_table(data=json.dumps({"rows": ROWS}))

    def test_rejects_invalid_rows(self):
        bad = dict(ROWS[0], rowSpacing=0)
        with pytest.raises(ValidationError):
            read_crop_table(data=json.dumps([bad]))
