"""
Tests for greenindex/domain/schema.py and greenindex/domain/validation.py

Covers:
  - Header alias resolution (case / whitespace insensitive, first wins)
  - Cell coercion ($ prices, missing and malformed numbers, years)
  - Batch ingestion of mixed dict / Record rows
  - Parameter validation tuples
"""

import math

import pytest

from greenindex.domain.models import Record, UNKNOWN_CATEGORY
from greenindex.domain.schema import (
    auto_map_columns,
    ingest_records,
    map_record,
    to_number,
)
from greenindex.domain.validation import (
    validate_cluster_params,
    validate_priority_weight,
    validate_same_length,
    validate_top_n,
    validate_weights,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_row(**overrides):
    row = {
        "Brand_ID": "BR001",
        "Brand_Name": "Acme",
        "Country": "Italy",
        " Year": "2021",
        "Material_Type": "Organic Cotton",
        "Carbon_Footprint_MT": "12.5",
        "Water_Usage_Liters": "3000",
        "Waste_Production_KG": "40",
        "Average_Price_USD": "$120",
        "Sustainability_Rating": "B",
        "Recycling_Programs": "Yes",
        "Eco_Friendly_Manufacturing": "No",
        "Certifications": "GOTS",
        "Market_Trend": "Growing",
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# 1. Column mapping
# ---------------------------------------------------------------------------

class TestAutoMapColumns:

    def test_dataset_headers(self):
        mapping = auto_map_columns(list(_make_row().keys()))
        assert mapping["Material_Type"] == "category"
        assert mapping["Carbon_Footprint_MT"] == "carbon"
        assert mapping["Water_Usage_Liters"] == "water"
        assert mapping["Waste_Production_KG"] == "waste"
        assert mapping["Average_Price_USD"] == "price"
        assert mapping["Sustainability_Rating"] == "rating"
        assert mapping["Eco_Friendly_Manufacturing"] == "eco_manufacturing"

    def test_leading_space_header(self):
        assert auto_map_columns([" Year"]) == {" Year": "year"}

    def test_case_insensitive(self):
        assert auto_map_columns(["CATEGORY", "Price"]) == {"CATEGORY": "category", "Price": "price"}

    def test_first_alias_wins(self):
        mapping = auto_map_columns(["category", "Material_Type"])
        assert mapping == {"category": "category"}

    def test_unknown_headers_ignored(self):
        assert auto_map_columns(["foo", "bar"]) == {}


# ---------------------------------------------------------------------------
# 2. Cell coercion
# ---------------------------------------------------------------------------

class TestToNumber:

    @pytest.mark.parametrize("value,expected", [
        ("$120", 120.0), (" 3.5 ", 3.5), (7, 7.0), (2.25, 2.25), ("1e3", 1000.0),
    ])
    def test_parses(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "1,200", True, "$"])
    def test_unparseable_is_nan(self, value):
        assert math.isnan(to_number(value))


class TestMapRecord:

    def test_full_row(self):
        row = _make_row()
        record = map_record(row, auto_map_columns(list(row.keys())))
        assert record.category == "Organic Cotton"
        assert record.year == 2021
        assert record.carbon == 12.5
        assert record.price == 120.0
        assert record.rating == "B"
        assert record.brand == "Acme"

    def test_missing_values_degrade(self):
        row = _make_row(Material_Type="", Carbon_Footprint_MT="n/a", **{" Year": "unknown"})
        record = map_record(row, auto_map_columns(list(row.keys())))
        assert record.category == UNKNOWN_CATEGORY
        assert math.isnan(record.carbon)
        assert record.year is None

    def test_absent_column(self):
        row = _make_row()
        del row["Average_Price_USD"]
        record = map_record(row, auto_map_columns(list(row.keys())))
        assert math.isnan(record.price)


class TestIngestRecords:

    def test_mixed_rows(self):
        existing = Record(category="Hemp", carbon=1.0)
        records = ingest_records([_make_row(), existing])
        assert len(records) == 2
        assert records[0].category == "Organic Cotton"
        assert records[1] is existing

    def test_headers_resolved_across_batch(self):
        rows = [{"category": "A"}, {"category": "B", "price": "10"}]
        records = ingest_records(rows)
        assert math.isnan(records[0].price)
        assert records[1].price == 10.0

    def test_input_rows_untouched(self):
        row = _make_row()
        snapshot = dict(row)
        ingest_records([row])
        assert row == snapshot

    def test_empty(self):
        assert ingest_records([]) == []


# ---------------------------------------------------------------------------
# 3. Parameter validation
# ---------------------------------------------------------------------------

class TestValidation:

    @pytest.mark.parametrize("weight", [0, 0.0, 0.5, 1, 1.0])
    def test_priority_weight_valid(self, weight):
        assert validate_priority_weight(weight) == (True, "")

    @pytest.mark.parametrize("weight", [-0.1, 1.01, math.nan, "0.5", None, True])
    def test_priority_weight_invalid(self, weight):
        ok, msg = validate_priority_weight(weight)
        assert not ok
        assert msg

    def test_top_n(self):
        assert validate_top_n(1)[0]
        assert not validate_top_n(0)[0]
        assert not validate_top_n(2.5)[0]

    def test_cluster_params(self):
        assert validate_cluster_params(10, 50)[0]
        assert not validate_cluster_params(0, 50)[0]
        assert not validate_cluster_params(10, 0)[0]

    def test_weights(self):
        assert validate_weights([0.25, 0.75])[0]
        assert not validate_weights([0.5, 0.6])[0]
        assert not validate_weights([-0.5, 1.5])[0]
        assert not validate_weights([])[0]

    def test_same_length(self):
        assert validate_same_length([1, 2], [3, 4])[0]
        assert not validate_same_length([1], [3, 4])[0]
