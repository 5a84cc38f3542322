"""
Unit tests for the dataset profiler.
"""
from datetime import date

import pandas as pd
import pytest

from reportsonic.core.schemas import ColumnType
from reportsonic.services.profiler import (
    has_date_values,
    infer_column_type,
    is_empty,
    looks_like_date,
    parse_number,
    profile_dataset,
)


@pytest.mark.unit
def test_profile_mixed_dataset(people_scores):
    """Names, ages and scores give one text and two numeric columns."""
    headers, rows = people_scores
    profile = profile_dataset(headers, rows)

    assert profile.columns == ["Name", "Age", "Score"]
    assert profile.data_types == {
        "Name": ColumnType.STRING,
        "Age": ColumnType.NUMBER,
        "Score": ColumnType.NUMBER,
    }
    assert profile.has_numeric is True
    assert profile.has_text is True
    assert profile.has_categories is False  # every name is distinct
    assert profile.has_time_series is False
    assert profile.has_geographic is False
    assert profile.sample_size == 5
    assert profile.data_quality.completeness == 1.0
    assert profile.data_quality.consistency == 1.0
    assert profile.data_quality.accuracy == 1.0


@pytest.mark.unit
def test_profile_empty_rows():
    """Zero rows give a zero-state profile."""
    profile = profile_dataset(["A", "B", "C"], [])

    assert profile.data_types == {name: ColumnType.STRING for name in ["A", "B", "C"]}
    assert profile.sample_size == 0
    assert not any([
        profile.has_time_series, profile.has_categories, profile.has_geographic,
        profile.has_numeric, profile.has_text,
    ])
    assert profile.data_quality.completeness == 0.0
    assert profile.data_quality.consistency == 0.0
    assert profile.data_quality.accuracy == 0.0


@pytest.mark.unit
def test_data_quality_scores():
    """Empty cells lower completeness and, in typed columns, consistency."""
    headers = ["A", "B"]
    rows = [[1, "a"], [None, "b"], ["x", "c"], [2, ""]]
    quality = profile_dataset(headers, rows).data_quality

    assert quality.completeness == pytest.approx(0.75)
    assert quality.consistency == pytest.approx(0.75)
    assert quality.accuracy == pytest.approx(0.75)


@pytest.mark.unit
def test_boolean_column():
    profile = profile_dataset(["Active"], [[True], [False], [True]])
    assert profile.data_types["Active"] == ColumnType.BOOLEAN
    assert profile.has_text is False
    assert profile.has_numeric is False


@pytest.mark.unit
def test_numeric_strings_are_numbers():
    profile = profile_dataset(["Amount"], [["1"], ["2.5"], [" 3 "]])
    assert profile.data_types["Amount"] == ColumnType.NUMBER
    assert profile.has_numeric is True


@pytest.mark.unit
def test_type_inference_only_samples_first_ten_values():
    """A bad value past the sampling window does not change the type."""
    rows = [[i] for i in range(10)] + [["not a number"]]
    profile = profile_dataset(["Count"], rows)

    assert profile.data_types["Count"] == ColumnType.NUMBER
    # The string still counts against consistency
    assert profile.data_quality.consistency < 1.0


@pytest.mark.unit
def test_date_columns():
    rows = [[date(2024, 1, day), day * 10] for day in range(1, 6)]
    profile = profile_dataset(["Day", "Visits"], rows)

    assert profile.data_types["Day"] == ColumnType.DATE
    assert profile.has_time_series is True


@pytest.mark.unit
def test_iso_date_strings(time_series):
    headers, rows = time_series
    profile = profile_dataset(headers, rows)

    assert profile.data_types == {"Date": ColumnType.DATE, "Revenue": ColumnType.NUMBER}
    assert profile.has_time_series is True
    assert profile.has_text is False


@pytest.mark.unit
def test_repeated_labels_are_categorical():
    rows = [["North" if i % 2 else "South", i] for i in range(10)]
    profile = profile_dataset(["Region", "Sales"], rows)

    assert profile.has_categories is True
    assert profile.has_geographic is True  # "region" in the header


@pytest.mark.unit
def test_geographic_from_values():
    rows = [["state", 1], ["city", 2], ["other", 3]]
    profile = profile_dataset(["Kind", "Value"], rows)
    assert profile.has_geographic is True


@pytest.mark.unit
def test_geographic_from_header():
    profile = profile_dataset(["Country", "Total"], [["France", 1], ["Japan", 2]])
    assert profile.has_geographic is True


@pytest.mark.unit
def test_duplicate_headers_last_column_wins():
    profile = profile_dataset(["X", "X"], [[1, "a"], [2, "b"]])

    assert profile.columns == ["X", "X"]
    assert profile.data_types == {"X": ColumnType.STRING}
    assert profile.column_types == [ColumnType.NUMBER, ColumnType.STRING]
    # Flags are computed per position, so the numeric column still counts
    assert profile.has_numeric is True


@pytest.mark.unit
def test_all_empty_column_is_plain_string():
    profile = profile_dataset(["Value", "Notes"], [[1, None], [2, ""], [3, "  "]])

    assert profile.data_types["Notes"] == ColumnType.STRING
    assert profile.has_categories is False
    assert profile.data_quality.completeness == pytest.approx(0.5)


@pytest.mark.unit
def test_profile_is_deterministic(sales_by_region):
    headers, rows = sales_by_region
    assert profile_dataset(headers, rows) == profile_dataset(headers, rows)


@pytest.mark.unit
def test_cell_helpers():
    assert is_empty(None)
    assert is_empty(float("nan"))
    assert is_empty("   ")
    assert not is_empty(0)

    assert parse_number("42") == 42.0
    assert parse_number(7) == 7.0
    assert parse_number(True) is None
    assert parse_number("nan") is None
    assert parse_number("abc") is None

    assert infer_column_type([]) == ColumnType.STRING
    assert infer_column_type(["2024-03-01", "03/15/2024"]) == ColumnType.DATE


@pytest.mark.unit
def test_empty_cells_break_consistency():
    quality = profile_dataset(["A"], [[1], [None], [3], [None]]).data_quality

    assert quality.completeness == pytest.approx(0.5)
    assert quality.consistency == pytest.approx(0.5)


@pytest.mark.unit
@pytest.mark.parametrize("text", ["Jan", "Mar", "June", "now", "today", "1st"])
def test_words_are_not_dates(text):
    assert not looks_like_date(text)


@pytest.mark.unit
def test_month_names_do_not_make_a_time_series():
    profile = profile_dataset(["Month", "Sales"], [["Jan", 1], ["Feb", 2], ["Mar", 3]])

    assert profile.data_types["Month"] == ColumnType.STRING
    assert profile.has_time_series is False


@pytest.mark.unit
def test_date_scan_over_whole_columns():
    assert has_date_values(pd.Series(["n/a", "pending", "March 5, 2024"], dtype=object))
    assert has_date_values(pd.Series([date(2024, 1, 1)], dtype=object))
    assert not has_date_values(pd.Series(["Jan", "today", "item-7"], dtype=object))
    assert not has_date_values(pd.Series([], dtype=object))
