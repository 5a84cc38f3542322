"""
Dataset profiler.

Infers a ColumnType per header from a bounded sample of each column, raises
dataset-level flags (time series, categories, geography, numeric, text) and
scores data quality.

Callers must pass rectangular data (every row as long as `headers`); the
profiler does not re-validate that and behaviour is undefined otherwise.
"""
import re
import math
import numbers
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from reportsonic.core.performance import track_performance
from reportsonic.core.schemas import ColumnType, DataProfile, DataQuality

logger = logging.getLogger(__name__)

# Non-empty values inspected per column for type inference
TYPE_SAMPLE_SIZE = 10

# A string column is categorical below both limits
CATEGORICAL_MAX_DISTINCT = 20
CATEGORICAL_MAX_RATIO = 0.5

GEO_KEYWORDS = (
    'country', 'region', 'state', 'city', 'location', 'address',
    'lat', 'lng', 'latitude', 'longitude',
)

DATE_PREFIX = re.compile(r'^(\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4})')
# Digits next to a separator, or a compact run like 20240105
DATE_SHAPE = re.compile(r'\d[\s/.:,-]|[\s/.:,-]\d|\d{6}')

# Distinct strings handed to the date parser when scanning a whole column
DATE_SCAN_LIMIT = 1000


def is_empty(value: Any) -> bool:
    """None, NaN and blank strings count as empty cells."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def parse_number(value: Any) -> Optional[float]:
    """Return the numeric value of a cell, or None if it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return None if math.isnan(value) else float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        # float() accepts "nan"/"inf" spellings that are not data
        return number if math.isfinite(number) else None
    return None


def looks_like_date(value: Any) -> bool:
    if isinstance(value, (datetime, date)):
        return True
    if not isinstance(value, str):
        return False
    text = value.strip()
    if DATE_PREFIX.match(text):
        return True
    # The parser also accepts words like "Mar", "today" or "1st"
    if not DATE_SHAPE.search(text):
        return False
    return not pd.isna(pd.to_datetime(text, errors='coerce'))


def has_date_values(values: pd.Series) -> bool:
    """
    True if any value in a column looks like a date.

    Parses distinct strings in one vectorised call, bounded by
    DATE_SCAN_LIMIT, instead of one parser call per cell.
    """
    if values.empty:
        return False
    if values.map(lambda v: isinstance(v, (datetime, date))).any():
        return True

    strings = values[values.map(lambda v: isinstance(v, str))].str.strip().drop_duplicates()
    if strings.empty:
        return False
    if strings.str.match(DATE_PREFIX.pattern).any():
        return True

    candidates = strings[strings.str.contains(DATE_SHAPE.pattern)].head(DATE_SCAN_LIMIT)
    if candidates.empty:
        return False
    return bool(pd.to_datetime(candidates, errors='coerce', format='mixed', utc=True).notna().any())


def value_kind(value: Any) -> str:
    """Runtime kind of a cell, used for consistency scoring."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, numbers.Real):
        return 'number'
    if isinstance(value, (datetime, date)):
        return 'date'
    if isinstance(value, str):
        return 'string'
    return type(value).__name__


def infer_column_type(sample: Sequence[Any]) -> ColumnType:
    """Classify a column from its sampled non-empty values."""
    if not sample:
        return ColumnType.STRING
    if all(isinstance(v, bool) for v in sample):
        return ColumnType.BOOLEAN
    if all(parse_number(v) is not None for v in sample):
        return ColumnType.NUMBER
    if all(looks_like_date(v) for v in sample):
        return ColumnType.DATE
    return ColumnType.STRING


def is_geographic(header: str, sample: Sequence[Any]) -> bool:
    name = str(header).lower()
    if any(keyword in name for keyword in GEO_KEYWORDS):
        return True
    return any(
        isinstance(v, str) and v.strip().lower() in GEO_KEYWORDS
        for v in sample
    )


def is_categorical(values: pd.Series, row_count: int) -> bool:
    if values.empty:
        return False
    distinct = values.map(str).nunique()
    return distinct < row_count * CATEGORICAL_MAX_RATIO and distinct < CATEGORICAL_MAX_DISTINCT


def calculate_data_quality(frame: pd.DataFrame) -> DataQuality:
    """
    Completeness, consistency and accuracy as 0-1 fractions.

    A consistency mismatch is any cell, empty ones included, whose kind
    differs from the kind of the first non-empty value in its column. Null
    and NaN cells have kind "null"; blank strings keep kind "string".
    """
    total_cells = frame.shape[0] * frame.shape[1]
    if total_cells == 0:
        return DataQuality(completeness=0.0, consistency=0.0, accuracy=0.0)

    empty_cells = 0
    mismatched_cells = 0
    for position in range(frame.shape[1]):
        column = frame.iloc[:, position]
        empty_mask = column.map(is_empty)
        empty_cells += int(empty_mask.sum())

        filled = column[~empty_mask]
        if filled.empty:
            continue
        first_kind = value_kind(filled.iloc[0])
        mismatched_cells += int((column.map(value_kind) != first_kind).sum())

    completeness = _clamp(1 - empty_cells / total_cells)
    consistency = _clamp(1 - mismatched_cells / total_cells)
    return DataQuality(
        completeness=completeness,
        consistency=consistency,
        accuracy=_clamp((completeness + consistency) / 2),
    )


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


@track_performance("profile_dataset")
def profile_dataset(headers: List[str], rows: List[List[Any]]) -> DataProfile:
    """
    Profile a dataset given as headers plus rows of scalar cells.

    Empty `rows` yields a zero-state profile: every column typed string,
    every flag false and all quality scores 0.
    """
    columns = [str(h) for h in headers]

    if not rows:
        return DataProfile(
            columns=columns,
            data_types={name: ColumnType.STRING for name in columns},
            column_types=[ColumnType.STRING] * len(columns),
            sample_size=0,
            data_quality=DataQuality(completeness=0.0, consistency=0.0, accuracy=0.0),
        )

    # Positional columns: header names may repeat
    frame = pd.DataFrame(rows, dtype=object)
    row_count = len(frame)

    data_types: Dict[str, ColumnType] = {}
    column_types: List[ColumnType] = []
    flags = dict(
        has_time_series=False,
        has_categories=False,
        has_geographic=False,
        has_numeric=False,
        has_text=False,
    )

    for position, name in enumerate(columns):
        column = frame.iloc[:, position]
        filled = column[~column.map(is_empty)]
        sample = filled.head(TYPE_SAMPLE_SIZE).tolist()

        column_type = infer_column_type(sample)
        data_types[name] = column_type
        column_types.append(column_type)

        if column_type == ColumnType.DATE:
            flags['has_time_series'] = True
        elif column_type == ColumnType.NUMBER:
            flags['has_numeric'] = True
        elif column_type == ColumnType.STRING:
            flags['has_text'] = True
            if is_categorical(filled, row_count):
                flags['has_categories'] = True

        if is_geographic(name, sample):
            flags['has_geographic'] = True

    profile = DataProfile(
        columns=columns,
        data_types=data_types,
        column_types=column_types,
        sample_size=row_count,
        data_quality=calculate_data_quality(frame),
        **flags,
    )
    logger.debug(
        f"Profiled {row_count} rows x {len(columns)} columns: "
        f"{', '.join(f'{k}={v}' for k, v in flags.items())}"
    )
    return profile
