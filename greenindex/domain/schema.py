"""
Record schema mapping.

Resolves the many header spellings seen in sustainability datasets to one
canonical ``Record`` type.  Alias resolution happens exactly once, at
ingestion; analytics code only ever sees ``Record`` objects.
"""
import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .models import Record, UNKNOWN_CATEGORY


logger = logging.getLogger(__name__)


# Column mappings: canonical field name -> list of accepted aliases (case-insensitive)
COLUMN_ALIASES = {
    "category": ["category", "material_type", "material", "materialtype", "product_category"],
    "country": ["country", "country_name", "origin"],
    "year": ["year", "yr", "report_year"],
    "brand_id": ["brand_id", "brandid", "id"],
    "brand_name": ["brand_name", "brand", "brandname", "name"],
    "carbon": ["carbon", "carbon_footprint_mt", "carbon_footprint", "co2", "co2_mt"],
    "water": ["water", "water_usage_liters", "water_usage", "water_l"],
    "waste": ["waste", "waste_production_kg", "waste_generation", "waste_kg"],
    "price": ["price", "average_price_usd", "avg_price", "price_usd"],
    "rating": ["rating", "sustainability_rating", "sust_rating"],
    "recycling": ["recycling", "recycling_programs", "recycling_program"],
    "eco_manufacturing": ["eco_manufacturing", "eco_friendly_manufacturing", "eco_friendly"],
    "certification": ["certification", "certifications", "cert"],
    "market_trend": ["market_trend", "trend"],
}

NUMERIC_FIELDS = ("carbon", "water", "waste", "price")
TEXT_FIELDS = (
    "category", "country", "brand_id", "brand_name", "rating", "recycling",
    "eco_manufacturing", "certification", "market_trend",
)


def to_number(value: Any) -> float:
    """
    Coerce a loosely typed cell to float.

    Strips ``$`` and spaces, so ``" $120 "`` -> 120.0.  Anything that does
    not parse (including thousands separators) becomes NaN.
    """
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).replace("$", "").replace(" ", "").strip()
    if not text:
        return math.nan
    try:
        return float(text)
    except (ValueError, TypeError):
        return math.nan


def _to_year(value: Any) -> Optional[int]:
    number = to_number(value)
    if not math.isfinite(number):
        return None
    return int(number)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and not math.isfinite(value):
        return ""
    return str(value).strip()


def auto_map_columns(headers: Sequence[str]) -> Dict[str, str]:
    """
    Auto-map source column names to canonical field names using aliases.

    Args:
        headers: Column names as found in the source rows

    Returns:
        Dict mapping source column name -> canonical field name.  When two
        source columns alias the same field, the first one wins.
    """
    mapping: Dict[str, str] = {}
    claimed = set()
    for header in headers:
        key = str(header).strip().lower()
        for canonical, aliases in COLUMN_ALIASES.items():
            if canonical in claimed:
                continue
            if key in aliases:
                mapping[header] = canonical
                claimed.add(canonical)
                break
    return mapping


def map_record(raw: Mapping[str, Any], column_mapping: Mapping[str, str]) -> Record:
    """
    Build one canonical Record from a raw row.

    Missing or malformed values degrade to neutral defaults (NaN for
    numeric fields, "" for text, ``UNKNOWN_CATEGORY`` for the category).
    """
    values: Dict[str, Any] = {}
    for source_col, canonical in column_mapping.items():
        if source_col in raw:
            values[canonical] = raw[source_col]

    fields: Dict[str, Any] = {}
    for name in NUMERIC_FIELDS:
        fields[name] = to_number(values.get(name))
    for name in TEXT_FIELDS:
        fields[name] = _to_text(values.get(name))
    fields["year"] = _to_year(values.get("year"))

    if not fields["category"]:
        fields["category"] = UNKNOWN_CATEGORY

    return Record(**fields)


def _collect_headers(rows: Iterable[Mapping[str, Any]]) -> List[str]:
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            if key not in seen:
                seen[key] = None
    return list(seen)


def ingest_records(rows: Sequence[Any]) -> List[Record]:
    """
    Map a batch of raw rows (dicts or Records) to canonical Records.

    Headers are resolved once for the whole batch.  Rows that are already
    ``Record`` instances pass through unchanged.
    """
    raw_rows = [r for r in rows if not isinstance(r, Record)]
    mapping = auto_map_columns(_collect_headers(raw_rows)) if raw_rows else {}

    if raw_rows:
        missing = [f for f in ("category",) + NUMERIC_FIELDS if f not in mapping.values()]
        if missing:
            logger.warning(f"No source column found for fields {missing}; using neutral defaults")
        unmapped = [h for h in _collect_headers(raw_rows) if h not in mapping]
        if unmapped:
            logger.debug(f"Ignoring unmapped columns: {unmapped}")

    records: List[Record] = []
    for row in rows:
        if isinstance(row, Record):
            records.append(row)
        else:
            records.append(map_record(row, mapping))
    return records
