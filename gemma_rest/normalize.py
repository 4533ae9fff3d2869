"""Turn raw Gemma responses into typed DataFrames.

Every endpoint goes through the same code path; what differs between
endpoints lives in the descriptors declared in `gemma_rest.schemas`.
"""

from __future__ import annotations

import io
import itertools
import logging
from typing import Any

import pandas as pd

from gemma_rest.exceptions import SchemaMismatch
from gemma_rest.schemas import PANDAS_DTYPES, EndpointDescriptor, FieldSpec

logger = logging.getLogger(__name__)

# marker for "field not present" so that falsy values survive lookups
_MISSING = object()


def resolve_path(record: Any, path: tuple, column: str = "?") -> Any:
    """Walk `path` through nested dicts/lists, returning _MISSING when it runs out."""
    current = record
    for key in path:
        if current is None:
            return _MISSING
        if isinstance(key, int):
            # list index: out of range means absent, non-list means wrong shape
            if not isinstance(current, list):
                raise SchemaMismatch(
                    f"{column}: expected array at {key!r}, got {type(current).__name__}"
                )
            if key >= len(current):
                return _MISSING
            current = current[key]
        else:
            if not isinstance(current, dict):
                raise SchemaMismatch(
                    f"{column}: expected object at {key!r}, got {type(current).__name__}"
                )
            if key not in current:
                return _MISSING
            current = current[key]
    return _MISSING if current is None else current


def _type_error(spec: FieldSpec, value: Any) -> SchemaMismatch:
    return SchemaMismatch(
        f"{spec.column}: expected {spec.dtype}, got {type(value).__name__} ({value!r:.60})"
    )


def coerce_value(value: Any, spec: FieldSpec, nested: bool = False) -> Any:
    """Cast one source value to the declared type, or its absent value."""
    if value is _MISSING:
        # inside list-valued cells there is no column dtype, so absent is None
        if nested and spec.default is None and spec.dtype != "list":
            return None
        return spec.absent()

    dtype = spec.dtype
    if dtype == "int":
        if isinstance(value, bool):
            raise _type_error(spec, value)
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                raise _type_error(spec, value) from None
        raise _type_error(spec, value)

    if dtype == "float":
        if isinstance(value, bool):
            raise _type_error(spec, value)
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                raise _type_error(spec, value) from None
        raise _type_error(spec, value)

    if dtype == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise _type_error(spec, value)

    if dtype == "str":
        if isinstance(value, (dict, list)):
            raise _type_error(spec, value)
        return str(value)

    if dtype == "datetime":
        # the API serializes dates either as ISO strings or epoch milliseconds
        try:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return pd.Timestamp(value, unit="ms", tz="UTC")
            if isinstance(value, str):
                stamp = pd.Timestamp(value)
                return stamp.tz_localize("UTC") if stamp.tzinfo is None else stamp.tz_convert("UTC")
        except (ValueError, OverflowError):
            raise _type_error(spec, value) from None
        raise _type_error(spec, value)

    # list
    if not isinstance(value, list):
        raise _type_error(spec, value)
    if spec.items is None:
        return list(value)
    out = []
    for element in value:
        if not isinstance(element, dict):
            raise _type_error(spec, element)
        out.append({
            item.column: coerce_value(resolve_path(element, item.path, item.column), item, nested=True)
            for item in spec.items
        })
    return out


def build_frame(rows: list[dict[str, Any]], fields: tuple[FieldSpec, ...]) -> pd.DataFrame:
    """Assemble coerced rows into a DataFrame with declared column order and dtypes."""
    columns = {}
    for spec in fields:
        values = [row[spec.column] for row in rows]
        columns[spec.column] = pd.Series(values, dtype=PANDAS_DTYPES[spec.dtype])
    return pd.DataFrame(columns)


def empty_frame(descriptor: EndpointDescriptor) -> pd.DataFrame:
    """Zero-row table with the endpoint's declared columns and dtypes."""
    return build_frame([], descriptor.fields)


def _records(raw: Any, descriptor: EndpointDescriptor) -> list:
    # unwrap the {"data": ...} envelope the API puts around every payload
    if isinstance(raw, dict) and "data" in raw:
        data = raw["data"]
    elif isinstance(raw, list):
        data = raw
    else:
        raise SchemaMismatch(
            f"{descriptor.name}: expected a data envelope, got {type(raw).__name__}"
        )

    if data is None:
        return []
    if not isinstance(data, list):
        raise SchemaMismatch(
            f"{descriptor.name}: expected array of records, got {type(data).__name__}"
        )
    return data


def count_records(raw: Any, descriptor: EndpointDescriptor) -> int:
    """Number of top-level entities in a raw page."""
    if isinstance(raw, str):
        return len(normalize_tsv(raw, descriptor))
    return len(_records(raw, descriptor))


def normalize_json(raw: Any, descriptor: EndpointDescriptor) -> pd.DataFrame:
    """Flatten a JSON payload into one row per entity."""
    rows: list[dict[str, Any]] = []
    for record in _records(raw, descriptor):
        if not isinstance(record, dict):
            raise SchemaMismatch(
                f"{descriptor.name}: expected object record, got {type(record).__name__}"
            )

        # one row per element of the nested array, parent fields repeated
        if descriptor.row_path is not None:
            children = resolve_path(record, descriptor.row_path, descriptor.name)
            if children is _MISSING or children == []:
                logger.info(
                    "%s: record %s has no %s, no rows emitted",
                    descriptor.name, record.get("id"), ".".join(map(str, descriptor.row_path)),
                )
                continue
            if not isinstance(children, list):
                raise SchemaMismatch(
                    f"{descriptor.name}: expected array at {descriptor.row_path}, "
                    f"got {type(children).__name__}"
                )
        else:
            children = [record]

        for child in children:
            if not isinstance(child, dict):
                raise SchemaMismatch(
                    f"{descriptor.name}: expected object row, got {type(child).__name__}"
                )
            row = {}
            for spec in descriptor.fields:
                source = record if spec.parent else child
                row[spec.column] = coerce_value(resolve_path(source, spec.path, spec.column), spec)
            rows.append(row)

    return build_frame(rows, descriptor.fields)


def normalize_tsv(text: Any, descriptor: EndpointDescriptor) -> pd.DataFrame:
    """Parse a tab-separated payload, checking the declared columns are there."""
    if not isinstance(text, str):
        raise SchemaMismatch(
            f"{descriptor.name}: expected tab-separated text, got {type(text).__name__}"
        )

    # Gemma prefixes its data files with '#' comment lines
    body = list(itertools.dropwhile(lambda line: line.startswith("#"), text.splitlines()))
    if not any(line.strip() for line in body):
        return pd.DataFrame(columns=descriptor.columns)

    str_columns = {f.column: str for f in descriptor.fields if f.dtype == "str"}
    try:
        frame = pd.read_csv(io.StringIO("\n".join(body)), sep="\t", dtype=str_columns)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise SchemaMismatch(f"{descriptor.name}: unreadable table ({exc})") from exc

    missing = [c for c in descriptor.columns if c not in frame.columns]
    if missing:
        raise SchemaMismatch(f"{descriptor.name}: missing columns {missing}")

    for spec in descriptor.fields:
        if spec.dtype in ("str", "list"):
            continue
        try:
            frame[spec.column] = frame[spec.column].astype(PANDAS_DTYPES[spec.dtype])
        except (TypeError, ValueError) as exc:
            raise SchemaMismatch(f"{spec.column}: cannot cast to {spec.dtype}") from exc
    return frame


def normalize_response(raw: Any, descriptor: EndpointDescriptor, raw_output: bool = False) -> Any:
    """Return `raw` untouched when `raw_output`, else the normalized table."""
    if raw_output:
        return raw
    if descriptor.response == "tsv":
        return normalize_tsv(raw, descriptor)
    return normalize_json(raw, descriptor)


def frames_concat(frames: list[pd.DataFrame], descriptor: EndpointDescriptor) -> pd.DataFrame:
    """Stack pages in request order."""
    non_empty = [f for f in frames if not f.empty]
    if not non_empty:
        return frames[0] if frames else empty_frame(descriptor)
    if len(non_empty) == 1:
        return non_empty[0].reset_index(drop=True)
    return pd.concat(non_empty, ignore_index=True)
