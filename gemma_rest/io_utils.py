"""Writing results to disk and reading them back."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from gemma_rest.exceptions import OutputExistsError

logger = logging.getLogger(__name__)


def create_run_dir(base_dir: str = "runs") -> Path:
    """Create and return a timestamped run directory."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(base_dir) / f"run_{timestamp}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def save_json(records: Any, path: str | Path) -> None:
    """Save a JSON document pretty-printed."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, indent=2)


def has_nested_cells(frame: pd.DataFrame) -> bool:
    """True when any object column holds lists, dicts or frames."""
    for column in frame.columns[frame.dtypes == object]:
        if any(isinstance(v, (list, dict, tuple, pd.DataFrame)) for v in frame[column]):
            return True
    return False


def choose_extension(result: Any) -> str:
    """Pick the on-disk format for a result.

    Raw JSON documents go to .json, raw TSV text to .tsv, flat tables to .csv
    and anything with nested cells (or composite results) to a pandas pickle.
    """
    if isinstance(result, pd.DataFrame):
        return ".pkl" if has_nested_cells(result) else ".csv"
    if isinstance(result, str):
        return ".tsv"
    if isinstance(result, dict) and any(isinstance(v, pd.DataFrame) for v in result.values()):
        return ".pkl"
    if isinstance(result, (dict, list)):
        return ".json"
    return ".pkl"


def save_result(result: Any, file: str | Path, overwrite: bool = False) -> Path:
    """Write `result` next to `file` with the extension its type calls for."""
    path = Path(file)
    path = path.with_suffix(choose_extension(result))
    if path.exists() and not overwrite:
        raise OutputExistsError(f"{path} exists; pass overwrite=True to replace it")

    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix
    if suffix == ".json":
        save_json(result, path)
    elif suffix == ".tsv":
        path.write_text(result, encoding="utf-8")
    elif suffix == ".csv":
        result.to_csv(path, index=False)
    else:
        pd.to_pickle(result, path)
    logger.info("Saved %s to %s", type(result).__name__, path)
    return path


def load_result(path: str | Path) -> Any:
    """Read back a file written by `save_result`."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    if suffix == ".tsv":
        return path.read_text(encoding="utf-8")
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix == ".pkl":
        return pd.read_pickle(path)
    raise ValueError(f"Unrecognised output format: {path}")
