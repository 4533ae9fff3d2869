"""Helpers that combine several endpoint calls into analysis-ready objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from gemma_rest.client import GemmaClient
from gemma_rest.exceptions import InvalidParameter, MultipleResultSetsError, SchemaMismatch
from gemma_rest.io_utils import save_result

logger = logging.getLogger(__name__)

# non-sample columns of a processed expression file
EXPRESSION_META_COLUMNS = ("Probe", "Sequence", "GeneSymbol", "GeneName", "GemmaId", "NCBIid")

CONSOLIDATE_METHODS = ("pickmax", "pickvar", "average")


@dataclass
class DatasetBundle:
    """Expression matrix plus the sample metadata needed to analyse it."""

    dataset: str
    metadata: pd.DataFrame
    expression: pd.DataFrame
    design: pd.DataFrame
    samples: pd.DataFrame

    @property
    def sample_names(self) -> list[str]:
        return list(self.design.index)


def _single_dataset(dataset: Any) -> str | int:
    if isinstance(dataset, (list, tuple, set)):
        values = list(dataset)
        if len(values) != 1:
            raise InvalidParameter(f"expected a single dataset, got {len(values)}")
        dataset = values[0]
    if dataset is None or (isinstance(dataset, str) and not dataset.strip()):
        raise InvalidParameter("dataset is required")
    return dataset


def clean_sample_name(column: str) -> str:
    """Strip Gemma's 'BioAssayId=...Name=' prefix from an expression column."""
    if "Name=" in column:
        return column.split("Name=", 1)[1]
    return column


def make_design(samples: pd.DataFrame) -> pd.DataFrame:
    """Build a sample-by-factor design table from `get_dataset_samples` output.

    Sample names label the expression columns, so they must be unique.
    """
    names = samples["sample.Name"].tolist()
    duplicated = sorted({n for n in names if names.count(n) > 1}, key=str)
    if duplicated:
        raise SchemaMismatch(f"duplicate sample names: {duplicated}")

    rows: list[dict[str, str]] = []
    for _, sample in samples.iterrows():
        row: dict[str, str] = {}
        for factor_value in sample["sample.FactorValues"] or []:
            category = factor_value.get("category") or "factor"
            value = factor_value.get("value")
            if value is None:
                continue
            # a sample can carry several values for the same factor
            row[category] = f"{row[category]}; {value}" if category in row else value
        rows.append(row)

    return pd.DataFrame(rows, index=pd.Index(names, name="sample.Name"))


def filter_genes(expression: pd.DataFrame, genes: Iterable[str | int]) -> pd.DataFrame:
    """Keep rows whose gene symbol or NCBI id is in `genes`."""
    wanted = {str(g) for g in genes}
    mask = expression["GeneSymbol"].astype(str).isin(wanted)
    if "NCBIid" in expression.columns:
        mask |= expression["NCBIid"].astype(str).isin(wanted)
    return expression[mask].reset_index(drop=True)


def consolidate_expression(expression: pd.DataFrame, method: str | None) -> pd.DataFrame:
    """Collapse probes that map to the same gene.

    pickmax keeps the probe with the highest mean expression, pickvar the one
    with the highest variance, average takes the per-sample mean. Probes with
    no gene are dropped whenever a method is given.
    """
    if method is None:
        return expression
    if method not in CONSOLIDATE_METHODS:
        raise InvalidParameter(f"consolidate must be one of {CONSOLIDATE_METHODS}, got {method!r}")

    meta = [c for c in EXPRESSION_META_COLUMNS if c in expression.columns]
    sample_columns = [c for c in expression.columns if c not in meta]
    mapped = expression[expression["GeneSymbol"].notna() & (expression["GeneSymbol"] != "")]
    values = mapped[sample_columns].astype(float)

    if method == "average":
        grouped = values.groupby(mapped["GeneSymbol"], sort=False)
        averaged = grouped.mean()
        first_meta = mapped[meta].groupby(mapped["GeneSymbol"], sort=False).first()
        first_meta["Probe"] = mapped.groupby("GeneSymbol", sort=False)["Probe"].agg("|".join)
        first_meta = first_meta.drop(columns="GeneSymbol", errors="ignore")
        out = first_meta.join(averaged).reset_index()
        return out[meta + sample_columns]

    score = values.mean(axis=1) if method == "pickmax" else values.var(axis=1)
    # all-NaN probes must still lose to any measured probe
    score = score.fillna(float("-inf"))
    best = score.groupby(mapped["GeneSymbol"], sort=False).idxmax()
    return mapped.loc[best.values].reset_index(drop=True)


def get_dataset_object(
    client: GemmaClient,
    dataset: Any,
    *,
    genes: Iterable[str | int] | None = None,
    consolidate: str | None = None,
    memoised: bool | None = None,
    file: str | Path | None = None,
    overwrite: bool = False,
) -> DatasetBundle:
    """Fetch expression, samples and metadata of one dataset and line them up."""
    dataset = _single_dataset(dataset)
    if consolidate is not None and consolidate not in CONSOLIDATE_METHODS:
        raise InvalidParameter(f"consolidate must be one of {CONSOLIDATE_METHODS}, got {consolidate!r}")

    metadata = client.get_datasets_by_ids([dataset], memoised=memoised)
    samples = client.get_dataset_samples(dataset, memoised=memoised)
    expression = client.get_dataset_processed_expression(dataset, memoised=memoised)

    expression = expression.rename(columns=clean_sample_name)
    if genes is not None:
        expression = filter_genes(expression, genes)
    expression = consolidate_expression(expression, consolidate)

    design = make_design(samples)
    meta = [c for c in EXPRESSION_META_COLUMNS if c in expression.columns]
    shared = [c for c in expression.columns if c not in meta and c in design.index]
    dropped = len(expression.columns) - len(meta) - len(shared)
    if dropped:
        logger.warning("%s: %d expression columns have no matching sample", dataset, dropped)

    bundle = DatasetBundle(
        dataset=str(dataset),
        metadata=metadata,
        expression=expression[meta + shared].reset_index(drop=True),
        design=design.loc[shared],
        samples=samples,
    )
    if file is not None:
        save_result(bundle, file, overwrite=overwrite)
    return bundle


def get_differential_expression_values(
    client: GemmaClient,
    dataset: Any = None,
    result_set: int | str | None = None,
    *,
    all_results: bool = False,
    memoised: bool | None = None,
    file: str | Path | None = None,
    overwrite: bool = False,
) -> pd.DataFrame | dict[int, pd.DataFrame]:
    """Differential expression values for a dataset's result set(s).

    With only `dataset`, the dataset must have exactly one result set unless
    `all_results` is set, in which case every result set is returned keyed by
    its id. Passing `result_set` selects one table directly.
    """
    if dataset is None and result_set is None:
        raise InvalidParameter("pass a dataset, a result_set or both")

    if result_set is not None:
        if dataset is not None:
            analyses = client.get_dataset_differential_expression_analyses(
                _single_dataset(dataset), memoised=memoised
            )
            known = [int(i) for i in analyses["result.ID"].dropna().unique()]
            if int(result_set) not in known:
                raise InvalidParameter(f"result set {result_set} does not belong to dataset {dataset}")
        result: Any = client.get_result_set(result_set, memoised=memoised)
    else:
        dataset = _single_dataset(dataset)
        analyses = client.get_dataset_differential_expression_analyses(dataset, memoised=memoised)
        result_set_ids = [int(i) for i in analyses["result.ID"].dropna().unique()]

        if all_results:
            result = {rid: client.get_result_set(rid, memoised=memoised) for rid in result_set_ids}
        elif not result_set_ids:
            raise InvalidParameter(f"dataset {dataset} has no differential expression result sets")
        elif len(result_set_ids) > 1:
            raise MultipleResultSetsError(dataset, result_set_ids)
        else:
            result = client.get_result_set(result_set_ids[0], memoised=memoised)

    if file is not None:
        save_result(result, file, overwrite=overwrite)
    return result
