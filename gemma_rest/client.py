"""Public client for the Gemma REST API.

Each method maps to one endpoint. Common keyword arguments:

- ``raw``: return the response document as received instead of a DataFrame
- ``memoised``: reuse an earlier identical call's result (defaults to the
  config's ``memoised`` flag)
- ``file``/``overwrite``: also write the result to disk, see
  :func:`gemma_rest.io_utils.save_result`
"""

from __future__ import annotations

import logging
import numbers
from pathlib import Path
from typing import Any, Iterable

import numpy as np
import requests

from gemma_rest.cache import ResponseCache, make_cache_key
from gemma_rest.config import GemmaConfig
from gemma_rest.exceptions import InvalidParameter
from gemma_rest.http_client import GemmaHttpClient, encode_ids
from gemma_rest.io_utils import save_result
from gemma_rest.normalize import (
    count_records,
    empty_frame,
    frames_concat,
    normalize_response,
)
from gemma_rest.pagination import paginate, validate_window
from gemma_rest.schemas import EndpointDescriptor, get_endpoint

logger = logging.getLogger(__name__)

Ids = str | int | Iterable[str | int]


def _as_id_list(name: str, value: Ids) -> list[str | int]:
    """Normalize one identifier or a collection of them to a list."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidParameter(f"{name} is required")
    if isinstance(value, (bool, np.bool_)):
        raise InvalidParameter(f"{name} must be an identifier, got {value!r}")
    if isinstance(value, str):
        return [value]
    # numpy integers come out of Int64 columns of our own tables
    if isinstance(value, numbers.Integral):
        return [int(value)]
    if not isinstance(value, Iterable):
        raise InvalidParameter(f"{name} must be an identifier or a list of them, got {value!r}")
    values = [int(v) if isinstance(v, numbers.Integral) and not isinstance(v, bool) else v for v in value]
    if not values:
        raise InvalidParameter(f"{name} must contain at least one identifier")
    return values


class GemmaClient:
    """Gemma API client bound to one config, HTTP session and cache."""

    def __init__(
        self,
        config: GemmaConfig | None = None,
        session: requests.Session | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.config = config or GemmaConfig()
        self.http = GemmaHttpClient(self.config, session=session)
        self.cache = cache if cache is not None else ResponseCache()

    # SHARED REQUEST PLUMBING

    def _path_ids(self, descriptor: EndpointDescriptor, ids: dict[str, Ids]) -> dict[str, tuple]:
        """Validate path identifiers against each placeholder's arity."""
        resolved: dict[str, tuple] = {}
        for name, arity in descriptor.ids.items():
            values = _as_id_list(name, ids.get(name))
            if arity == "single" and len(values) != 1:
                raise InvalidParameter(
                    f"{descriptor.name} accepts a single {name}, got {len(values)}"
                )
            resolved[name] = tuple(values)
        return resolved

    def _call(
        self,
        endpoint: str,
        *,
        ids: dict[str, Ids] | None = None,
        params: dict[str, Any] | None = None,
        raw: bool = False,
        memoised: bool | None = None,
        file: str | Path | None = None,
        overwrite: bool = False,
    ) -> Any:
        """Validate, consult the cache, fetch and optionally write one endpoint call."""
        descriptor = get_endpoint(endpoint)
        # everything is validated before the cache or the network is touched
        path_ids = self._path_ids(descriptor, ids or {})
        query = {k: v for k, v in (params or {}).items() if v is not None}
        if descriptor.paginated:
            validate_window(query.get("limit", 20), query.get("offset", 0))

        use_cache = self.config.memoised if memoised is None else memoised
        key = make_cache_key(endpoint, {**path_ids, **query}, raw)
        entry = self.cache.get(key) if use_cache else None
        if entry is not None:
            logger.debug("Using memoised result for %s", endpoint)
            result = entry.value
        else:
            result = self._fetch(descriptor, path_ids, query, raw)
            if use_cache:
                self.cache.put(key, result)

        if file is not None:
            save_result(result, file, overwrite=overwrite)
        return result

    def _fetch(
        self,
        descriptor: EndpointDescriptor,
        path_ids: dict[str, tuple],
        query: dict[str, Any],
        raw: bool,
    ) -> Any:
        """Issue the request(s) for one call and normalize the result."""
        path = descriptor.format_path(**{k: encode_ids(v) for k, v in path_ids.items()})

        if not descriptor.paginated:
            document = self.http.request(path, query, accept=descriptor.response)
            return normalize_response(document, descriptor, raw_output=raw)

        limit = query.pop("limit", 20)
        offset = query.pop("offset", 0)

        def fetch_page(page_offset: int, page_limit: int) -> Any:
            document = self.http.request(
                path, {**query, "offset": page_offset, "limit": page_limit},
                accept=descriptor.response,
            )
            return normalize_response(document, descriptor, raw_output=raw)

        if raw:
            pages = paginate(
                fetch_page, limit=limit, offset=offset,
                max_page_size=self.config.max_page_size,
                count_rows=lambda doc: count_records(doc, descriptor),
            )
            # a single page comes back exactly as the server sent it
            return pages[0] if len(pages) == 1 else pages

        pages = paginate(
            fetch_page, limit=limit, offset=offset,
            max_page_size=self.config.max_page_size,
        )
        if not pages:
            return empty_frame(descriptor)
        # a server may hand back more rows than were asked for
        return frames_concat(pages, descriptor).iloc[:limit].reset_index(drop=True)

    def clear_cache(self) -> None:
        """Forget every memoised result."""
        self.cache.clear()

    # DATASET ENDPOINTS

    def get_datasets(
        self,
        query: str | None = None,
        *,
        filter: str | None = None,
        taxa: Ids | None = None,
        offset: int = 0,
        limit: int = 20,
        sort: str = "+id",
        raw: bool = False,
        memoised: bool | None = None,
        file: str | Path | None = None,
        overwrite: bool = False,
    ) -> Any:
        """Search or list datasets, optionally restricted by taxa and a filter expression."""
        if taxa is not None:
            taxa = _as_id_list("taxa", taxa)
        return self._call(
            "datasets",
            params={
                "query": query, "filter": filter, "taxa": taxa,
                "offset": offset, "limit": limit, "sort": sort,
            },
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_datasets_by_ids(
        self,
        datasets: Ids,
        *,
        filter: str | None = None,
        offset: int = 0,
        limit: int = 20,
        sort: str = "+id",
        raw: bool = False,
        memoised: bool | None = None,
        file: str | Path | None = None,
        overwrite: bool = False,
    ) -> Any:
        """Metadata for one or more datasets given by ID or short name."""
        return self._call(
            "datasets_by_ids",
            ids={"datasets": datasets},
            params={"filter": filter, "offset": offset, "limit": limit, "sort": sort},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_dataset_platforms(
        self, dataset: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Platforms a dataset was profiled on."""
        return self._call(
            "dataset_platforms", ids={"dataset": dataset},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_dataset_samples(
        self, dataset: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Samples of a dataset; characteristics and factor values are list-valued columns."""
        return self._call(
            "dataset_samples", ids={"dataset": dataset},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_dataset_annotations(
        self, dataset: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Ontology terms the dataset is tagged with."""
        return self._call(
            "dataset_annotations", ids={"dataset": dataset},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_dataset_differential_expression_analyses(
        self, dataset: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Differential expression analyses of a dataset, one row per result set."""
        return self._call(
            "dataset_differential_analyses", ids={"dataset": dataset},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_dataset_quantitation_types(
        self, dataset: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Quantitation types (raw, processed, log-scale...) stored for a dataset."""
        return self._call(
            "dataset_quantitation_types", ids={"dataset": dataset},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_dataset_design(
        self, dataset: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Experimental design file of a dataset (one row per bioassay)."""
        return self._call(
            "dataset_design", ids={"dataset": dataset},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_dataset_processed_expression(
        self, dataset: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Processed expression matrix: probe/gene columns followed by one column per sample."""
        return self._call(
            "dataset_processed_expression", ids={"dataset": dataset},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_result_set(
        self, result_set: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Differential expression values of a single result set."""
        return self._call(
            "result_set", ids={"result_set": result_set},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    # PLATFORM ENDPOINTS

    def get_platforms_by_ids(
        self,
        platforms: Ids,
        *,
        filter: str | None = None,
        offset: int = 0,
        limit: int = 20,
        sort: str = "+id",
        raw: bool = False,
        memoised: bool | None = None,
        file: str | Path | None = None,
        overwrite: bool = False,
    ) -> Any:
        """Metadata for one or more platforms given by ID or short name."""
        return self._call(
            "platforms_by_ids",
            ids={"platforms": platforms},
            params={"filter": filter, "offset": offset, "limit": limit, "sort": sort},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_platform_datasets(
        self,
        platform: Ids,
        *,
        offset: int = 0,
        limit: int = 20,
        raw: bool = False,
        memoised: bool | None = None,
        file: str | Path | None = None,
        overwrite: bool = False,
    ) -> Any:
        """Datasets profiled on a platform."""
        return self._call(
            "platform_datasets",
            ids={"platform": platform},
            params={"offset": offset, "limit": limit},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_platform_element_genes(
        self,
        platform: Ids,
        probe: Ids,
        *,
        offset: int = 0,
        limit: int = 20,
        raw: bool = False,
        memoised: bool | None = None,
        file: str | Path | None = None,
        overwrite: bool = False,
    ) -> Any:
        """Genes a platform element (probe) maps to."""
        return self._call(
            "platform_element_genes",
            ids={"platform": platform, "probe": probe},
            params={"offset": offset, "limit": limit},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    # GENE, TAXON AND ANNOTATION ENDPOINTS

    def get_genes(
        self, genes: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Genes by NCBI ID, Ensembl ID or official symbol."""
        return self._call(
            "genes", ids={"genes": genes},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_gene_locations(
        self, gene: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Genomic coordinates of a gene."""
        return self._call(
            "gene_locations", ids={"gene": gene},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_gene_probes(
        self,
        gene: Ids,
        *,
        offset: int = 0,
        limit: int = 20,
        raw: bool = False,
        memoised: bool | None = None,
        file: str | Path | None = None,
        overwrite: bool = False,
    ) -> Any:
        """Platform elements that map to a gene."""
        return self._call(
            "gene_probes",
            ids={"gene": gene},
            params={"offset": offset, "limit": limit},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_gene_go_terms(
        self, gene: Ids, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """GO terms a gene is annotated with."""
        return self._call(
            "gene_go_terms", ids={"gene": gene},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )

    def get_taxa(
        self, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """All taxa Gemma holds data for."""
        return self._call("taxa", raw=raw, memoised=memoised, file=file, overwrite=overwrite)

    def search_annotations(
        self, query: str, *, raw: bool = False, memoised: bool | None = None,
        file: str | Path | None = None, overwrite: bool = False,
    ) -> Any:
        """Ontology terms matching a free-text query."""
        if not query or not str(query).strip():
            raise InvalidParameter("query is required")
        return self._call(
            "annotation_search", params={"query": query},
            raw=raw, memoised=memoised, file=file, overwrite=overwrite,
        )
