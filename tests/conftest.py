"""Shared fixtures: a recording stand-in for requests.Session and canned payloads."""

from __future__ import annotations

import copy
import json

import pytest

from gemma_rest import GemmaClient, GemmaConfig

BASE_URL = "https://gemma.test/rest/v2"

_NO_JSON = object()


class FakeResponse:
    def __init__(self, payload=None, *, text=None, status_code: int = 200):
        self.status_code = status_code
        self._payload = _NO_JSON if payload is None else payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is _NO_JSON:
            raise ValueError("No JSON object could be decoded")
        return copy.deepcopy(self._payload)


class FakeSession:
    """Routes GETs by path relative to BASE_URL and records every call."""

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.routes: dict[str, object] = {}
        self.calls: list[dict] = []

    def add(self, path: str, payload=None, *, text=None, status_code: int = 200) -> None:
        self.routes[path] = FakeResponse(payload, text=text, status_code=status_code)

    def add_handler(self, path: str, handler) -> None:
        self.routes[path] = handler

    def add_error(self, path: str, exc: Exception) -> None:
        self.routes[path] = exc

    def get(self, url, params=None, headers=None, timeout=None, verify=None, auth=None):
        path = url[len(BASE_URL) + 1:]
        self.calls.append({
            "url": url,
            "path": path,
            "params": dict(params or {}),
            "headers": dict(headers or {}),
            "timeout": timeout,
            "verify": verify,
            "auth": auth,
        })
        route = self.routes[path]
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(dict(params or {}))
        return route


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def config() -> GemmaConfig:
    return GemmaConfig(base_url=BASE_URL)


@pytest.fixture
def client(config, session) -> GemmaClient:
    return GemmaClient(config, session=session)


def taxon_record() -> dict:
    return {
        "id": 1,
        "commonName": "human",
        "scientificName": "Homo sapiens",
        "ncbiId": 9606,
        "externalDatabase": {"id": 87, "name": "hg38"},
    }


def dataset_record(dataset_id: int, **overrides) -> dict:
    short_name = f"GSE{dataset_id}"
    record = {
        "id": dataset_id,
        "shortName": short_name,
        "name": f"Dataset {dataset_id}",
        "description": "Hippocampus of wild type and mutant mice",
        "isPublic": True,
        "troubled": False,
        "accession": short_name,
        "externalDatabase": "GEO",
        "externalUri": f"https://www.ncbi.nlm.nih.gov/geo/query/acc.cgi?acc={short_name}",
        "bioAssayCount": 3,
        "lastUpdated": "2023-04-01T12:00:00.000+00:00",
        "batchEffect": "NO_BATCH_EFFECT_SUCCESS",
        "batchCorrected": False,
        "geeq": {"publicQualityScore": 0.5, "publicSuitabilityScore": 0.75},
        "taxon": taxon_record(),
    }
    record.update(overrides)
    return record


def datasets_handler(total: int):
    """Paged datasets endpoint holding `total` records."""

    def handler(params: dict) -> FakeResponse:
        offset = int(params.get("offset", 0))
        limit = int(params.get("limit", 20))
        records = [dataset_record(i) for i in range(offset + 1, min(offset + limit, total) + 1)]
        return FakeResponse({"data": records, "offset": offset, "limit": limit, "totalElements": total})

    return handler


def factor_value(value_id: int, value: str, category: str = "genotype") -> dict:
    return {
        "id": value_id,
        "category": category,
        "categoryUri": "http://www.ebi.ac.uk/efo/EFO_0000513",
        "value": value,
        "valueUri": None,
        "experimentalFactorId": 10,
    }


def sample_record(sample_id: int, name: str, genotype: str) -> dict:
    return {
        "id": sample_id,
        "name": name,
        "description": f"{name} hippocampus",
        "outlier": False,
        "accession": {"accession": f"GSM{sample_id}", "externalDatabase": {"name": "GEO"}},
        "sample": {
            "id": sample_id + 1000,
            "name": name,
            "characteristics": [
                {
                    "category": "organism part",
                    "categoryUri": "http://purl.obolibrary.org/obo/UBERON_0002421",
                    "value": "hippocampus",
                    "valueUri": "http://purl.obolibrary.org/obo/UBERON_0002421",
                }
            ],
            "factorValues": [factor_value(100 if genotype == "wild type" else 101, genotype)],
        },
    }


def samples_payload() -> dict:
    return {
        "data": [
            sample_record(1, "S1", "wild type"),
            sample_record(2, "S2", "mutant"),
            sample_record(3, "S3", "mutant"),
            sample_record(4, "S4", "wild type"),
        ]
    }


def analysis_record(analysis_id: int, result_set_ids: list[int], dataset_id: int = 1, subset=None) -> dict:
    return {
        "id": analysis_id,
        "bioAssaySetId": dataset_id,
        "subsetFactorValue": subset,
        "resultSets": [
            {
                "id": rid,
                "baselineGroup": {"id": 100, "value": "wild type", "valueUri": None},
                "experimentalFactors": [
                    {
                        "id": 10,
                        "category": "genotype",
                        "categoryUri": "http://www.ebi.ac.uk/efo/EFO_0000513",
                        "values": [factor_value(100, "wild type"), factor_value(101, "mutant")],
                    }
                ],
            }
            for rid in result_set_ids
        ],
    }


EXPRESSION_TSV = "\n".join([
    "# Expression data for GSE1",
    "# Generated by Gemma",
    "Probe\tSequence\tGeneSymbol\tGeneName\tGemmaId\tNCBIid\t"
    "GSE1_S1___BioAssayId=1Name=S1\tGSE1_S2___BioAssayId=2Name=S2\tGSE1_S3___BioAssayId=3Name=S3",
    "p1\tseq1\tGrin1\tglutamate receptor\t10\t14810\t5.0\t6.0\t7.0",
    "p2\tseq2\tGrin1\tglutamate receptor\t10\t14810\t1.0\t2.0\t9.0",
    "p3\tseq3\tDlg4\tdiscs large 4\t11\t13385\t3.0\t3.0\t3.0",
    "p4\tseq4\t\t\t\t\t4.0\t4.0\t4.0",
])

RESULT_SET_TSV = "\n".join([
    "# Differential expression results",
    "Element_Name\tGene_Symbol\tGene_Name\tNCBI_ID\tpvalue\tcorrected_pvalue\trank\tcontrast_101_log2fc",
    "p1\tGrin1\tglutamate receptor\t14810\t0.001\t0.01\t0.1\t1.5",
    "p3\tDlg4\tdiscs large 4\t13385\t0.2\t0.4\t0.6\t-0.3",
])
