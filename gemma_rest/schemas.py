"""Declared output schemas for Gemma endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

PathKey = str | int

DTYPES = ("int", "float", "bool", "str", "datetime", "list")

# pandas dtype used for each declared column type
PANDAS_DTYPES = {
    "int": "Int64",
    "float": "float64",
    "bool": "boolean",
    "str": "object",
    "datetime": "datetime64[ns, UTC]",
    "list": "object",
}


@dataclass(frozen=True)
class FieldSpec:
    """One output column and where its value lives in a JSON record."""

    column: str
    path: tuple[PathKey, ...]
    dtype: str = "str"
    default: Any = None
    parent: bool = False
    items: tuple["FieldSpec", ...] | None = None

    def __post_init__(self) -> None:
        if self.dtype not in DTYPES:
            raise ValueError(f"Unknown dtype {self.dtype!r} for column {self.column}")

    def absent(self) -> Any:
        """Value used when the source field is missing or null."""
        if self.default is not None:
            return self.default
        if self.dtype == "list":
            return []
        if self.dtype == "float":
            return np.nan
        if self.dtype == "datetime":
            return pd.NaT
        if self.dtype in ("int", "bool"):
            return pd.NA
        return None


@dataclass(frozen=True)
class EndpointDescriptor:
    """A remote resource class and the table it normalizes to."""

    name: str
    path: str
    fields: tuple[FieldSpec, ...]
    # identifier placeholder in `path` -> "single" or "multiple"
    ids: dict[str, str] = field(default_factory=dict)
    row_path: tuple[PathKey, ...] | None = None
    paginated: bool = False
    response: str = "json"

    @property
    def columns(self) -> list[str]:
        return [f.column for f in self.fields]

    def format_path(self, **ids: str) -> str:
        return self.path.format(**ids)


def _taxon_fields(base: tuple[PathKey, ...] = ("taxon",), parent: bool = False) -> tuple[FieldSpec, ...]:
    return (
        FieldSpec("taxon.Name", base + ("commonName",), parent=parent),
        FieldSpec("taxon.Scientific", base + ("scientificName",), parent=parent),
        FieldSpec("taxon.ID", base + ("id",), "int", parent=parent),
        FieldSpec("taxon.NCBI", base + ("ncbiId",), "int", parent=parent),
        FieldSpec("taxon.Database.Name", base + ("externalDatabase", "name"), parent=parent),
        FieldSpec("taxon.Database.ID", base + ("externalDatabase", "id"), "int", parent=parent),
    )


DATASET_FIELDS = (
    FieldSpec("ee.ShortName", ("shortName",)),
    FieldSpec("ee.Name", ("name",)),
    FieldSpec("ee.ID", ("id",), "int"),
    FieldSpec("ee.Description", ("description",)),
    FieldSpec("ee.Public", ("isPublic",), "bool"),
    FieldSpec("ee.Troubled", ("troubled",), "bool"),
    FieldSpec("ee.Accession", ("accession",)),
    FieldSpec("ee.Database", ("externalDatabase",)),
    FieldSpec("ee.URI", ("externalUri",)),
    FieldSpec("ee.Samples", ("bioAssayCount",), "int"),
    FieldSpec("ee.LastUpdated", ("lastUpdated",), "datetime"),
    FieldSpec("ee.BatchEffect", ("batchEffect",)),
    FieldSpec("ee.BatchCorrected", ("batchCorrected",), "bool"),
    FieldSpec("geeq.qScore", ("geeq", "publicQualityScore"), "float"),
    FieldSpec("geeq.sScore", ("geeq", "publicSuitabilityScore"), "float"),
) + _taxon_fields()

PLATFORM_FIELDS = (
    FieldSpec("platform.ID", ("id",), "int"),
    FieldSpec("platform.ShortName", ("shortName",)),
    FieldSpec("platform.Name", ("name",)),
    FieldSpec("platform.Description", ("description",)),
    FieldSpec("platform.Troubled", ("troubled",), "bool"),
    FieldSpec("platform.ExperimentCount", ("expressionExperimentCount",), "int"),
    FieldSpec("platform.Type", ("technologyType",)),
) + _taxon_fields()

GENE_FIELDS = (
    FieldSpec("gene.Symbol", ("officialSymbol",)),
    FieldSpec("gene.Ensembl", ("ensemblId",)),
    FieldSpec("gene.NCBI", ("ncbiId",), "int"),
    FieldSpec("gene.Name", ("officialName",)),
    FieldSpec("gene.MFX.Rank", ("multifunctionalityRank",), "float"),
) + _taxon_fields()

CHARACTERISTIC_ITEMS = (
    FieldSpec("category", ("category",)),
    FieldSpec("category.URI", ("categoryUri",)),
    FieldSpec("value", ("value",)),
    FieldSpec("value.URI", ("valueUri",)),
)

FACTOR_VALUE_ITEMS = (
    FieldSpec("ID", ("id",), "int"),
    FieldSpec("category", ("category",)),
    FieldSpec("category.URI", ("categoryUri",)),
    FieldSpec("value", ("value",)),
    FieldSpec("value.URI", ("valueUri",)),
    FieldSpec("factor.ID", ("experimentalFactorId",), "int"),
)

SAMPLE_FIELDS = (
    FieldSpec("sample.Name", ("name",)),
    FieldSpec("sample.ID", ("id",), "int"),
    FieldSpec("sample.Description", ("description",)),
    FieldSpec("sample.Outlier", ("outlier",), "bool"),
    FieldSpec("sample.Accession", ("accession", "accession")),
    FieldSpec("sample.Database", ("accession", "externalDatabase", "name")),
    FieldSpec("sample.Characteristics", ("sample", "characteristics"), "list", items=CHARACTERISTIC_ITEMS),
    FieldSpec("sample.FactorValues", ("sample", "factorValues"), "list", items=FACTOR_VALUE_ITEMS),
)

ANNOTATION_FIELDS = (
    FieldSpec("class.Name", ("className",)),
    FieldSpec("class.URI", ("classUri",)),
    FieldSpec("term.Name", ("termName",)),
    FieldSpec("term.URI", ("termUri",)),
    FieldSpec("object.Class", ("objectClass",)),
)

# rows are result sets; analysis-level fields repeat on every row
DIFFERENTIAL_ANALYSIS_FIELDS = (
    FieldSpec("result.ID", ("id",), "int"),
    FieldSpec("analysis.ID", ("id",), "int", parent=True),
    FieldSpec("experiment.ID", ("bioAssaySetId",), "int", parent=True),
    FieldSpec("factor.ID", ("experimentalFactors", 0, "id"), "int"),
    FieldSpec("factor.Category", ("experimentalFactors", 0, "category")),
    FieldSpec("factor.CategoryURI", ("experimentalFactors", 0, "categoryUri")),
    FieldSpec("baseline.ID", ("baselineGroup", "id"), "int"),
    FieldSpec("baseline.Value", ("baselineGroup", "value")),
    FieldSpec("baseline.ValueURI", ("baselineGroup", "valueUri")),
    FieldSpec("factor.Values", ("experimentalFactors", 0, "values"), "list", items=FACTOR_VALUE_ITEMS),
    FieldSpec("subsetFactor.Category", ("subsetFactorValue", "category"), parent=True),
    FieldSpec("subsetFactor.Value", ("subsetFactorValue", "value"), parent=True),
)

QUANTITATION_FIELDS = (
    FieldSpec("quantitation.ID", ("id",), "int"),
    FieldSpec("quantitation.Name", ("name",)),
    FieldSpec("quantitation.Description", ("description",)),
    FieldSpec("quantitation.Type", ("generalType",)),
    FieldSpec("quantitation.StandardType", ("type",)),
    FieldSpec("quantitation.Scale", ("scale",)),
    FieldSpec("quantitation.Representation", ("representation",)),
    FieldSpec("quantitation.Preferred", ("isPreferred",), "bool"),
    FieldSpec("quantitation.Recomputed", ("isRecomputedFromRawData",), "bool"),
)

ELEMENT_FIELDS = (
    FieldSpec("element.ID", ("id",), "int"),
    FieldSpec("element.Name", ("name",)),
    FieldSpec("element.Description", ("description",)),
    FieldSpec("platform.ID", ("arrayDesign", "id"), "int"),
    FieldSpec("platform.ShortName", ("arrayDesign", "shortName")),
    FieldSpec("platform.Name", ("arrayDesign", "name")),
    FieldSpec("platform.Type", ("arrayDesign", "technologyType")),
) + _taxon_fields(("arrayDesign", "taxon"))

LOCATION_FIELDS = (
    FieldSpec("location.Chromosome", ("chromosome",)),
    FieldSpec("location.Strand", ("strand",)),
    FieldSpec("location.Nucleotide", ("nucleotide",), "int"),
    FieldSpec("location.Length", ("length",), "int"),
) + _taxon_fields()

GO_TERM_FIELDS = (
    FieldSpec("term.Name", ("term",)),
    FieldSpec("term.ID", ("goId",)),
    FieldSpec("term.URI", ("uri",)),
)

TAXON_FIELDS = _taxon_fields(())

ANNOTATION_SEARCH_FIELDS = (
    FieldSpec("category.Name", ("category",)),
    FieldSpec("category.URI", ("categoryUri",)),
    FieldSpec("value.Name", ("value",)),
    FieldSpec("value.URI", ("valueUri",)),
)

# TSV endpoints only declare the columns that must be present
EXPRESSION_FIELDS = (
    FieldSpec("Probe", ("Probe",)),
    FieldSpec("GeneSymbol", ("GeneSymbol",)),
    FieldSpec("GeneName", ("GeneName",)),
    FieldSpec("NCBIid", ("NCBIid",)),
)

DESIGN_FIELDS = (
    FieldSpec("Bioassay", ("Bioassay",)),
    FieldSpec("ExternalID", ("ExternalID",)),
)

RESULT_SET_FIELDS = (
    FieldSpec("Element_Name", ("Element_Name",)),
    FieldSpec("Gene_Symbol", ("Gene_Symbol",)),
    FieldSpec("Gene_Name", ("Gene_Name",)),
    FieldSpec("NCBI_ID", ("NCBI_ID",)),
)

_ENDPOINT_LIST = (
    EndpointDescriptor("datasets", "datasets", DATASET_FIELDS, paginated=True),
    EndpointDescriptor(
        "datasets_by_ids", "datasets/{datasets}", DATASET_FIELDS,
        ids={"datasets": "multiple"}, paginated=True,
    ),
    EndpointDescriptor(
        "dataset_platforms", "datasets/{dataset}/platforms", PLATFORM_FIELDS,
        ids={"dataset": "single"},
    ),
    EndpointDescriptor(
        "dataset_samples", "datasets/{dataset}/samples", SAMPLE_FIELDS,
        ids={"dataset": "single"},
    ),
    EndpointDescriptor(
        "dataset_annotations", "datasets/{dataset}/annotations", ANNOTATION_FIELDS,
        ids={"dataset": "single"},
    ),
    EndpointDescriptor(
        "dataset_differential_analyses", "datasets/{dataset}/analyses/differential",
        DIFFERENTIAL_ANALYSIS_FIELDS, ids={"dataset": "single"}, row_path=("resultSets",),
    ),
    EndpointDescriptor(
        "dataset_quantitation_types", "datasets/{dataset}/quantitationTypes",
        QUANTITATION_FIELDS, ids={"dataset": "single"},
    ),
    EndpointDescriptor(
        "dataset_design", "datasets/{dataset}/design", DESIGN_FIELDS,
        ids={"dataset": "single"}, response="tsv",
    ),
    EndpointDescriptor(
        "dataset_processed_expression", "datasets/{dataset}/data/processed",
        EXPRESSION_FIELDS, ids={"dataset": "single"}, response="tsv",
    ),
    EndpointDescriptor(
        "result_set", "resultSets/{result_set}", RESULT_SET_FIELDS,
        ids={"result_set": "single"}, response="tsv",
    ),
    EndpointDescriptor(
        "platforms_by_ids", "platforms/{platforms}", PLATFORM_FIELDS,
        ids={"platforms": "multiple"}, paginated=True,
    ),
    EndpointDescriptor(
        "platform_datasets", "platforms/{platform}/datasets", DATASET_FIELDS,
        ids={"platform": "single"}, paginated=True,
    ),
    EndpointDescriptor(
        "platform_element_genes", "platforms/{platform}/elements/{probe}/genes",
        GENE_FIELDS, ids={"platform": "single", "probe": "single"}, paginated=True,
    ),
    EndpointDescriptor("genes", "genes/{genes}", GENE_FIELDS, ids={"genes": "multiple"}),
    EndpointDescriptor(
        "gene_locations", "genes/{gene}/locations", LOCATION_FIELDS, ids={"gene": "single"},
    ),
    EndpointDescriptor(
        "gene_probes", "genes/{gene}/probes", ELEMENT_FIELDS,
        ids={"gene": "single"}, paginated=True,
    ),
    EndpointDescriptor(
        "gene_go_terms", "genes/{gene}/goTerms", GO_TERM_FIELDS, ids={"gene": "single"},
    ),
    EndpointDescriptor("taxa", "taxa", TAXON_FIELDS),
    EndpointDescriptor("annotation_search", "annotations/search", ANNOTATION_SEARCH_FIELDS),
)

ENDPOINTS: dict[str, EndpointDescriptor] = {e.name: e for e in _ENDPOINT_LIST}


def get_endpoint(name: str) -> EndpointDescriptor:
    """Look up a descriptor by endpoint name."""
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise KeyError(f"Unknown Gemma endpoint: {name}") from None
