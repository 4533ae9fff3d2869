"""Gemma REST API client package exports."""

from gemma_rest.assemble import (
    DatasetBundle,
    get_dataset_object,
    get_differential_expression_values,
    make_design,
)
from gemma_rest.cache import ResponseCache
from gemma_rest.client import GemmaClient
from gemma_rest.config import GemmaConfig
from gemma_rest.exceptions import (
    GemmaError,
    GemmaTimeoutError,
    HttpError,
    InvalidParameter,
    MultipleResultSetsError,
    NetworkError,
    OutputExistsError,
    SchemaMismatch,
)
from gemma_rest.io_utils import load_result, save_result

__all__ = [
    "GemmaClient",
    "GemmaConfig",
    "ResponseCache",
    "DatasetBundle",
    "get_dataset_object",
    "get_differential_expression_values",
    "make_design",
    "save_result",
    "load_result",
    "GemmaError",
    "InvalidParameter",
    "SchemaMismatch",
    "HttpError",
    "NetworkError",
    "GemmaTimeoutError",
    "OutputExistsError",
    "MultipleResultSetsError",
]
