"""Errors raised by the Gemma client."""

from __future__ import annotations


class GemmaError(Exception):
    """Base class for every error raised by this package."""


class InvalidParameter(GemmaError, ValueError):
    """Caller input rejected before any request is sent."""


class SchemaMismatch(GemmaError):
    """Response shape does not match the endpoint's declared schema."""


class HttpError(GemmaError):
    """Non-2xx response from the Gemma server."""

    def __init__(self, status: int, body: str, url: str | None = None):
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"HTTP {status} for {url or 'request'}: {body[:200]}")


class NetworkError(GemmaError):
    """Transport failure (DNS, refused connection, TLS, ...)."""


class GemmaTimeoutError(GemmaError, TimeoutError):
    """The configured request deadline elapsed."""


class OutputExistsError(GemmaError, FileExistsError):
    """Refused to overwrite an existing output file."""


class MultipleResultSetsError(GemmaError):
    """A dataset has several result sets and none was chosen."""

    def __init__(self, dataset: str | int, result_set_ids: list[int]):
        self.dataset = dataset
        self.result_set_ids = list(result_set_ids)
        ids = ", ".join(str(i) for i in self.result_set_ids)
        super().__init__(
            f"Dataset {dataset} has {len(self.result_set_ids)} result sets ({ids}); "
            "pass result_set=<id> or all_results=True"
        )
