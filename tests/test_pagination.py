"""Tests for the offset/limit page loop."""

import pytest

from conftest import dataset_record, datasets_handler
from gemma_rest import GemmaClient, GemmaConfig
from gemma_rest.exceptions import HttpError, InvalidParameter
from gemma_rest.pagination import paginate


def _fake_source(total: int):
    calls = []

    def fetch_page(offset: int, limit: int) -> list[int]:
        calls.append((offset, limit))
        return list(range(offset, min(offset + limit, total)))

    return fetch_page, calls


def test_pages_are_clamped_to_max_page_size() -> None:
    fetch_page, calls = _fake_source(total=100)

    pages = paginate(fetch_page, limit=12, offset=0, max_page_size=5)

    assert calls == [(0, 5), (5, 5), (10, 2)]
    assert [row for page in pages for row in page] == list(range(12))


def test_limit_zero_issues_no_request() -> None:
    fetch_page, calls = _fake_source(total=100)

    got = paginate(fetch_page, limit=0, offset=0, max_page_size=5)

    assert got == []
    assert calls == []


def test_short_page_ends_the_loop() -> None:
    fetch_page, calls = _fake_source(total=7)

    pages = paginate(fetch_page, limit=20, offset=0, max_page_size=5)

    assert calls == [(0, 5), (5, 5)]
    assert [row for page in pages for row in page] == list(range(7))


def test_offset_is_honoured() -> None:
    fetch_page, calls = _fake_source(total=100)

    pages = paginate(fetch_page, limit=6, offset=40, max_page_size=5)

    assert calls == [(40, 5), (45, 1)]
    assert pages[0][0] == 40


@pytest.mark.parametrize("limit,offset", [(5, -1), (-1, 0), (2.5, 0)])
def test_bad_window_raises_before_fetching(limit, offset) -> None:
    fetch_page, calls = _fake_source(total=100)

    with pytest.raises(InvalidParameter):
        paginate(fetch_page, limit=limit, offset=offset, max_page_size=5)
    assert calls == []


def test_failure_mid_sequence_propagates() -> None:
    calls = []

    def fetch_page(offset: int, limit: int) -> list[int]:
        calls.append(offset)
        if offset >= 5:
            raise HttpError(500, "boom")
        return list(range(limit))

    with pytest.raises(HttpError):
        paginate(fetch_page, limit=12, offset=0, max_page_size=5)
    assert calls == [0, 5]


def test_client_paginates_datasets_sequentially(session) -> None:
    session.add_handler("datasets", datasets_handler(total=50))
    client = GemmaClient(GemmaConfig(base_url="https://gemma.test/rest/v2", max_page_size=5), session=session)

    got = client.get_datasets(limit=12)

    assert [(c["params"]["offset"], c["params"]["limit"]) for c in session.calls] == [(0, 5), (5, 5), (10, 2)]
    assert got["ee.ID"].tolist() == list(range(1, 13))


def test_client_limit_zero_returns_empty_table(client, session) -> None:
    session.add_handler("datasets", datasets_handler(total=50))

    got = client.get_datasets(limit=0)

    assert got.empty
    assert "ee.ID" in got.columns
    assert session.calls == []


def test_client_negative_offset_sends_nothing(client, session) -> None:
    session.add_handler("datasets", datasets_handler(total=50))

    with pytest.raises(InvalidParameter):
        client.get_datasets(offset=-3)
    assert session.calls == []


def test_client_raw_pages_come_back_in_order(session) -> None:
    session.add_handler("datasets", datasets_handler(total=8))
    client = GemmaClient(GemmaConfig(base_url="https://gemma.test/rest/v2", max_page_size=5), session=session)

    got = client.get_datasets(limit=10, raw=True)

    assert len(got) == 2
    assert [r["id"] for page in got for r in page["data"]] == list(range(1, 9))


def test_client_caps_rows_when_server_over_delivers(session) -> None:
    session.add("datasets", {"data": [dataset_record(i) for i in range(1, 9)]})
    client = GemmaClient(GemmaConfig(base_url="https://gemma.test/rest/v2", max_page_size=5), session=session)

    got = client.get_datasets(limit=3)

    assert got["ee.ID"].tolist() == [1, 2, 3]
    assert got.index.tolist() == [0, 1, 2]
    assert len(session.calls) == 1
