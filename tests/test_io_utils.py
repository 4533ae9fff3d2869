"""Tests for the output router."""

import pandas as pd
import pytest

from conftest import samples_payload
from gemma_rest.exceptions import OutputExistsError
from gemma_rest.io_utils import choose_extension, create_run_dir, load_result, save_result
from gemma_rest.normalize import normalize_response
from gemma_rest.schemas import get_endpoint


def test_choose_extension() -> None:
    flat = pd.DataFrame({"a": [1, 2]})
    nested = pd.DataFrame({"a": [[1], [2]]})

    assert choose_extension({"data": []}) == ".json"
    assert choose_extension([{"id": 1}]) == ".json"
    assert choose_extension("Probe\tGeneSymbol\n") == ".tsv"
    assert choose_extension(flat) == ".csv"
    assert choose_extension(nested) == ".pkl"
    assert choose_extension({1: flat}) == ".pkl"


def test_nested_table_survives_pickle_round_trip(tmp_path) -> None:
    samples = normalize_response(samples_payload(), get_endpoint("dataset_samples"))

    path = save_result(samples, tmp_path / "samples.csv")
    got = load_result(path)

    assert path.suffix == ".pkl"
    assert got.dtypes.equals(samples.dtypes)
    assert got.equals(samples)
    assert got["sample.Characteristics"].iloc[2] == samples["sample.Characteristics"].iloc[2]


def test_existing_file_is_not_overwritten(tmp_path) -> None:
    frame = pd.DataFrame({"a": [1]})
    save_result(frame, tmp_path / "out")

    with pytest.raises(FileExistsError):
        save_result(frame, tmp_path / "out")

    save_result(pd.DataFrame({"a": [2]}), tmp_path / "out", overwrite=True)
    assert load_result(tmp_path / "out.csv")["a"].tolist() == [2]


def test_refusal_is_a_package_error(tmp_path) -> None:
    save_result({"data": []}, tmp_path / "doc")

    with pytest.raises(OutputExistsError):
        save_result({"data": []}, tmp_path / "doc")


def test_parent_directories_are_created(tmp_path) -> None:
    path = save_result("Probe\n", tmp_path / "a" / "b" / "expr")

    assert path == tmp_path / "a" / "b" / "expr.tsv"
    assert load_result(path) == "Probe\n"


def test_create_run_dir(tmp_path) -> None:
    run_dir = create_run_dir(str(tmp_path))

    assert run_dir.is_dir()
    assert run_dir.name.startswith("run_")
