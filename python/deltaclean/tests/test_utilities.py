import sys

import pytest
from deltalake import CommitProperties

from deltaclean import (
    AWSUtilities,
    AzureUtilities,
    DedupConfig,
    NotFoundError,
    latest_version,
    open_delta_table,
    validate_path,
)
from deltaclean.utilities import resolve_storage_options
from deltaclean.validation import (
    validate_columns_exist,
    validate_key_columns,
    validate_primary_key,
)
from deltaclean.errors import InvalidArgumentError, SchemaMismatchError


# -------------------------------------------------------------------
# latest_version
# -------------------------------------------------------------------


def test_latest_version_missing_table_pathlike(tmp_path):
    empty_dir = tmp_path / "still-nothing"
    empty_dir.mkdir()
    with pytest.raises(NotFoundError):
        latest_version(empty_dir)


def test_latest_version_reads_most_recent_entry(history_table):
    assert latest_version(history_table([3, 2, 1])) == 3


def test_latest_version_single_commit(history_table):
    assert latest_version(history_table([0])) == 0


def test_latest_version_no_history(history_table):
    with pytest.raises(NotFoundError):
        latest_version(history_table([]))


def test_latest_version_missing_table(tmp_path):
    empty_dir = tmp_path / "nothing-here"
    empty_dir.mkdir()
    with pytest.raises(NotFoundError):
        latest_version(str(empty_dir))


# -------------------------------------------------------------------
# paths and storage options
# -------------------------------------------------------------------


@pytest.mark.parametrize(
    "path",
    [
        "s3://bucket/warehouse/table",
        "abfss://container@account.dfs.core.windows.net/table",
        "file:///tmp/table",
        "/tmp/table",
        "relative/table",
    ],
)
def test_validate_path_accepts(path):
    validate_path(path)


@pytest.mark.parametrize("path", ["", None])
def test_validate_path_rejects_empty(path):
    with pytest.raises(ValueError, match="non-empty"):
        validate_path(path)


def test_validate_path_rejects_incomplete_cloud_path():
    with pytest.raises(ValueError, match="incomplete"):
        validate_path("s3://bucket")


def test_validate_path_rejects_azure_scheme():
    with pytest.raises(ValueError, match="abfss"):
        validate_path("azure://container/table/path")


def test_storage_options_local_path_untouched():
    assert resolve_storage_options("/tmp/table") == {}
    assert resolve_storage_options("/tmp/table", {"timeout": "30s"}) == {"timeout": "30s"}


def test_storage_options_user_values_take_precedence(monkeypatch):
    monkeypatch.setattr(
        AWSUtilities,
        "_get_aws_credentials",
        staticmethod(lambda: {"AWS_REGION": "us-east-1", "AWS_ACCESS_KEY_ID": "detected"}),
    )
    options = resolve_storage_options(
        "s3://bucket/warehouse/table", {"AWS_REGION": "eu-west-1"}
    )
    assert options == {"AWS_REGION": "eu-west-1", "AWS_ACCESS_KEY_ID": "detected"}


def test_storage_options_azure_without_credentials(monkeypatch):
    monkeypatch.setattr(AzureUtilities, "_get_azure_credential", staticmethod(lambda: None))
    assert AzureUtilities.get_azure_storage_options("abfss://c@a.dfs.core.windows.net/t") == {}


def test_open_delta_table_passes_handles_through(history_table):
    handle = history_table([1])
    assert open_delta_table(handle) is handle


# -------------------------------------------------------------------
# validation and config
# -------------------------------------------------------------------


def test_validate_key_columns_returns_list():
    assert validate_key_columns(("a", "b")) == ["a", "b"]


@pytest.mark.parametrize("key", [[], None, "a", ["a", ""]])
def test_validate_key_columns_rejects(key):
    with pytest.raises(InvalidArgumentError):
        validate_key_columns(key)


def test_validate_primary_key():
    assert validate_primary_key("id") == "id"
    with pytest.raises(InvalidArgumentError):
        validate_primary_key("")


def test_validate_columns_exist_lists_every_missing_column():
    with pytest.raises(SchemaMismatchError) as exc_info:
        validate_columns_exist(["a", "b", "c"], ["a"])
    assert exc_info.value.missing_columns == ["b", "c"]
    assert isinstance(exc_info.value, ValueError)


def test_config_merge_kwargs():
    config = DedupConfig()
    assert config.merge_kwargs() == {"source_alias": "new", "target_alias": "old"}

    properties = CommitProperties(custom_metadata={"job": "dedup"})
    config = DedupConfig(commit_properties=properties)
    assert config.merge_kwargs()["commit_properties"] is properties


def test_config_rejects_equal_aliases():
    with pytest.raises(ValueError):
        DedupConfig(target_alias="t", source_alias="t")


if __name__ == "__main__":
    sys.exit(pytest.main(["-v", __file__]))
