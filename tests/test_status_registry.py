import asyncio
import json

import pytest

from invoice_aggregator.core.exceptions import ConfigParseError
from invoice_aggregator.core.status_registry import StatusRegistry, is_safe_identifier


def test_resolve_returns_entry(store_factory):
    store = store_factory(report_forms={"7": json.dumps({"db_table": "cmt_address", "heading": "Address"})})
    entry = asyncio.run(StatusRegistry(store).resolve("7"))

    assert entry.service_id == "7"
    assert entry.table_name == "cmt_address"
    assert entry.status_column == "status"


def test_resolve_custom_status_column(store_factory):
    store = store_factory(report_forms={"7": json.dumps({"db_table": "cmt_address", "status_column": "overall_status"})})
    entry = asyncio.run(StatusRegistry(store).resolve("7"))
    assert entry.status_column == "overall_status"


def test_resolve_missing_entry_returns_none(store_factory):
    store = store_factory()
    assert asyncio.run(StatusRegistry(store).resolve("404")) is None


def test_resolve_accepts_decoded_document(store_factory):
    # jsonb codecs may hand back an already decoded dict
    store = store_factory(report_forms={"7": {"db_table": "cmt_address"}})
    entry = asyncio.run(StatusRegistry(store).resolve("7"))
    assert entry.table_name == "cmt_address"


@pytest.mark.parametrize("document, reason", [
    ("{not json", "not valid JSON"),
    (json.dumps(["cmt_address"]), "not an object"),
    (json.dumps({"heading": "Address"}), "missing db_table"),
    (json.dumps({"db_table": "cmt_address; DROP TABLE customers"}), "not a valid identifier"),
    (json.dumps({"db_table": 42}), "not a valid identifier"),
    (json.dumps({"db_table": "cmt_address", "status_column": "status\" --"}), "status_column"),
])
def test_malformed_documents_raise_config_parse_error(store_factory, document, reason):
    store = store_factory(report_forms={"9": document})
    with pytest.raises(ConfigParseError) as exc_info:
        asyncio.run(StatusRegistry(store).resolve("9"))
    assert exc_info.value.service_id == "9"
    assert reason in exc_info.value.reason


def test_allowlist_rejects_unknown_table(store_factory):
    store = store_factory(report_forms={
        "1": json.dumps({"db_table": "cmt_address"}),
        "2": json.dumps({"db_table": "admins"}),
    })
    registry = StatusRegistry(store, allowed_tables=["cmt_address"])

    assert asyncio.run(registry.resolve("1")).table_name == "cmt_address"
    with pytest.raises(ConfigParseError, match="not allowlisted"):
        asyncio.run(registry.resolve("2"))


def test_is_safe_identifier():
    assert is_safe_identifier("cmt_applications")
    assert is_safe_identifier("_x1")
    assert not is_safe_identifier("1table")
    assert not is_safe_identifier("public.customers")
    assert not is_safe_identifier("a" * 64)
    assert not is_safe_identifier(None)
