from __future__ import annotations

from tests.helpers.fakes import SAMPLE_METADATA_TIMESTAMP, SAMPLE_METADATA_TIMESTAMP_OTHER, consents_map
from edgeconsent.core.consent.merge import deep_merge
from edgeconsent.core.consent.models import Consents


def test_incoming_wins_and_unrelated_keys_survive():
    base = consents_map("y", "n", time=SAMPLE_METADATA_TIMESTAMP)
    incoming = consents_map("n", None, "pi", SAMPLE_METADATA_TIMESTAMP_OTHER)
    assert deep_merge(base, incoming) == consents_map("n", "n", "pi", SAMPLE_METADATA_TIMESTAMP_OTHER)


def test_nested_mappings_merge_key_by_key():
    base = {"consents": {"collect": {"val": "y", "source": "user"}}}
    incoming = {"consents": {"collect": {"val": "n"}}}
    assert deep_merge(base, incoming) == {"consents": {"collect": {"val": "n", "source": "user"}}}


def test_scalar_replaces_mapping_and_vice_versa():
    assert deep_merge({"a": {"b": 1}}, {"a": 2}) == {"a": 2}
    assert deep_merge({"a": 2}, {"a": {"b": 1}}) == {"a": {"b": 1}}


def test_merge_into_none_or_empty():
    incoming = consents_map("n")
    assert deep_merge(None, incoming) == incoming
    assert deep_merge({}, incoming) == incoming


def test_merge_with_nothing_is_identity():
    base = consents_map("y", "n", time=SAMPLE_METADATA_TIMESTAMP)
    assert deep_merge(base, None) == base
    assert deep_merge(base, {}) == base


def test_inputs_are_not_mutated():
    base = consents_map("y", "n")
    incoming = consents_map("n")
    out = deep_merge(base, incoming)
    out["consents"]["adID"]["val"] = "changed"
    assert base == consents_map("y", "n")
    assert incoming == consents_map("n")


def test_new_keys_append_after_existing_ones():
    out = deep_merge({"consents": {"collect": {"val": "y"}}}, {"consents": {"adID": {"val": "n"}}})
    assert list(out["consents"]) == ["collect", "adID"]


def test_merged_with_returns_new_document():
    a = Consents(consents_map("y"))
    b = a.merged_with(Consents(consents_map(None, "n")))
    assert a.ad_id is None
    assert (b.collect, b.ad_id) == ("y", "n")
    assert a.merged_with(None) is a
