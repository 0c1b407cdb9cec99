from __future__ import annotations

import json

import pytest

from tests.helpers.fakes import PREFERENCES_KEY, SAMPLE_METADATA_TIMESTAMP, consents_json, consents_map
from edgeconsent.core.consent.extension import ConsentExtension
from edgeconsent.core.consent.manager import ConsentManagerConfig, ConsentStateManager
from edgeconsent.core.events.bus import EventBus, EventBusConfig
from edgeconsent.core.events.models import BaseEvent, SourceSubsystem


@pytest.fixture
def bus():
    b = EventBus(cfg=EventBusConfig(enabled=True, max_queue_size=100), logger=None)
    yield b
    b.shutdown(0.5)


def _wire(bus, provider):
    m = ConsentStateManager(store_provider=provider, cfg=ConsentManagerConfig())
    ext = ConsentExtension(manager=m, event_bus=bus)
    ext.register()
    seen = []
    bus.subscribe("consent.response_content", lambda ev: seen.append(ev.payload))
    return m, ext, seen


def _ev(event_type, payload=None, source=SourceSubsystem.app):
    return BaseEvent(event_type=event_type, source_subsystem=source, payload=payload or {})


def test_dispatch_table_covers_listeners(bus, provider):
    _, ext, _ = _wire(bus, provider)
    assert ext.handled_event_types() == [
        "configuration.response_content",
        "consent.request_content",
        "consent.update_consent",
        "edge.consent_preference",
        "hub.booted",
    ]
    assert bus.get_stats()["subscribers"] == 2


def test_consent_update_merges_stamps_and_notifies(bus, fake_store, provider):
    m, _, seen = _wire(bus, provider)
    bus.publish(_ev("consent.update_consent", consents_map("y")))
    assert bus.flush()

    cur = m.get_current_consents()
    assert cur.collect == "y"
    assert cur.timestamp is not None and cur.timestamp.endswith("Z")
    assert json.loads(fake_store.data[PREFERENCES_KEY])["consents"]["collect"] == {"val": "y"}
    assert seen and seen[-1]["consents"]["collect"] == {"val": "y"}


def test_consent_update_keeps_supplied_timestamp(bus, provider):
    m, _, _ = _wire(bus, provider)
    bus.publish(_ev("consent.update_consent", consents_map("n", time=SAMPLE_METADATA_TIMESTAMP)))
    assert bus.flush()
    assert m.get_current_consents().timestamp == SAMPLE_METADATA_TIMESTAMP


def test_empty_update_is_ignored(bus, fake_store, provider):
    _, _, seen = _wire(bus, provider)
    bus.publish(_ev("consent.update_consent", {}))
    bus.publish(_ev("consent.update_consent", {"consents": {}}))
    assert bus.flush()
    assert fake_store.calls == [("get", PREFERENCES_KEY)]
    assert seen == []


def test_edge_preference_response_merges(bus, fake_store, provider):
    fake_store.data[PREFERENCES_KEY] = consents_json("y", "y")
    m, _, seen = _wire(bus, provider)
    bus.publish(_ev("edge.consent_preference", consents_map(None, "n"), source=SourceSubsystem.edge))
    assert bus.flush()
    cur = m.get_current_consents()
    assert (cur.collect, cur.ad_id) == ("y", "n")
    assert seen[-1] == consents_map("y", "n")


def test_configuration_defaults_fill_gaps_but_never_override(bus, fake_store, provider):
    fake_store.data[PREFERENCES_KEY] = consents_json("n")
    m, ext, seen = _wire(bus, provider)
    bus.publish(
        _ev(
            "configuration.response_content",
            {"consent.default": consents_map("y", "y")},
            source=SourceSubsystem.configuration,
        )
    )
    assert bus.flush()
    eff = ext.effective_consents()
    assert (eff.collect, eff.ad_id) == ("n", "y")
    # defaults are not persisted
    assert json.loads(fake_store.data[PREFERENCES_KEY]) == consents_map("n")
    assert m.get_current_consents().ad_id is None
    assert seen[-1] == consents_map("n", "y")


def test_configuration_without_defaults_is_ignored(bus, provider):
    _, ext, seen = _wire(bus, provider)
    bus.publish(_ev("configuration.response_content", {"edge.configId": "abc"}, source=SourceSubsystem.configuration))
    assert bus.flush()
    assert ext.default_consents() is None
    assert seen == []


def test_unchanged_defaults_do_not_notify_twice(bus, provider):
    _, _, seen = _wire(bus, provider)
    ev_payload = {"consent.default": consents_map("y")}
    bus.publish(_ev("configuration.response_content", ev_payload, source=SourceSubsystem.configuration))
    bus.publish(_ev("configuration.response_content", ev_payload, source=SourceSubsystem.configuration))
    assert bus.flush()
    assert len(seen) == 1


def test_boot_and_request_publish_current(bus, fake_store, provider):
    fake_store.data[PREFERENCES_KEY] = consents_json("y")
    _, _, seen = _wire(bus, provider)
    bus.publish(_ev("hub.booted", source=SourceSubsystem.hub))
    bus.publish(_ev("consent.request_content"))
    assert bus.flush()
    assert seen == [consents_map("y"), consents_map("y")]


def test_boot_with_nothing_stored_publishes_empty(bus, provider):
    _, _, seen = _wire(bus, provider)
    bus.publish(_ev("hub.booted", source=SourceSubsystem.hub))
    assert bus.flush()
    assert seen == [{}]


def test_dispatch_ignores_none_and_unknown_events(provider):
    m = ConsentStateManager(store_provider=provider, cfg=ConsentManagerConfig())
    published = []
    ext = ConsentExtension(manager=m, event_bus=type("B", (), {"publish": lambda _s, ev: published.append(ev)})())
    ext.dispatch(None)
    ext.dispatch(_ev("telemetry.tick"))
    assert published == []


def test_unregister_stops_handling(bus, provider):
    m, ext, _ = _wire(bus, provider)
    ext.unregister()
    assert bus.get_stats()["subscribers"] == 1
    bus.publish(_ev("consent.update_consent", consents_map("y")))
    assert bus.flush()
    assert m.get_current_consents() is None


def test_identity_specific_consents_are_stored_verbatim(bus, fake_store, provider):
    m, _, seen = _wire(bus, provider)
    doc = {
        "consents": {
            "collect": {"val": "y"},
            "idSpecific": {"ECID": {"123": {"marketing": {"val": "n"}}}},
            "metadata": {"time": SAMPLE_METADATA_TIMESTAMP},
        }
    }
    bus.publish(_ev("consent.update_consent", doc))
    assert bus.flush()
    assert m.get_current_consents().as_dict() == doc
    assert json.loads(fake_store.data[PREFERENCES_KEY]) == doc
    assert seen[-1] == doc


def test_update_with_top_level_metadata_is_not_restamped(bus, fake_store, provider):
    m, _, _ = _wire(bus, provider)
    doc = {"consents": {"collect": {"val": "n"}}, "metadata": {"time": SAMPLE_METADATA_TIMESTAMP}}
    bus.publish(_ev("consent.update_consent", doc))
    assert bus.flush()
    assert json.loads(fake_store.data[PREFERENCES_KEY]) == doc
    assert m.get_current_consents().timestamp == SAMPLE_METADATA_TIMESTAMP
