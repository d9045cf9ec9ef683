"""Tests for living_world.settings — load/backfill, coercion, debounced persistence."""

import logging

import pytest

from living_world.settings import DEFAULT_SETTINGS, MODULE_NAME, SettingsStore, parse_int


# ── get(): lazy init and additive backfill ───────────────────


def test_get_defaults_when_nothing_stored(settings):
    config = settings.get()
    assert config.to_record() == DEFAULT_SETTINGS


def test_get_does_not_write(settings, storage, scheduler):
    settings.get()
    assert storage.writes == []
    assert scheduler.pending() == []


@pytest.mark.parametrize("missing", [
    ["enabled"],
    ["characterQuantity", "injectionStrategy"],
    ["selectedLorebook", "preset", "autoTrigger", "debugMode"],
    list(DEFAULT_SETTINGS),
])
def test_get_backfills_missing_keys_and_keeps_present(storage, scheduler, missing):
    stored = {
        "enabled": True,
        "selectedLorebook": "Eldoria",
        "selectedCharacterListEntry": "3",
        "connectionProfile": "local-kobold",
        "preset": "Creative",
        "characterQuantity": 7,
        "injectionStrategy": {"type": "top", "depth": 4, "role": "user"},
        "autoTrigger": False,
        "debugMode": False,
    }
    for key in missing:
        del stored[key]
    storage.records[MODULE_NAME] = dict(stored)

    record = SettingsStore(storage, scheduler).get().to_record()

    assert set(DEFAULT_SETTINGS) <= set(record)
    for key, value in stored.items():
        assert record[key] == value
    for key in missing:
        assert record[key] == DEFAULT_SETTINGS[key]


def test_get_backfills_injection_strategy_members(storage, scheduler):
    storage.records[MODULE_NAME] = {"injectionStrategy": {"depth": 3}}
    config = SettingsStore(storage, scheduler).get()
    assert config.injection_strategy.depth == 3
    assert config.injection_strategy.type == "depth"
    assert config.injection_strategy.role == "system"


def test_get_keeps_unknown_keys(storage, scheduler):
    storage.records[MODULE_NAME] = {"enabled": True, "legacyOption": "keep-me"}
    record = SettingsStore(storage, scheduler).get().to_record()
    assert record["legacyOption"] == "keep-me"


def test_get_coerces_malformed_stored_values(storage, scheduler):
    storage.records[MODULE_NAME] = {
        "characterQuantity": "lots",
        "injectionStrategy": {"depth": -2, "role": "narrator"},
        "enabled": "yes",
    }
    config = SettingsStore(storage, scheduler).get()
    assert config.character_quantity == 20
    assert config.injection_strategy.depth == 1
    assert config.injection_strategy.role == "system"
    assert config.enabled is True


def test_get_survives_storage_read_failure(scheduler):
    class BrokenStorage:
        def read(self, key):
            raise OSError("disk gone")

        def write(self, key, record):
            pass

    config = SettingsStore(BrokenStorage(), scheduler).get()
    assert config.to_record() == DEFAULT_SETTINGS


@pytest.mark.parametrize("stored", [[1, 2], "enabled", 7])
def test_get_ignores_non_object_record(storage, scheduler, stored, caplog):
    storage.records[MODULE_NAME] = stored
    config = SettingsStore(storage, scheduler).get()
    assert config.to_record() == DEFAULT_SETTINGS
    assert "not an object" in caplog.text


def test_get_returns_copy(settings):
    config = settings.get()
    config.enabled = True
    config.injection_strategy.depth = 9
    assert settings.get().enabled is False
    assert settings.get().injection_strategy.depth == 1


# ── validate_and_coerce ──────────────────────────────────────


@pytest.mark.parametrize("raw", ["abc", "", None, -1, "-5", 0, "0", True, [], {}, float("nan")])
def test_character_quantity_invalid_falls_back_to_default(settings, raw):
    assert settings.validate_and_coerce("characterQuantity", raw) == 20


@pytest.mark.parametrize("raw,expected", [(5, 5), ("15", 15), (" 30 ", 30), ("12abc", 12), (3.9, 3)])
def test_character_quantity_parses_numbers(settings, raw, expected):
    assert settings.validate_and_coerce("characterQuantity", raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", None, -1, "-3", False, [], float("inf")])
def test_depth_invalid_falls_back_to_default(settings, raw):
    assert settings.validate_and_coerce("injectionStrategy.depth", raw) == 1


@pytest.mark.parametrize("raw,expected", [(0, 0), ("0", 0), ("4", 4), (10, 10)])
def test_depth_accepts_non_negative(settings, raw, expected):
    assert settings.validate_and_coerce("injectionStrategy.depth", raw) == expected


def test_enum_fields_fall_back(settings):
    assert settings.validate_and_coerce("injectionStrategy.type", "sideways") == "depth"
    assert settings.validate_and_coerce("injectionStrategy.type", "top") == "top"
    assert settings.validate_and_coerce("injectionStrategy.role", "assistant") == "assistant"
    assert settings.validate_and_coerce("injectionStrategy.role", 3) == "system"


def test_bool_and_string_fields(settings):
    assert settings.validate_and_coerce("enabled", "on") is True
    assert settings.validate_and_coerce("enabled", "false") is False
    assert settings.validate_and_coerce("autoTrigger", "maybe") is True
    assert settings.validate_and_coerce("selectedLorebook", None) == ""
    assert settings.validate_and_coerce("selectedCharacterListEntry", 12) == "12"


def test_unknown_field_raises(settings):
    with pytest.raises(KeyError):
        settings.validate_and_coerce("volume", 3)


def test_parse_int_rejects_bool():
    assert parse_int(True) is None
    assert parse_int("  -8 apples") == -8


# ── set(): shallow patch + coercion ──────────────────────────


def test_set_updates_fields(settings):
    config = settings.set({"enabled": True, "selectedLorebook": "Eldoria"})
    assert config.enabled is True
    assert config.selected_lorebook == "Eldoria"
    assert settings.get().selected_lorebook == "Eldoria"


def test_set_accepts_attribute_names(settings):
    settings.set({"character_quantity": "8", "auto_trigger": False})
    config = settings.get()
    assert config.character_quantity == 8
    assert config.auto_trigger is False


def test_set_coerces_numeric_input(settings):
    settings.set({"characterQuantity": "-4"})
    assert settings.get().character_quantity == 20


def test_set_merges_injection_strategy(settings):
    settings.set({"injectionStrategy": {"depth": "3"}})
    settings.set({"injectionStrategy": {"role": "user"}})
    strategy = settings.get().injection_strategy
    assert strategy.depth == 3
    assert strategy.role == "user"
    assert strategy.type == "depth"


def test_set_ignores_unknown_keys(settings, caplog):
    with caplog.at_level(logging.WARNING):
        settings.set({"volume": 11, "enabled": True})
    record = settings.get().to_record()
    assert "volume" not in record
    assert record["enabled"] is True
    assert "volume" in caplog.text


def test_set_ignores_non_object_strategy(settings):
    settings.set({"injectionStrategy": "depth"})
    assert settings.get().injection_strategy.depth == 1


def test_debug_mode_toggles_package_logger(settings):
    logger = logging.getLogger("living_world")
    settings.set({"debugMode": True})
    assert logger.level == logging.DEBUG
    settings.set({"debugMode": False})
    assert logger.level == logging.NOTSET


# ── Debounced persistence ────────────────────────────────────


def test_set_does_not_write_before_window(settings, storage, scheduler):
    settings.set({"characterQuantity": 5})
    scheduler.advance(0.5)
    assert storage.writes == []


def test_rapid_sets_coalesce_into_one_write(settings, storage, scheduler):
    settings.set({"characterQuantity": 1})
    scheduler.advance(0.3)
    settings.set({"characterQuantity": 2})
    scheduler.advance(1.0)

    assert len(storage.writes) == 1
    key, record = storage.writes[0]
    assert key == MODULE_NAME
    assert record["characterQuantity"] == 2


def test_coalesced_write_keeps_every_field(settings, storage, scheduler):
    settings.set({"enabled": True})
    settings.set({"preset": "Creative"})
    scheduler.advance(1.0)
    _, record = storage.writes[0]
    assert record["enabled"] is True
    assert record["preset"] == "Creative"


def test_separate_windows_write_separately(settings, storage, scheduler):
    settings.set({"characterQuantity": 3})
    scheduler.advance(1.0)
    settings.set({"characterQuantity": 4})
    scheduler.advance(1.0)
    assert [r["characterQuantity"] for _, r in storage.writes] == [3, 4]


def test_persisted_record_reloads(storage, scheduler):
    first = SettingsStore(storage, scheduler)
    first.set({"enabled": True, "injectionStrategy": {"depth": 0}})
    scheduler.advance(1.0)

    second = SettingsStore(storage, scheduler)
    config = second.get()
    assert config.enabled is True
    assert config.injection_strategy.depth == 0


def test_close_flushes_pending(settings, storage, scheduler):
    settings.set({"enabled": True})
    settings.close()
    assert len(storage.writes) == 1
    assert scheduler.pending() == []


def test_flush_without_changes(settings, storage):
    assert settings.flush() is False
    assert storage.writes == []


def test_write_failure_not_raised_to_caller(scheduler):
    class FlakyStorage:
        def __init__(self):
            self.calls = 0
            self.saved = None

        def read(self, key):
            return None

        def write(self, key, record):
            self.calls += 1
            if self.calls == 1:
                raise OSError("disk full")
            self.saved = record

    flaky = FlakyStorage()
    store = SettingsStore(flaky, scheduler)
    store.set({"enabled": True})
    scheduler.advance(1.0)
    assert flaky.saved is None
    assert store.get().enabled is True

    store.set({"preset": "Creative"})
    scheduler.advance(1.0)
    assert flaky.saved["preset"] == "Creative"
    assert flaky.saved["enabled"] is True


def test_json_storage_backing(json_storage, scheduler):
    store = SettingsStore(json_storage, scheduler)
    store.set({"selectedLorebook": "Eldoria"})
    store.close()
    assert json_storage.read(MODULE_NAME)["selectedLorebook"] == "Eldoria"
