"""Unit tests for the niche preset registry."""

import pytest
from sqlalchemy import func, select, text

from skillcoach.errors import InvalidKey, NotFound, ReservedKey, StoreUnavailable, ValidationFailed
from skillcoach.models import CreatorSettings, NichePreset
from skillcoach import presets


def _count(db, experience_id):
    return db.execute(
        select(func.count()).select_from(NichePreset).where(NichePreset.experience_id == experience_id)
    ).scalar()


class TestListing:
    def test_custom_is_only_entry_for_empty_experience(self, db, experience_id):
        listed = presets.public_presets(db, experience_id)

        assert [p.key for p in listed] == ["custom"]
        assert listed[0].enabled is True

    def test_custom_appears_once_and_last(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="fitness", label="Fitness", sort_order=5)
        presets.upsert_preset(db, experience_id, key="airbnb", label="Airbnb", sort_order=1)

        keys = [p.key for p in presets.public_presets(db, experience_id)]

        assert keys == ["airbnb", "fitness", "custom"]
        assert keys.count("custom") == 1

    def test_ties_keep_insertion_order(self, db, experience_id):
        for key in ("zeta", "alpha", "mid"):
            presets.upsert_preset(db, experience_id, key=key, label=key.title(), sort_order=3)

        keys = [p.key for p in presets.list_presets(db, experience_id)]

        assert keys == ["zeta", "alpha", "mid"]

    def test_disabled_rows_only_in_admin_listing(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="on", label="On")
        presets.upsert_preset(db, experience_id, key="off", label="Off", enabled=False)

        public = [p.key for p in presets.public_presets(db, experience_id)]
        admin = [p.key for p in presets.list_presets(db, experience_id, include_disabled=True)]

        assert public == ["on", "custom"]
        assert admin == ["on", "off"]

    def test_listing_scoped_to_experience(self, db):
        presets.upsert_preset(db, "exp_a", key="trading", label="Trading")

        assert presets.list_presets(db, "exp_b") == []


class TestUpsert:
    def test_key_derived_from_label(self, db, experience_id):
        preset = presets.upsert_preset(db, experience_id, label="Real Estate Exam!")

        assert preset.key == "real_estate_exam"
        assert preset.label == "Real Estate Exam!"

    def test_new_rows_get_next_sort_order(self, db, experience_id):
        first = presets.upsert_preset(db, experience_id, key="a", label="A")
        second = presets.upsert_preset(db, experience_id, key="b", label="B")

        assert first.sort_order == 1
        assert second.sort_order == 2

    def test_update_keeps_sort_order_and_replaces_context(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="a", label="A", ai_context="old")
        updated = presets.upsert_preset(db, experience_id, key="a", label="A2", ai_context="new")

        assert updated.sort_order == 1
        assert updated.label == "A2"
        assert updated.ai_context == "new"
        assert _count(db, experience_id) == 1

    @pytest.mark.parametrize("key", ["custom", "CUSTOM", " Custom "])
    def test_custom_key_rejected_without_writing(self, db, experience_id, key):
        presets.upsert_preset(db, experience_id, key="kept", label="Kept")

        with pytest.raises(ReservedKey):
            presets.upsert_preset(db, experience_id, key=key, label="Mine")

        assert _count(db, experience_id) == 1

    def test_reserved_key_is_an_invalid_key(self):
        assert issubclass(ReservedKey, InvalidKey)

    def test_unusable_key_rejected(self, db, experience_id):
        with pytest.raises(InvalidKey):
            presets.upsert_preset(db, experience_id, key="!!!", label="")

    def test_label_required(self, db, experience_id):
        with pytest.raises(ValidationFailed):
            presets.upsert_preset(db, experience_id, key="ok", label="   ")


class TestDelete:
    def test_delete_custom_rejected(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="kept", label="Kept")

        with pytest.raises(ReservedKey):
            presets.delete_preset(db, experience_id, "custom")

        assert _count(db, experience_id) == 1

    def test_delete_missing_raises_not_found(self, db, experience_id):
        with pytest.raises(NotFound):
            presets.delete_preset(db, experience_id, "nope")

    def test_delete_disables_auto_defaults(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="gone", label="Gone")

        presets.delete_preset(db, experience_id, "gone")

        assert _count(db, experience_id) == 0
        assert db.get(CreatorSettings, experience_id).allow_auto_defaults is False


class TestDefaults:
    def test_seed_inserts_defaults(self, db, experience_id):
        inserted = presets.seed_defaults_if_allowed(db, experience_id)

        assert inserted == len(presets.DEFAULT_PRESETS)
        assert [p.key for p in presets.list_presets(db, experience_id)] == [
            p["key"] for p in presets.DEFAULT_PRESETS
        ]

    def test_seed_skips_existing_keys(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="sports_betting", label="Betting")

        inserted = presets.seed_defaults_if_allowed(db, experience_id)

        assert inserted == len(presets.DEFAULT_PRESETS) - 1
        assert _count(db, experience_id) == len(presets.DEFAULT_PRESETS)

    def test_seed_respects_opt_out(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="mine", label="Mine")
        presets.delete_preset(db, experience_id, "mine")

        assert presets.seed_defaults_if_allowed(db, experience_id) == 0
        assert _count(db, experience_id) == 0

    def test_restore_defaults_reenables_seeding(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="mine", label="Mine")
        presets.delete_preset(db, experience_id, "mine")

        inserted = presets.restore_defaults_enabled(db, experience_id)

        assert inserted == len(presets.DEFAULT_PRESETS)
        assert db.get(CreatorSettings, experience_id).allow_auto_defaults is True

    def test_replace_with_defaults_drops_custom_rows(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="mine", label="Mine")

        rows = presets.replace_with_defaults(db, experience_id)

        assert "mine" not in [r.key for r in rows]
        assert len(rows) == len(presets.DEFAULT_PRESETS)


class TestValidateNicheKey:
    def test_empty_key_becomes_custom(self, db, experience_id):
        check = presets.validate_niche_key(db, experience_id, None)

        assert check.niche_key == "custom"
        assert check.was_changed is True

    def test_legacy_custom_prefix(self, db, experience_id):
        check = presets.validate_niche_key(db, experience_id, "CUSTOM:knitting")

        assert check.niche_key == "custom"
        assert check.was_changed is True

    def test_enabled_key_unchanged(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="fitness", label="Fitness")

        check = presets.validate_niche_key(db, experience_id, "fitness")

        assert check.niche_key == "fitness"
        assert check.was_changed is False

    def test_missing_key_falls_back_to_first_enabled(self, db, experience_id):
        presets.upsert_preset(db, experience_id, key="second", label="Second", sort_order=2)
        presets.upsert_preset(db, experience_id, key="first", label="First", sort_order=1)

        check = presets.validate_niche_key(db, experience_id, "deleted")

        assert check.niche_key == "first"
        assert "First" in check.message

    def test_missing_key_with_no_presets_falls_back_to_custom(self, db, experience_id):
        check = presets.validate_niche_key(db, experience_id, "deleted")

        assert check.niche_key == "custom"
        assert check.was_changed is True


def test_slugify_key():
    assert presets.slugify_key("  Trading & Investing ") == "trading_investing"
    assert presets.slugify_key("Driver's Test") == "drivers_test"
    assert len(presets.slugify_key("x" * 80)) == 40


def test_store_failure_surfaces_as_store_unavailable(db, experience_id):
    db.execute(text("DROP TABLE niche_presets"))
    db.commit()

    with pytest.raises(StoreUnavailable):
        presets.list_presets(db, experience_id)
