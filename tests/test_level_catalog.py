"""Tests for earth_defense.services.level_catalog – YAML campaign loading."""

from __future__ import annotations

import pytest

from earth_defense.models.entities import PlayerProgression
from earth_defense.models.errors import LevelNotFoundError
from earth_defense.services.level_catalog import LevelRepository


# ---------------------------------------------------------------------------
# Bundled campaign
# ---------------------------------------------------------------------------

class TestBundledCampaign:
    def test_ten_levels_numbered_from_one(self, repository):
        assert repository.count == 10
        assert [level.id for level in repository.all()] == list(range(1, 11))

    def test_first_contact_loadout(self, repository):
        level = repository.get(1)
        assert level.name == "First Contact"
        resources = level.startingResources
        assert resources.funds == 1_000_000
        assert resources.power == 100
        assert len(resources.satellites) == 2
        assert len(resources.probes) == 1
        assert resources.availableProbes == 3

    def test_first_contact_first_wave(self, repository):
        wave = repository.get(1).waves[0]
        assert wave.delay == 10
        assert len(wave.asteroids) == 1
        assert wave.asteroids[0].diameter == 50

    def test_star_threshold_keys_are_ints(self, repository):
        thresholds = repository.get(1).rewards.starsThreshold
        assert sorted(thresholds) == [1, 2, 3]
        assert thresholds[3].timeUnder == 120

    def test_restrictions_default_to_none(self, repository):
        assert repository.get(1).restrictions.maxFundsSpent is None

    def test_objective_templates_start_clean(self, repository):
        for level in repository.all():
            for objective in level.objectives:
                assert objective.completed is False
                assert objective.failed is False


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

class TestLookup:
    def test_get_accepts_numeric_string(self, repository):
        assert repository.get("3").id == 3

    def test_unknown_level(self, repository):
        with pytest.raises(LevelNotFoundError) as excinfo:
            repository.get(99)
        assert excinfo.value.message == "Level 99 not found"
        assert excinfo.value.status_code == 404

    def test_non_numeric_level(self, repository):
        with pytest.raises(LevelNotFoundError):
            repository.get("abc")

    def test_summaries_hide_objectives_and_waves(self, repository):
        summaries = repository.summaries()
        assert len(summaries) == 10
        assert set(summaries[0]) == {"id", "name", "description", "type", "difficulty"}


# ---------------------------------------------------------------------------
# Unlocks
# ---------------------------------------------------------------------------

class TestIsUnlocked:
    def test_first_level_always_open(self, repository):
        assert repository.is_unlocked(1, None)

    def test_second_level_locked_without_progression(self, repository):
        assert not repository.is_unlocked(2, None)

    def test_second_level_open_once_unlocked(self, repository):
        progression = PlayerProgression(unlockedLevels=[1, 2])
        assert repository.is_unlocked(2, progression)
        assert not repository.is_unlocked(3, progression)


# ---------------------------------------------------------------------------
# Validation of custom files
# ---------------------------------------------------------------------------

class TestValidation:
    def test_loads_custom_file(self, write_levels, minimal_level):
        repo = LevelRepository(write_levels([minimal_level(1), minimal_level(2)]))
        assert repo.count == 2
        assert repo.get(2).name == "Level 2"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LevelRepository(tmp_path / "nope.yaml")

    def test_missing_levels_key(self, tmp_path):
        path = tmp_path / "levels.yaml"
        path.write_text("title: nothing here\n", encoding="utf-8")
        with pytest.raises(ValueError, match="levels"):
            LevelRepository(path)

    def test_duplicate_ids(self, write_levels, minimal_level):
        with pytest.raises(ValueError, match="duplicate"):
            LevelRepository(write_levels([minimal_level(1), minimal_level(1)]))

    def test_gap_in_ids(self, write_levels, minimal_level):
        with pytest.raises(ValueError, match="1..2"):
            LevelRepository(write_levels([minimal_level(1), minimal_level(3)]))

    def test_missing_required_key(self, write_levels, minimal_level):
        level = minimal_level(1)
        del level["waves"]
        with pytest.raises(ValueError, match="waves"):
            LevelRepository(write_levels([level]))

    def test_default_gems(self, write_levels, minimal_level):
        level = minimal_level(1)
        del level["rewards"]["gems"]
        repo = LevelRepository(write_levels([level]))
        assert repo.get(1).rewards.gems == 50
