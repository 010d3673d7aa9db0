"""Tests for progression rules and YAML configuration loading."""

from pathlib import Path

import pytest

from agency.config import loader as config_loader
from agency.config.loader import (
    ConfigLoader,
    expand_env_vars,
    get_config_dir,
    set_config_dir,
)
from agency.progression.manager import create_progression_manager
from agency.progression.rules import ProgressionRules
from agency.progression.xp import LevelConfig
from agency.quests.types import MissionCategory, QuestDifficulty
from agency.roster.types import STAT_NAMES


REPO_CONFIGS = Path(__file__).parent.parent.parent / "configs"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def config_dir(temp_dir):
    """Config dir with custom leveling and rules files."""
    prog_dir = temp_dir / "progression"
    prog_dir.mkdir(parents=True)

    (prog_dir / "leveling.yaml").write_text("""
base_xp: ${TEST_AGENCY_BASE_XP:-200}
growth_rate: 2.0
cache_capacity: 64
unknown_key: ignored
""")

    (prog_dir / "rules.yaml").write_text("""
milestone_interval: 3
difficulty_multipliers:
  HARD: 2.5
class_bonuses:
  Tinkerer:
    Creation: 1.5
milestone_skills:
  3: Tinkering
stat_overrides:
  Tinkerer:
    3:
      - {stat: creativity, amount: 2, reason: "Workshop"}
""")
    return temp_dir


@pytest.fixture(autouse=True)
def reset_config_dir():
    yield
    set_config_dir(None)


# =============================================================================
# Rules
# =============================================================================

class TestProgressionRules:
    """Tests for built-in rule tables."""

    def test_difficulty_multipliers(self):
        rules = ProgressionRules()
        assert rules.difficulty_multiplier(QuestDifficulty.TUTORIAL) == 0.5
        assert rules.difficulty_multiplier(QuestDifficulty.MEDIUM) == 1.5
        assert rules.difficulty_multiplier(QuestDifficulty.LEGENDARY) == 5.0

    def test_class_bonus_default(self):
        rules = ProgressionRules()
        assert rules.class_bonus("Code Master", MissionCategory.CREATION) == 1.3
        assert rules.class_bonus("Code Master", MissionCategory.COMBAT) == 1.0
        assert rules.class_bonus("Nobody", MissionCategory.COMBAT) == 1.0

    def test_stat_increases_on_milestone(self):
        rules = ProgressionRules()
        increases = rules.stat_increases_at("Code Master", 10)
        assert sorted(i.stat for i in increases) == sorted(STAT_NAMES)
        assert all(i.amount == 1 for i in increases)
        assert increases[0].reason == "Level 10 milestone"

    def test_no_stats_off_milestone(self):
        rules = ProgressionRules()
        assert rules.stat_increases_at("Code Master", 6) == []

    def test_skills_universal_first(self):
        rules = ProgressionRules(class_skills={"Code Master": {5: "Linting"}})
        assert rules.skills_unlocked_at("Code Master", 5) == ["Advanced Analysis", "Linting"]
        assert rules.skills_unlocked_at("Code Master", 3) == []

    def test_class_skill(self):
        rules = ProgressionRules()
        assert rules.skills_unlocked_at("Data Sage", 7) == ["Predictive Analysis"]

    def test_from_dict_unknown_names(self):
        with pytest.raises(ValueError):
            ProgressionRules.from_dict({"difficulty_multipliers": {"Impossible": 9}})
        with pytest.raises(ValueError):
            ProgressionRules.from_dict({"class_bonuses": {"X": {"Cooking": 2}}})
        with pytest.raises(ValueError):
            ProgressionRules.from_dict(
                {"stat_overrides": {"X": {5: [{"stat": "charisma"}]}}}
            )
        with pytest.raises(ValueError):
            ProgressionRules.from_dict({"milestone_interval": 0})


# =============================================================================
# Config loading
# =============================================================================

class TestConfigLoading:
    """Tests for YAML-backed configuration."""

    def test_expand_env_vars(self, monkeypatch):
        monkeypatch.setenv("TEST_AGENCY_VAR", "set")
        assert expand_env_vars("${TEST_AGENCY_VAR}") == "set"
        assert expand_env_vars("${TEST_AGENCY_MISSING:-fallback}") == "fallback"
        assert expand_env_vars("${TEST_AGENCY_MISSING}") == "${TEST_AGENCY_MISSING}"
        assert expand_env_vars({"a": ["${TEST_AGENCY_VAR}"]}) == {"a": ["set"]}

    def test_level_config_load(self, config_dir):
        config = LevelConfig.load(config_dir)
        assert config.base_xp == 200
        assert config.growth_rate == 2.0
        assert config.cache_capacity == 64

    def test_level_config_missing_file(self, temp_dir):
        assert LevelConfig.load(temp_dir) == LevelConfig()

    def test_rules_load(self, config_dir):
        rules = ProgressionRules.load(config_dir)
        assert rules.milestone_interval == 3
        assert rules.difficulty_multiplier(QuestDifficulty.HARD) == 2.5
        # Untouched entries keep defaults
        assert rules.difficulty_multiplier(QuestDifficulty.EASY) == 1.0
        assert rules.class_bonus("Tinkerer", MissionCategory.CREATION) == 1.5
        assert rules.class_bonus("Code Master", MissionCategory.CREATION) == 1.0
        assert rules.skills_unlocked_at("Anyone", 3) == ["Tinkering"]

        increases = rules.stat_increases_at("Tinkerer", 3)
        assert [(i.stat, i.amount, i.reason) for i in increases] == [("creativity", 2, "Workshop")]
        assert len(rules.stat_increases_at("Other", 3)) == len(STAT_NAMES)

    def test_rules_missing_file(self, temp_dir):
        assert ProgressionRules.load(temp_dir) == ProgressionRules()

    def test_shipped_configs_match_defaults(self):
        assert ProgressionRules.load(REPO_CONFIGS) == ProgressionRules()
        assert LevelConfig.load(REPO_CONFIGS) == LevelConfig()

    def test_config_dir_from_env(self, monkeypatch, temp_dir):
        set_config_dir(None)
        monkeypatch.setenv("AGENCY_CONFIG_DIR", str(temp_dir))
        assert get_config_dir() == temp_dir

    def test_config_loader_reads_each_file_once(self, config_dir, monkeypatch):
        calls = []
        real_load_yaml = config_loader.load_yaml

        def counting_load_yaml(path):
            calls.append(Path(path).name)
            return real_load_yaml(path)

        monkeypatch.setattr(config_loader, "load_yaml", counting_load_yaml)
        loader = ConfigLoader(config_dir)
        first = create_progression_manager(loader=loader)
        second = create_progression_manager(loader=loader)

        assert sorted(calls) == ["leveling.yaml", "rules.yaml"]
        assert first.rules == second.rules
        assert first.calculator.level_config == second.calculator.level_config
        assert first.rules.milestone_interval == 3

        loader.clear_cache()
        ProgressionRules.load(loader=loader)
        assert calls.count("rules.yaml") == 2

    def test_config_loader_returns_fresh_documents(self, config_dir):
        loader = ConfigLoader(config_dir)
        first = loader.load("progression", "rules")
        first["milestone_interval"] = 99
        assert loader.load("progression", "rules")["milestone_interval"] == 3
        assert loader.load("progression", "leveling", LevelConfig) is not loader.load(
            "progression", "leveling", LevelConfig
        )

    def test_config_loader_missing_file(self, temp_dir):
        loader = ConfigLoader(temp_dir)
        assert not loader.exists("progression", "rules")
        with pytest.raises(FileNotFoundError):
            loader.load("progression", "rules")

    def test_create_manager_from_config(self, config_dir):
        manager = create_progression_manager(config_dir)
        assert manager.calculator.level_config.growth_rate == 2.0
        assert manager.rules.milestone_interval == 3
        assert manager.calculator.rules is manager.rules
