"""
Tests for configuration system.
"""

import warnings
from pathlib import Path

import pytest
import yaml

from amp_ml.config.defaults import DEFAULT_SELECTION_CONFIG, DEFAULT_SPLIT_CONFIG
from amp_ml.config.loader import apply_overrides, load_pipeline_config, load_yaml, save_config
from amp_ml.config.schema import PipelineConfig, SelectionConfig, SparseLinearConfig, SplitConfig
from amp_ml.config.validation import (
    ConfigValidationError,
    ConfigValidationWarning,
    validate_config_against_data,
    validate_pipeline_config,
)


def test_split_config_defaults():
    """Test that SplitConfig uses correct defaults."""
    config = SplitConfig(**DEFAULT_SPLIT_CONFIG)

    assert config.train_frac == pytest.approx(2 / 3)
    assert config.seed == 0
    assert config.stratify is True


def test_selection_config_defaults():
    config = SelectionConfig(**DEFAULT_SELECTION_CONFIG)

    assert config.enabled_selectors() == ["sparse_linear", "ensemble_tree", "margin_classifier"]
    assert config.sparse_linear.cv_folds == 10
    assert config.ensemble_tree.n_estimators == 1000
    assert config.ensemble_tree.top_k == 100
    assert config.margin_classifier.top_k == 100


def test_pipeline_config_defaults():
    config = PipelineConfig()

    assert config.consensus.min_votes == 2
    assert config.evaluation.threshold == 0.5
    assert config.weights.on_separation == "warn"
    assert config.output.outdir == Path("results")


def test_train_frac_bounds():
    with pytest.raises(ValueError):
        SplitConfig(train_frac=1.0)
    with pytest.raises(ValueError):
        SplitConfig(train_frac=0.0)


def test_seed_bounds():
    with pytest.raises(ValueError):
        SelectionConfig(random_state=2**32)
    with pytest.raises(ValueError):
        SelectionConfig(random_state=-1)
    with pytest.raises(ValueError):
        SplitConfig(seed=2**32)
    assert SelectionConfig(random_state=2**32 - 1).random_state == 2**32 - 1


def test_c_range_validated():
    with pytest.raises(ValueError, match="C_min"):
        SparseLinearConfig(C_min=10.0, C_max=1.0)


def test_at_least_one_selector_enabled():
    with pytest.raises(ValueError, match="At least one feature selector"):
        PipelineConfig(
            selection={
                "sparse_linear": {"enabled": False},
                "ensemble_tree": {"enabled": False},
                "margin_classifier": {"enabled": False},
            }
        )


def test_apply_overrides_simple():
    """Test applying simple CLI overrides."""
    config_dict = {"min_votes": 2, "threshold": 0.5}
    result = apply_overrides(config_dict, ["min_votes=3", "threshold=0.4"])

    assert result["min_votes"] == 3
    assert result["threshold"] == 0.4


def test_apply_overrides_nested():
    """Test applying nested CLI overrides."""
    config_dict = {"selection": {"ensemble_tree": {"top_k": 100, "n_estimators": 1000}}}
    result = apply_overrides(config_dict, ["selection.ensemble_tree.top_k=50"])

    assert result["selection"]["ensemble_tree"]["top_k"] == 50
    assert result["selection"]["ensemble_tree"]["n_estimators"] == 1000  # Unchanged


def test_apply_overrides_creates_missing_sections():
    result = apply_overrides({}, ["consensus.allow_reduced=false"])
    assert result == {"consensus": {"allow_reduced": False}}


def test_apply_overrides_boolean_and_none():
    for val in ["true", "True", "yes"]:
        assert apply_overrides({}, [f"flag={val}"])["flag"] is True
    for val in ["false", "False", "no"]:
        assert apply_overrides({}, [f"flag={val}"])["flag"] is False
    assert apply_overrides({}, ["value=none"])["value"] is None


def test_apply_overrides_string_keys_not_parsed():
    result = apply_overrides({}, ["output.run_id=20260101", "data.infile=data/1,2.csv"])

    assert result["output"]["run_id"] == "20260101"
    assert result["data"]["infile"] == "data/1,2.csv"


def test_apply_overrides_list_parsing():
    assert apply_overrides({}, ["values=1,2,3"])["values"] == [1, 2, 3]


def test_apply_overrides_invalid_format():
    with pytest.raises(ValueError, match="Invalid override format"):
        apply_overrides({}, ["no_equals_sign"])


class TestLoadPipelineConfig:
    def test_no_file_gives_defaults(self):
        config = load_pipeline_config()
        assert config == PipelineConfig()

    def test_yaml_values_and_overrides(self, tmp_path):
        path = tmp_path / "amp.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "split": {"seed": 7},
                    "selection": {"ensemble_tree": {"top_k": 25}},
                }
            )
        )

        config = load_pipeline_config(path, overrides=["split.seed=9"])

        assert config.split.seed == 9
        assert config.selection.ensemble_tree.top_k == 25
        # untouched nested defaults survive the merge
        assert config.selection.ensemble_tree.n_estimators == 1000

    def test_base_inheritance(self, tmp_path):
        (tmp_path / "base.yaml").write_text(
            yaml.safe_dump({"consensus": {"min_votes": 3}, "split": {"seed": 4}})
        )
        child = tmp_path / "child.yaml"
        child.write_text(yaml.safe_dump({"_base": "base.yaml", "split": {"seed": 5}}))

        raw = load_yaml(child)
        assert "_base" not in raw

        config = load_pipeline_config(child)
        assert config.consensus.min_votes == 3
        assert config.split.seed == 5

    def test_relative_paths_resolved_against_config_dir(self, tmp_path):
        config_dir = tmp_path / "configs"
        config_dir.mkdir()
        path = config_dir / "amp.yaml"
        path.write_text(yaml.safe_dump({"data": {"infile": "obs.csv"}, "output": {"outdir": "out"}}))

        config = load_pipeline_config(path)

        assert config.data.infile == config_dir.resolve() / "obs.csv"
        assert config.output.outdir == config_dir.resolve() / "out"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_pipeline_config(tmp_path / "missing.yaml")

    def test_invalid_value_raises_value_error(self):
        with pytest.raises(ValueError, match="Invalid pipeline configuration"):
            load_pipeline_config(overrides=["weights.on_separation=ignore"])

    def test_save_config_round_trip(self, tmp_path):
        config = load_pipeline_config(
            overrides=["split.seed=11", "consensus.min_votes=1", f"output.outdir={tmp_path / 'out'}"]
        )
        path = tmp_path / "core" / "config.yaml"

        save_config(config, path)

        assert load_pipeline_config(path) == config


class TestValidation:
    def _config(self, level, **sections):
        return PipelineConfig(strictness={"level": level}, **sections)

    def test_clean_config_has_no_issues(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert validate_pipeline_config(self._config("warn")) == []

    def test_min_votes_above_selector_count_warns(self):
        config = self._config("warn", consensus={"min_votes": 4})
        with pytest.warns(ConfigValidationWarning, match="min_votes=4"):
            issues = validate_pipeline_config(config)
        assert len(issues) == 1

    def test_disabled_selector_reported(self):
        config = self._config("off", selection={"margin_classifier": {"enabled": False}})
        issues = validate_pipeline_config(config)
        assert any("Only 2 of 3" in issue for issue in issues)

    def test_error_level_raises(self):
        config = self._config("error", evaluation={"threshold": 0.3})
        with pytest.raises(ConfigValidationError, match="threshold"):
            validate_pipeline_config(config)

    def test_off_level_is_silent(self):
        config = self._config("off", consensus={"min_votes": 4})
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert validate_pipeline_config(config)

    def test_data_checks(self):
        config = self._config("off")
        issues = validate_config_against_data(config, n_features=50, n_samples=1, min_class_count=4)

        assert any("sample(s)" in issue for issue in issues)
        assert any("ensemble_tree.top_k=100" in issue for issue in issues)
        assert any("margin_classifier.top_k=100" in issue for issue in issues)
        assert any("sparse_linear.cv_folds=10" in issue for issue in issues)

    def test_data_checks_pass_for_large_data(self):
        config = self._config("error")
        assert validate_config_against_data(
            config, n_features=500, n_samples=20, min_class_count=400
        ) == []
