"""
End-to-end integration tests for the AMP pipeline.

Tests the full workflow: observation table -> sample split -> selector ensemble
-> consensus -> weights -> calibration -> normalization -> evaluation, and the
artifacts written for a run.
"""

import numpy as np
import pandas as pd
import pytest
from conftest import make_cohort, make_fast_config

from amp_ml.data.schema import KEY_COLS, NORMALIZED_SCORE_COL, PREDICTED_COL, RAW_SCORE_COL
from amp_ml.evaluation.reports import load_selector_results, save_pipeline_outputs
from amp_ml.exceptions import InsufficientSamplesError, NoConsensusFeaturesError, SeparationError
from amp_ml.models.bundle import load_amp_model
from amp_ml.pipeline import run_amp_pipeline


@pytest.fixture
def fast_result(small_cohort, fast_config):
    return run_amp_pipeline(small_cohort, fast_config)


class TestEndToEndPipeline:
    """Integration tests on a small separable cohort."""

    def test_split_is_disjoint_and_covers_samples(self, small_cohort, fast_result):
        split = fast_result.split
        assert not set(split.train_samples) & set(split.test_samples)
        assert set(split.train_samples) | set(split.test_samples) == set(small_cohort["sample_id"])

        assert set(fast_result.scored_train["sample_id"]) == set(split.train_samples)
        assert set(fast_result.scored_test["sample_id"]) == set(split.test_samples)

    def test_all_selectors_succeed(self, fast_result):
        assert list(fast_result.selector_results) == [
            "sparse_linear",
            "ensemble_tree",
            "margin_classifier",
        ]
        assert all(r.succeeded for r in fast_result.selector_results.values())
        assert not fast_result.reduced_confidence

    def test_consensus_meets_vote_threshold(self, fast_result):
        consensus = fast_result.consensus
        assert len(consensus) > 0
        assert all(v >= 2 for v in consensus.votes)
        for feature in consensus.features:
            n_sets = sum(
                feature in r.selection for r in fast_result.selector_results.values()
            )
            assert n_sets >= 2

    def test_weights_cover_consensus(self, fast_result):
        assert fast_result.weights.features == fast_result.consensus.features
        assert fast_result.model.consensus_features == fast_result.consensus.features
        assert isinstance(fast_result.model.consensus_features, tuple)

    def test_calibration_anchors(self, fast_result):
        info = fast_result.calibration
        raw_train = fast_result.scored_train[RAW_SCORE_COL]
        norm_train = fast_result.scored_train[NORMALIZED_SCORE_COL]

        assert info.min_raw == raw_train.min()
        assert info.max_raw == raw_train.max()
        assert info.min_raw <= info.cutpoint <= info.max_raw
        if not info.degenerate:
            assert norm_train.min() == 0.0
            assert norm_train.max() == 1.0

    def test_normalization_is_monotone_on_test(self, fast_result):
        scored = fast_result.scored_test.sort_values(RAW_SCORE_COL)
        assert scored[NORMALIZED_SCORE_COL].is_monotonic_increasing

    def test_scored_tables(self, fast_result):
        expected = KEY_COLS + [RAW_SCORE_COL, NORMALIZED_SCORE_COL, PREDICTED_COL]
        for table in (fast_result.scored_train, fast_result.scored_test):
            assert list(table.columns) == expected
            assert set(table[PREDICTED_COL]) <= {0, 1}
            np.testing.assert_array_equal(
                table[PREDICTED_COL], (table[NORMALIZED_SCORE_COL] >= 0.5).astype(int)
            )

    def test_separable_cohort_scores_well(self, fast_result):
        assert fast_result.evaluation.accuracy > 0.8
        assert fast_result.evaluation.n == len(fast_result.scored_test)

    def test_metadata(self, fast_result):
        metadata = fast_result.metadata
        assert metadata["n_features"] == 30
        assert metadata["split"]["train_samples"] == list(fast_result.split.train_samples)
        assert metadata["consensus"]["features"] == list(fast_result.consensus.features)
        assert set(metadata["selectors"]) == set(fast_result.selector_results)

        metrics = fast_result.metrics_dict()
        assert metrics["n_consensus_features"] == len(fast_result.consensus)
        assert metrics["calibration"]["cutpoint"] == fast_result.calibration.cutpoint

    def test_model_reproduces_scores(self, small_cohort, fast_result):
        test_rows = small_cohort[small_cohort["sample_id"].isin(fast_result.split.test_samples)]
        raw, normalized = fast_result.model.score(test_rows)

        np.testing.assert_allclose(raw, fast_result.scored_test[RAW_SCORE_COL])
        np.testing.assert_allclose(normalized, fast_result.scored_test[NORMALIZED_SCORE_COL])

    def test_deterministic(self, small_cohort, fast_config, fast_result):
        again = run_amp_pipeline(small_cohort, fast_config)

        assert again.split == fast_result.split
        assert again.consensus.features == fast_result.consensus.features
        assert again.weights.coefficients == pytest.approx(fast_result.weights.coefficients)
        pd.testing.assert_frame_equal(again.scored_test, fast_result.scored_test)

    def test_concurrent_selectors_match_sequential(self, small_cohort, fast_result):
        concurrent = run_amp_pipeline(small_cohort, make_fast_config(selection={"n_jobs": 3}))

        for name, result in fast_result.selector_results.items():
            assert concurrent.selector_results[name].selection == result.selection
        assert concurrent.consensus.features == fast_result.consensus.features

    def test_different_split_seed_changes_split(self, small_cohort, fast_result):
        other = run_amp_pipeline(small_cohort, make_fast_config(split={"seed": 5}))
        assert other.split.seed == 5
        assert set(other.split.train_samples).isdisjoint(other.split.test_samples)

    def test_input_table_not_modified(self, small_cohort, fast_config):
        before = small_cohort.copy()
        run_amp_pipeline(small_cohort, fast_config)
        pd.testing.assert_frame_equal(small_cohort, before)


class TestReducedConsensus:
    def test_single_selector_is_reduced_confidence(self, small_cohort):
        config = make_fast_config(
            selection={
                "sparse_linear": {"enabled": False},
                "margin_classifier": {"enabled": False},
            }
        )
        result = run_amp_pipeline(small_cohort, config)

        assert result.reduced_confidence
        assert result.consensus.effective_min_votes == 1
        assert result.metrics_dict()["reduced_confidence"] is True
        assert result.model.metadata["reduced_confidence"] is True


class TestPipelineErrors:
    def test_single_sample_raises_insufficient_samples(self, small_cohort, fast_config):
        one_sample = small_cohort[small_cohort["sample_id"] == "C01"]

        with pytest.raises(InsufficientSamplesError) as exc_info:
            run_amp_pipeline(one_sample, fast_config)
        assert exc_info.value.stage == "split"

    def test_no_consensus_without_reduced_rule(self, small_cohort):
        config = make_fast_config(
            selection={
                "sparse_linear": {"enabled": False},
                "margin_classifier": {"enabled": False},
            },
            consensus={"min_votes": 2, "allow_reduced": False},
        )

        with pytest.raises(NoConsensusFeaturesError) as exc_info:
            run_amp_pipeline(small_cohort, config)

        err = exc_info.value
        assert err.stage == "consensus"
        assert err.diagnostics["n_usable"] == 1
        assert "ensemble_tree" in err.diagnostics["selectors"]
        assert 0 < err.diagnostics["union_size"] <= 10

    def test_separation_error_policy(self):
        df = make_cohort(
            n_per_class=3,
            n_obs=25,
            n_features=20,
            n_informative=4,
            control_mean=0.0,
            case_mean=20.0,
            seed=3,
        )
        config = make_fast_config(weights={"on_separation": "error"})

        with pytest.raises(SeparationError) as exc_info:
            run_amp_pipeline(df, config)
        assert exc_info.value.stage == "weights"
        assert exc_info.value.diagnostics["separating_features"]

    def test_invalid_table_raises_value_error(self, small_cohort, fast_config):
        with pytest.raises(ValueError, match="Missing required columns"):
            run_amp_pipeline(small_cohort.drop(columns=["label"]), fast_config)


class TestPipelineOutputs:
    def test_all_artifacts_written(self, tmp_path, fast_config, fast_result):
        run_dir = tmp_path / "run_test"
        paths = save_pipeline_outputs(fast_result, run_dir, config=fast_config)

        expected = [
            "core/metrics.json",
            "core/run_metadata.json",
            "core/config.yaml",
            "preds/scored_test.csv",
            "preds/scored_train.csv",
            "preds/sample_summary.csv",
            "reports/consensus_features.txt",
            "reports/consensus_membership.csv",
            "reports/weights.csv",
            "diagnostics/selector_diagnostics.csv",
            "diagnostics/youden_curve.csv",
            "diagnostics/selector_results.joblib",
            "model/amp_model.json",
        ]
        for rel in expected:
            assert (run_dir / rel).is_file(), rel
        assert all(p.startswith(str(run_dir)) for p in paths.values())

    def test_artifact_contents(self, tmp_path, fast_result):
        run_dir = tmp_path / "run_contents"
        save_pipeline_outputs(fast_result, run_dir, save_train_scores=False)

        assert not (run_dir / "preds" / "scored_train.csv").exists()
        assert not (run_dir / "core" / "config.yaml").exists()

        features = (run_dir / "reports" / "consensus_features.txt").read_text().split()
        assert features == list(fast_result.consensus.features)

        scored = pd.read_csv(run_dir / "preds" / "scored_test.csv")
        assert len(scored) == len(fast_result.scored_test)

        summary = pd.read_csv(run_dir / "preds" / "sample_summary.csv")
        assert sorted(summary["sample_id"]) == sorted(fast_result.split.test_samples)

        weights = pd.read_csv(run_dir / "reports" / "weights.csv")
        assert list(weights["feature"]) == list(fast_result.weights.features)

        selector_results = load_selector_results(run_dir / "diagnostics" / "selector_results.joblib")
        assert set(selector_results) == set(fast_result.selector_results)

    def test_saved_model_loads(self, tmp_path, fast_result):
        paths = save_pipeline_outputs(fast_result, tmp_path / "run_model")
        model = load_amp_model(paths["amp_model"])

        assert model.calibration == fast_result.calibration
        assert model.weights.features == fast_result.weights.features


def _full_scale_config(**overrides):
    return make_fast_config(
        selection={
            "n_jobs": 3,
            "sparse_linear": {"cv_folds": 5, "C_points": 10},
            "ensemble_tree": {"n_estimators": 200, "top_k": 100},
            "margin_classifier": {"cv_folds": 5, "top_k": 100},
        },
        **overrides,
    )


@pytest.mark.slow
class TestSlowEndToEndPipeline:
    """
    Full-size cohorts: 10 samples per class, 100 pixels each, 500 features.
    """

    def test_separated_cohort(self):
        df = make_cohort(n_per_class=10, n_obs=100, n_features=500, n_informative=20, seed=0)
        result = run_amp_pipeline(df, _full_scale_config())

        assert result.evaluation.accuracy > 0.9
        assert result.evaluation.sensitivity > 0.85
        assert result.evaluation.specificity > 0.85
        informative = {f"feature_{i + 1}" for i in range(20)}
        assert len(informative & set(result.consensus.features)) >= 10

    def test_null_cohort(self):
        separated = run_amp_pipeline(
            make_cohort(n_per_class=10, n_obs=100, n_features=500, seed=0), _full_scale_config()
        )
        df = make_cohort(
            n_per_class=10,
            n_obs=100,
            n_features=500,
            control_mean=3.0,
            case_mean=3.0,
            seed=0,
        )
        try:
            result = run_amp_pipeline(df, _full_scale_config())
        except NoConsensusFeaturesError:
            return

        assert 0.3 <= result.evaluation.accuracy <= 0.7
        assert len(result.consensus) <= len(separated.consensus)
