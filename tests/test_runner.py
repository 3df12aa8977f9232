"""
Partitioned model runner tests.

Tests per-partition fitting, failure isolation and result flattening.
"""

import pandas as pd
import pytest  # type: ignore

from src.salinity_trends.algorithms import MannKendallTrend, PartitionedModelRunner
from src.salinity_trends.core.constants import MODEL_OUTPUT_COLUMNS
from src.salinity_trends.core.errors import InsufficientDataError
from src.salinity_trends.models import Failed, Fitted


def series(parameter, site, values):
    return [
        {"parameter": parameter, "site_id": site, "year": 2001 + i, "mean": value}
        for i, value in enumerate(values)
    ]


@pytest.fixture
def runner():
    return PartitionedModelRunner()


@pytest.fixture
def annual():
    """Annual summaries: two fittable partitions and one too short for a trend."""
    rows = (
        series("Chloride", "S1", [20.0, 22.0, 21.0, 25.0, 27.0])
        + series("Calcium", "S1", [10.0, 11.0, 12.0, 13.0, 14.0])
        + series("Calcium", "S2", [7.0, 8.0])
    )
    return pd.DataFrame(rows)


@pytest.fixture
def trend():
    return MannKendallTrend(value="mean", order="year", time="order")


class TestPartitionedModelRunner:
    """Test the partitioned model runner."""

    def test_failure_is_isolated(self, runner, annual, trend):
        result = runner.run(annual, ["parameter", "site_id"], trend)

        assert len(result.outcomes) == 3
        assert len(result.fitted) == 2
        assert len(result.failed) == 1
        failure = result.failed[0]
        assert failure.key == ("Calcium", "S2")
        assert failure.reason == "InsufficientData"

    def test_results_are_flattened_with_keys_first(self, runner, annual, trend):
        result = runner.run(annual, ["parameter", "site_id"], trend)

        assert list(result.results.columns) == ["parameter", "site_id"] + MODEL_OUTPUT_COLUMNS
        assert len(result.results) == 4
        slopes = result.results[result.results["term"] == "sen_slope"].set_index(["parameter", "site_id"])
        assert slopes.loc[("Calcium", "S1"), "estimate"] == pytest.approx(1.0)

    def test_partitions_follow_first_appearance(self, runner, annual, trend):
        result = runner.run(annual, ["parameter", "site_id"], trend)

        assert [o.key for o in result.outcomes] == [
            ("Chloride", "S1"), ("Calcium", "S1"), ("Calcium", "S2")
        ]
        keys = result.results[["parameter", "site_id"]].drop_duplicates()
        assert list(keys.itertuples(index=False, name=None)) == [("Chloride", "S1"), ("Calcium", "S1")]

    def test_fitted_and_failed_keys_partition_the_input(self, runner, annual, trend):
        result = runner.run(annual, ["parameter", "site_id"], trend)

        fitted = {o.key for o in result.fitted}
        failed = {o.key for o in result.failed}
        distinct = set(annual[["parameter", "site_id"]].itertuples(index=False, name=None))
        assert fitted | failed == distinct
        assert not fitted & failed

    def test_failures_table(self, runner, annual, trend):
        result = runner.run(annual, ["parameter", "site_id"], trend)

        failures = result.failures
        assert list(failures.columns) == ["parameter", "site_id", "reason", "message"]
        assert failures.iloc[0]["reason"] == "InsufficientData"

    def test_partition_with_one_year_fails(self, runner, trend):
        frame = pd.DataFrame({"parameter": ["Calcium"] * 3, "year": [2020] * 3, "mean": [1.0, 2.0, 3.0]})

        result = runner.run(frame, ["parameter"], trend)

        assert result.results.empty
        assert list(result.failures["reason"]) == ["InsufficientData"]

    def test_grouping_that_mixes_sites_fails(self, runner, annual, trend):
        calcium = annual[annual["parameter"] == "Calcium"]

        result = runner.run(calcium, ["parameter"], trend)

        assert result.fitted == []
        assert result.failed[0].key == ("Calcium",)
        assert result.failed[0].reason == "DuplicateOrder"

    def test_single_grouping_column(self, runner, annual, trend):
        result = runner.run(annual[annual["parameter"] == "Calcium"], "site_id", trend)

        assert [o.key for o in result.outcomes] == [("S1",), ("S2",)]
        assert isinstance(result.outcomes[0], Fitted)
        assert isinstance(result.outcomes[1], Failed)
        assert result.group_by == ["site_id"]

    def test_every_partition_failing(self, runner, annual, trend):
        result = runner.run(annual[annual["site_id"] == "S2"], ["parameter", "site_id"], trend)

        assert result.results.empty
        assert list(result.results.columns) == ["parameter", "site_id"] + MODEL_OUTPUT_COLUMNS

    def test_partition_changes_do_not_leak(self, runner, annual):
        original = annual.copy()

        def overwrite(partition):
            partition["mean"] = 0.0
            return pd.DataFrame([{"term": "n", "estimate": len(partition), "std_error": 0.0,
                                  "statistic": 0.0, "p_value": 1.0}])

        runner.run(annual, ["parameter", "site_id"], overwrite)

        pd.testing.assert_frame_equal(annual, original)

    def test_each_partition_sees_only_its_rows(self, runner, annual):
        seen = []

        def record(partition):
            seen.append(set(zip(partition["parameter"], partition["site_id"])))
            if partition["site_id"].iloc[0] == "S2":
                raise InsufficientDataError("short")
            return pd.DataFrame(columns=MODEL_OUTPUT_COLUMNS)

        runner.run(annual, ["parameter", "site_id"], record)

        assert all(len(keys) == 1 for keys in seen)

    def test_unexpected_errors_propagate(self, runner, annual):
        def broken(partition):
            raise ZeroDivisionError("bug")

        with pytest.raises(ZeroDivisionError):
            runner.run(annual, ["parameter", "site_id"], broken)

    def test_model_must_return_a_table(self, runner, annual):
        with pytest.raises(TypeError):
            runner.run(annual, "site_id", lambda partition: 1.0)

    def test_unknown_grouping_column(self, runner, annual, trend):
        with pytest.raises(KeyError):
            runner.run(annual, ["basin"], trend)

    def test_empty_grouping(self, runner, annual, trend):
        with pytest.raises(ValueError):
            runner.run(annual, [], trend)
