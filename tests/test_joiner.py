"""
Cohort joining tests.

Tests inner joins of measurement streams on (site_id, date) and attaching
site metadata to summary tables.
"""

import pandas as pd
import pytest  # type: ignore

from src.salinity_trends.processing import CohortJoiner


@pytest.fixture
def joiner():
    return CohortJoiner()


def stream(rows, column="value"):
    return pd.DataFrame(
        [{"site_id": site, "date": pd.Timestamp(day), column: value} for site, day, value in rows]
    )


class TestJoin:
    """Test strict inner joins."""

    def test_only_shared_keys_survive(self, joiner):
        first = stream([("S1", "2020-01-01", 1.0), ("S1", "2020-01-02", 2.0)])
        second = stream([("S1", "2020-01-01", 10.0), ("S2", "2020-01-03", 30.0)])

        joined, report = joiner.join(first, second)

        assert len(joined) == 1
        row = joined.iloc[0]
        assert row["site_id"] == "S1"
        assert row["date"] == pd.Timestamp("2020-01-01")
        assert row["value_1"] == 1.0
        assert row["value_2"] == 10.0
        assert report.details["dropped"] == {"1": 1, "2": 1}
        assert report.issues["Unmatched"] == 2

    def test_distinct_columns_keep_their_names(self, joiner):
        chemistry = stream([("S1", "2020-01-01", 5.0)], column="Calcium")
        flow = stream([("S1", "2020-01-01", 900.0)], column="Discharge")

        joined, _ = joiner.join(chemistry, flow)

        assert list(joined.columns) == ["site_id", "date", "Calcium", "Discharge"]

    def test_custom_suffixes(self, joiner):
        first = stream([("S1", "2020-01-01", 1.0)])
        second = stream([("S1", "2020-01-01", 2.0)])

        joined, report = joiner.join(first, second, suffixes=["sample", "00095"])

        assert "value_sample" in joined.columns
        assert "value_00095" in joined.columns
        assert report.details["dropped"] == {"sample": 0, "00095": 0}

    def test_self_join_keeps_every_row(self, joiner):
        table = stream([
            ("S1", "2020-01-01", 1.0),
            ("S1", "2020-01-02", 2.0),
            ("S2", "2020-01-01", 3.0),
        ])

        joined, report = joiner.join(table, table)

        assert len(joined) == len(table)
        assert report.details["dropped"] == {"1": 0, "2": 0}
        assert (joined["value_1"] == joined["value_2"]).all()

    def test_three_tables(self, joiner):
        chemistry = stream([("S1", "2020-01-01", 5.0), ("S1", "2020-01-02", 6.0)], column="Calcium")
        conductance = stream([("S1", "2020-01-01", 250.0), ("S1", "2020-01-02", 260.0)],
                             column="Specific conductance")
        flow = stream([("S1", "2020-01-02", 900.0)], column="Discharge")

        joined, report = joiner.join(chemistry, conductance, flow)

        assert len(joined) == 1
        assert joined.iloc[0]["date"] == pd.Timestamp("2020-01-02")
        assert report.details["dropped"] == {"1": 1, "2": 1, "3": 0}

    def test_result_is_sorted_by_keys(self, joiner):
        first = stream([("S2", "2020-01-01", 1.0), ("S1", "2020-01-02", 2.0), ("S1", "2020-01-01", 3.0)])

        joined, _ = joiner.join(first, first)

        assert list(zip(joined["site_id"], joined["date"])) == [
            ("S1", pd.Timestamp("2020-01-01")),
            ("S1", pd.Timestamp("2020-01-02")),
            ("S2", pd.Timestamp("2020-01-01")),
        ]

    def test_string_dates_and_numeric_sites_are_aligned(self, joiner):
        first = pd.DataFrame([{"site_id": 1646500, "date": "2020-01-01", "a": 1.0}])
        second = pd.DataFrame([{"site_id": "1646500", "date": pd.Timestamp("2020-01-01"), "b": 2.0}])

        joined, _ = joiner.join(first, second)

        assert len(joined) == 1

    def test_no_overlap(self, joiner):
        first = stream([("S1", "2020-01-01", 1.0)])
        second = stream([("S2", "2020-01-01", 2.0)])

        joined, report = joiner.join(first, second)

        assert joined.empty
        assert report.issues["Unmatched"] == 2

    def test_duplicate_keys_raise(self, joiner):
        first = stream([("S1", "2020-01-01", 1.0), ("S1", "2020-01-01", 2.0)])
        second = stream([("S1", "2020-01-01", 1.0)])

        with pytest.raises(ValueError, match="duplicate keys"):
            joiner.join(first, second)

    def test_missing_key_column_raises(self, joiner):
        first = stream([("S1", "2020-01-01", 1.0)]).drop(columns="date")
        second = stream([("S1", "2020-01-01", 1.0)])

        with pytest.raises(KeyError):
            joiner.join(first, second)

    def test_table_count(self, joiner):
        table = stream([("S1", "2020-01-01", 1.0)])

        with pytest.raises(ValueError):
            joiner.join(table)
        with pytest.raises(ValueError):
            joiner.join(table, table, table, table)


class TestAttachSites:
    """Test attaching site metadata to summaries."""

    @pytest.fixture
    def annual(self):
        return pd.DataFrame([
            {"site_id": "S1", "year": 2019, "parameter": "Ca", "mean": 10.0},
            {"site_id": "S1", "year": 2020, "parameter": "Ca", "mean": 11.0},
            {"site_id": "S3", "year": 2020, "parameter": "Ca", "mean": 12.0},
        ])

    def test_many_rows_per_site(self, joiner, annual):
        sites = pd.DataFrame([{"site_id": "S1", "name": "Upper", "drainage_area": 120.0}])

        joined, report = joiner.attach_sites(annual, sites)

        assert len(joined) == 2
        assert list(joined["name"]) == ["Upper", "Upper"]
        assert report.details["sites_without_metadata"] == ["S3"]
        assert report.issues["Unmatched"] == 1

    def test_duplicate_sites_raise(self, joiner, annual):
        sites = pd.DataFrame([{"site_id": "S1", "name": "A"}, {"site_id": "S1", "name": "B"}])

        with pytest.raises(ValueError):
            joiner.attach_sites(annual, sites)
