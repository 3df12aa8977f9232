"""
Utility tests: date handling, logging and result output.
"""

import logging
from datetime import date, datetime
from unittest.mock import Mock

import pandas as pd
import pytest  # type: ignore

from src.salinity_trends.core import DateUtils, LoggerContext, setup_logger
from src.salinity_trends.models import Failed, Fitted, RunResult, StageReport
from src.salinity_trends.writer import ResultWriter


class TestDateUtils:
    """Test date parsing and formatting."""

    def test_parse_date(self):
        assert DateUtils.parse_date("2020-07-01") == date(2020, 7, 1)
        assert DateUtils.parse_date(datetime(2020, 7, 1, 12, 30)) == date(2020, 7, 1)

    def test_parse_date_rejects_other_formats(self):
        with pytest.raises(ValueError):
            DateUtils.parse_date("07/01/2020")

    def test_parse_date_column(self):
        parsed = DateUtils.parse_date_column(pd.Series(["2020-07-01", " 2020-07-02 ", "2020/07/03", None]))

        assert list(parsed[:2]) == [pd.Timestamp("2020-07-01"), pd.Timestamp("2020-07-02")]
        assert parsed[2:].isna().all()

    def test_query_formats(self):
        assert DateUtils.to_wqp_date("2020-07-01") == "07-01-2020"
        assert DateUtils.to_iso_date(date(2020, 7, 1)) == "2020-07-01"

    def test_today_in_timezone(self):
        utils = DateUtils()
        reference = datetime(2021, 1, 1, 2, 0)

        assert utils.today("UTC", reference) == date(2021, 1, 1)
        assert utils.today("America/New_York", reference) == date(2020, 12, 31)

    def test_invalid_timezone(self):
        with pytest.raises(ValueError):
            DateUtils.parse_timezone("Mars/Olympus_Mons")

    def test_decimal_year(self):
        years = DateUtils.decimal_year(pd.Series(pd.to_datetime(["2020-01-01", "2021-07-02"])))

        assert years[0] == pytest.approx(2020.0)
        assert years[1] == pytest.approx(2021 + 182 / 365)


class TestLogging:
    """Test logger setup and stage context."""

    def test_setup_logger(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"

        logger = setup_logger(name="salinity_trends.test", log_file=str(log_file))
        logger.info("detail")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "detail" in log_file.read_text(encoding="utf-8")
        assert len(logger.handlers) == 2
        assert logger.propagate is False

    def test_setup_is_repeatable(self, tmp_path):
        log_file = str(tmp_path / "run.log")

        setup_logger(name="salinity_trends.repeat", log_file=log_file)
        logger = setup_logger(name="salinity_trends.repeat", log_file=log_file)

        assert len(logger.handlers) == 2

    def test_context_logs_stage(self):
        logger = Mock(spec=logging.Logger)

        with LoggerContext(logger, "annual table assembly"):
            pass

        messages = [call[0][0] for call in logger.info.call_args_list]
        assert messages[0] == "Starting annual table assembly"
        assert messages[1].startswith("Completed annual table assembly")

    def test_context_logs_and_reraises_failure(self):
        logger = Mock(spec=logging.Logger)

        with pytest.raises(RuntimeError):
            with LoggerContext(logger, "retrieval"):
                raise RuntimeError("portal down")

        assert "portal down" in logger.error.call_args[0][0]


class TestResultWriter:
    """Test result output."""

    @pytest.fixture
    def result(self):
        output = pd.DataFrame([{"term": "sen_slope", "estimate": 1.0, "std_error": None,
                                "statistic": 2.2, "p_value": 0.03}])
        results = output.copy()
        results.insert(0, "site_id", "01646500")
        return RunResult(
            group_by=["site_id"],
            results=results,
            outcomes=[
                Fitted(key=("01646500",), output=output),
                Failed(key=("01589000",), reason="InsufficientData", message="2 points"),
            ],
        )

    def test_write_run(self, tmp_path, result):
        writer = ResultWriter(str(tmp_path / "out"))

        paths = writer.write_run(result)

        written = pd.read_csv(paths["results"], dtype={"site_id": str})
        failures = pd.read_csv(paths["failures"], dtype={"site_id": str})
        assert list(written["site_id"]) == ["01646500"]
        assert list(failures["site_id"]) == ["01589000"]
        assert paths["results"].name == "model_results.csv"

    def test_write_reports(self, tmp_path):
        report = StageReport(stage="clean", rows_in=5, rows_out=3)
        report.count("WrongMedium", 2)

        path = ResultWriter(str(tmp_path)).write_reports([report])

        rows = pd.read_csv(path).to_dict(orient="records")
        assert rows == [
            {"stage": "clean", "kind": "rows_in", "count": 5},
            {"stage": "clean", "kind": "rows_out", "count": 3},
            {"stage": "clean", "kind": "WrongMedium", "count": 2},
        ]

    def test_log_run_summary(self, result):
        logger = Mock(spec=logging.Logger)

        ResultWriter("unused", logger=logger).log_run_summary(result, [])

        warnings = [call[0][0] for call in logger.warning.call_args_list]
        assert any("01589000" in message and "InsufficientData" in message for message in warnings)
