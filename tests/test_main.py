"""
Tests for the command-line entry point.
"""

import json

from unittest.mock import Mock, patch

from scholarship_aggregator.errors import ConfigurationError
from scholarship_aggregator.main import EXIT_CONFIG_ERROR, EXIT_FAILURE, EXIT_SUCCESS, main
from scholarship_aggregator.models import BatchResult, Provenance, ScholarshipRecord


def make_batch():
    record = ScholarshipRecord(
        title="Lagos Grant",
        description="For students in Lagos",
        amount=500,
        deadline=None,
        source_url="https://example.com/1",
        provenance=Provenance.FEED,
    )
    return BatchResult(scholarships=[record])


class TestMain:
    """Tests for main()."""

    def test_run_prints_batch(self, capsys):
        aggregator = Mock()
        aggregator.run.return_value = make_batch()

        with patch("scholarship_aggregator.main.build_aggregator", return_value=aggregator):
            code = main(["run", "--category", "rss"])

        assert code == EXIT_SUCCESS
        aggregator.run.assert_called_once_with("rss")
        output = json.loads(capsys.readouterr().out)
        assert output["count"] == 1
        assert output["scholarships"][0]["source"] == "RSS Feed"
        assert output["scholarships"][0]["deadline"] is None

    def test_source_command(self, capsys):
        aggregator = Mock()
        aggregator.run_by_name.return_value = BatchResult()

        with patch("scholarship_aggregator.main.build_aggregator", return_value=aggregator):
            code = main(["source", "Fastweb"])

        assert code == EXIT_SUCCESS
        aggregator.run_by_name.assert_called_once_with("Fastweb")

    def test_configuration_error(self):
        aggregator = Mock()
        aggregator.run_by_name.side_effect = ConfigurationError("Source not found: X", not_found=True)

        with patch("scholarship_aggregator.main.build_aggregator", return_value=aggregator):
            assert main(["source", "X"]) == EXIT_CONFIG_ERROR

    def test_unexpected_error(self):
        with patch("scholarship_aggregator.main.build_aggregator", side_effect=RuntimeError("boom")):
            assert main(["run"]) == EXIT_FAILURE

    def test_schedule_runs_once_then_starts(self):
        aggregator = Mock()

        with patch("scholarship_aggregator.main.build_aggregator", return_value=aggregator), \
                patch("scholarship_aggregator.main.AggregationScheduler") as scheduler_cls:
            code = main(["schedule", "--category", "api"])

        assert code == EXIT_SUCCESS
        scheduler = scheduler_cls.return_value
        scheduler.run_once.assert_called_once()
        scheduler.start.assert_called_once()
        assert scheduler_cls.call_args.kwargs["category"] == "api"
