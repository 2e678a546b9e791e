# tests/test_Metrics.py
import math
import os
import unittest
from dataclasses import FrozenInstanceError
from unittest.mock import MagicMock, patch

from src.Client import APIError, GitHubClient
from src.Metrics import (NO_ISSUES_SCORE, README_TARGET_CHARS,
                         BusFactorMetric, CorrectnessMetric, LicenseMetric,
                         Metric, MetricResult, RampUpMetric,
                         ResponsivenessMetric)

INPUTS = {"owner": "acme", "repo": "widget",
          "url": "https://github.com/acme/widget"}


class TestMetricResult(unittest.TestCase):
    """
    Test that the MetricResult class works properly in terms of
    construction and immutablility
    """
    def test_construction_and_defaults(self) -> None:
        res = MetricResult(
            metric="License",
            key="license",
            value=1.0,
            latency_ms=12.3,
        )
        self.assertEqual(res.metric, "License")
        self.assertEqual(res.key, "license")
        self.assertEqual(res.value, 1.0)
        self.assertEqual(res.latency_ms, 12.3)
        self.assertIsNone(res.details)
        self.assertIsNone(res.error)

    def test_frozen_immutability(self) -> None:
        res = MetricResult(metric="m", key="k", value=1, latency_ms=0.1)
        with self.assertRaises(FrozenInstanceError):
            res.value = 2  # type: ignore[misc]


class TestMetricABC(unittest.TestCase):
    """
    Test that the Metric abstract class works properly
    """
    def test_metric_is_abstract(self) -> None:
        with self.assertRaises(TypeError):
            Metric()  # type: ignore[abstract]

    def test_owner_repo_required(self) -> None:
        metric = LicenseMetric(client=MagicMock(spec=GitHubClient))
        with self.assertRaises(ValueError):
            metric.compute({"owner": "acme"})

    def test_default_client_reads_env_token(self) -> None:
        with patch.dict(os.environ, {"GITHUB_TOKEN": "ghp_x"}, clear=True):
            metric = BusFactorMetric()
        self.assertIsInstance(metric.client, GitHubClient)
        self.assertEqual(metric.client.token, "ghp_x")


class TestRampUpMetric(unittest.TestCase):
    def setUp(self) -> None:
        self.client = MagicMock(spec=GitHubClient)
        self.metric = RampUpMetric(client=self.client)

    @patch("src.Metrics.fetch_readme")
    def test_long_readme_with_docs_scores_full(
        self,
        mock_readme: MagicMock,
    ) -> None:
        mock_readme.return_value = "x" * (README_TARGET_CHARS * 2)
        self.client.request.return_value = {"homepage": "https://docs"}

        score = self.metric.compute(INPUTS)

        self.assertAlmostEqual(score, 1.0)
        mock_readme.assert_called_once_with(self.client, "acme", "widget")
        self.client.request.assert_called_once_with("GET",
                                                    "/repos/acme/widget")

    @patch("src.Metrics.fetch_readme", return_value=None)
    def test_no_readme_only_docs_share(self, _mock_readme) -> None:
        self.client.request.return_value = {"has_wiki": True}

        score = self.metric.compute(INPUTS)

        self.assertAlmostEqual(score, 0.2)

    @patch("src.Metrics.fetch_readme", return_value=None)
    def test_nothing_scores_zero(self, _mock_readme) -> None:
        self.client.request.return_value = {"homepage": "", "has_wiki": False,
                                            "has_pages": False}
        self.assertEqual(self.metric.compute(INPUTS), 0.0)

    @patch("src.Metrics.fetch_readme")
    def test_short_readme_scores_less_than_long(self, mock_readme) -> None:
        self.client.request.return_value = {}
        mock_readme.return_value = "x" * 100
        short = self.metric.compute(INPUTS)
        mock_readme.return_value = "x" * 4000
        longer = self.metric.compute(INPUTS)

        self.assertGreater(short, 0.0)
        self.assertLess(short, longer)
        self.assertLessEqual(longer, 0.8)

    @patch("src.Metrics.fetch_readme",
           side_effect=APIError("down", status_code=500))
    def test_api_failure_propagates(self, _mock_readme) -> None:
        with self.assertRaises(APIError):
            self.metric.compute(INPUTS)


class TestCorrectnessMetric(unittest.TestCase):
    def setUp(self) -> None:
        self.metric = CorrectnessMetric(client=MagicMock(spec=GitHubClient))

    @patch("src.Metrics.count_issues")
    def test_closed_ratio(self, mock_count: MagicMock) -> None:
        mock_count.side_effect = lambda _c, _o, _r, state: {
            "open": 25, "closed": 75}[state]

        self.assertAlmostEqual(self.metric.compute(INPUTS), 0.75)

    @patch("src.Metrics.count_issues", return_value=0)
    def test_no_issues_is_neutral(self, _mock_count) -> None:
        self.assertEqual(self.metric.compute(INPUTS), NO_ISSUES_SCORE)

    @patch("src.Metrics.count_issues",
           side_effect=APIError("forbidden", status_code=403))
    def test_api_failure_propagates(self, _mock_count) -> None:
        with self.assertRaises(APIError):
            self.metric.compute(INPUTS)


class TestBusFactorMetric(unittest.TestCase):
    def setUp(self) -> None:
        self.metric = BusFactorMetric(client=MagicMock(spec=GitHubClient))

    def test_effective_maintainers(self) -> None:
        calc = BusFactorMetric._calculate_effective_maintainers
        self.assertEqual(calc([]), 0.0)
        self.assertEqual(calc([10]), 1.0)
        self.assertAlmostEqual(calc([5, 5, 5, 5]), 4.0)
        # One dominant author keeps the count close to one
        self.assertLess(calc([1000, 1, 1, 1]), 1.1)

    @patch("src.Metrics.list_contributors")
    def test_score_is_effective_over_target(self, mock_list) -> None:
        mock_list.return_value = [{"login": f"u{i}", "contributions": 10}
                                  for i in range(3)]

        score = self.metric.compute(INPUTS, target_maintainers=6)

        self.assertAlmostEqual(score, 0.5)

    @patch("src.Metrics.list_contributors")
    def test_score_is_capped(self, mock_list) -> None:
        mock_list.return_value = [{"login": f"u{i}", "contributions": 3}
                                  for i in range(20)]
        self.assertEqual(self.metric.compute(INPUTS), 1.0)

    @patch("src.Metrics.list_contributors")
    def test_bad_counts_are_ignored(self, mock_list) -> None:
        mock_list.return_value = [{"login": "a", "contributions": None},
                                  {"login": "b", "contributions": "7"}]
        self.assertAlmostEqual(self.metric.compute(INPUTS), 1.0 / 5.0)

    @patch("src.Metrics.list_contributors", return_value=[])
    def test_no_contributors(self, _mock_list) -> None:
        self.assertEqual(self.metric.compute(INPUTS), 0.0)


class TestResponsivenessMetric(unittest.TestCase):
    def setUp(self) -> None:
        self.metric = ResponsivenessMetric(
            client=MagicMock(spec=GitHubClient))

    @staticmethod
    def _issue(created: str, closed: str) -> dict:
        return {"created_at": created, "closed_at": closed}

    @patch("src.Metrics.list_closed_issues")
    def test_median_of_half_life_scores_half(self, mock_issues) -> None:
        mock_issues.return_value = [
            self._issue("2024-01-01T00:00:00Z", "2024-01-02T00:00:00Z"),
            self._issue("2024-01-01T00:00:00Z", "2024-01-08T00:00:00Z"),
            self._issue("2024-01-01T00:00:00Z", "2024-03-01T00:00:00Z"),
        ]

        score = self.metric.compute(INPUTS)

        # median is 7 days == default half-life
        self.assertAlmostEqual(score, 0.5)

    @patch("src.Metrics.list_closed_issues")
    def test_unparseable_dates_are_skipped(self, mock_issues) -> None:
        mock_issues.return_value = [
            self._issue("garbage", "2024-01-02T00:00:00Z"),
            {"created_at": "2024-01-01T00:00:00Z", "closed_at": None},
            self._issue("2024-01-01T00:00:00Z", "2024-01-01T00:00:00Z"),
        ]

        self.assertAlmostEqual(self.metric.compute(INPUTS), 1.0)

    @patch("src.Metrics.list_closed_issues", return_value=[])
    def test_no_closed_issues(self, _mock_issues) -> None:
        self.assertEqual(self.metric.compute(INPUTS), 0.0)


class TestLicenseMetric(unittest.TestCase):
    def setUp(self) -> None:
        self.metric = LicenseMetric(client=MagicMock(spec=GitHubClient))

    @patch("src.Metrics.fetch_license")
    def test_known_licenses(self, mock_license) -> None:
        cases = {"MIT": 1.0, "LGPL-2.1": 0.75, "CC-BY-NC-4.0": 0.5,
                 "NOASSERTION": 0.5}
        for spdx, expected in cases.items():
            with self.subTest(spdx=spdx):
                mock_license.return_value = {"spdx_id": spdx}
                self.assertEqual(self.metric.compute(INPUTS), expected)

    @patch("src.Metrics.fetch_license",
           return_value={"spdx_id": "Some-New-License"})
    def test_unlisted_license_falls_back_to_other(self, _mock) -> None:
        self.assertEqual(self.metric.compute(INPUTS),
                         LicenseMetric.license_scores["other"])

    @patch("src.Metrics.fetch_license", return_value=None)
    def test_no_license(self, _mock) -> None:
        self.assertEqual(self.metric.compute(INPUTS), 0.0)


class TestScoresAreBounded(unittest.TestCase):
    """Every metric stays within [0, 1] on extreme inputs."""

    @patch("src.Metrics.fetch_license", return_value={"spdx_id": "MIT"})
    @patch("src.Metrics.list_closed_issues", return_value=[
        {"created_at": "2024-01-02T00:00:00Z",
         "closed_at": "2024-01-01T00:00:00Z"}])
    @patch("src.Metrics.list_contributors", return_value=[
        {"contributions": 10 ** 9}] * 50)
    @patch("src.Metrics.count_issues", return_value=10 ** 9)
    @patch("src.Metrics.fetch_readme", return_value="x" * 10 ** 6)
    def test_bounds(self, *_mocks) -> None:
        client = MagicMock(spec=GitHubClient)
        client.request.return_value = {"homepage": "h", "has_wiki": True}
        metrics = [RampUpMetric(client), CorrectnessMetric(client),
                   BusFactorMetric(client), ResponsivenessMetric(client),
                   LicenseMetric(client)]
        for metric in metrics:
            with self.subTest(metric=metric.key):
                score = metric.compute(INPUTS)
                self.assertFalse(math.isnan(score))
                self.assertGreaterEqual(score, 0.0)
                self.assertLessEqual(score, 1.0)


if __name__ == "__main__":
    unittest.main()
