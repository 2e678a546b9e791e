# tests/test_Dispatcher.py
import unittest
from typing import Any, Dict

from src.Dispatcher import Dispatcher
from src.Metrics import Metric


class _StubMetric(Metric):
    """Simple metric stub that records its inputs."""

    def __init__(self, name: str, key: str, result: float) -> None:
        self.name = name
        self.key = key
        self.result = result
        self.calls: list[Dict[str, Any]] = []
        self.kwargs: list[Dict[str, Any]] = []

    def compute(self, inputs: Dict[str, Any], **kwargs: Any) -> float:
        self.calls.append(inputs)
        self.kwargs.append(kwargs)
        return self.result


class _FailingMetric(Metric):
    name = "Fail"
    key = "fail_metric"

    def compute(self, inputs: Dict[str, Any], **kwargs: Any) -> float:
        raise ValueError("explode")


class TestDispatcher(unittest.TestCase):
    """Test that the Dispatcher runs metrics and aggregates results."""

    def test_dispatch_no_metrics_returns_empty_results(self) -> None:
        dispatcher = Dispatcher()

        results = dispatcher.dispatch({})

        self.assertEqual(results, [])

    def test_dispatch_runs_all_metrics_and_preserves_order(self) -> None:
        inputs = {"owner": "acme", "repo": "widget",
                  "url": "https://github.com/acme/widget"}
        metric_a = _StubMetric("A", "metric_a", 0.3)
        metric_b = _StubMetric("B", "metric_b", 0.7)
        dispatcher = Dispatcher([metric_a, metric_b])

        results = dispatcher.dispatch(inputs)

        self.assertEqual([r.key for r in results], ["metric_a", "metric_b"])
        self.assertEqual(results[0].metric, "A")
        self.assertEqual(results[0].value, 0.3)
        self.assertIsNone(results[0].error)
        self.assertGreaterEqual(results[0].latency_ms, 0.0)
        self.assertEqual(results[1].value, 0.7)

        self.assertEqual(metric_a.calls[0], inputs)
        self.assertEqual(metric_b.calls[0], inputs)
        # Each metric gets its own copy of the inputs
        self.assertIsNot(metric_a.calls[0], metric_b.calls[0])

    def test_dispatch_forwards_kwargs(self) -> None:
        metric = _StubMetric("A", "metric_a", 0.3)

        Dispatcher([metric]).dispatch({}, target_maintainers=3)

        self.assertEqual(metric.kwargs[0], {"target_maintainers": 3})

    def test_dispatch_aborts_on_metric_exception(self) -> None:
        after = _StubMetric("After", "after", 1.0)
        dispatcher = Dispatcher([_FailingMetric(), after])

        with self.assertRaises(ValueError):
            dispatcher.dispatch({"url": "https://github.com/a/b"})

        # Metrics after the failure never run
        self.assertEqual(after.calls, [])

    def test_add_clear_and_metrics_property(self) -> None:
        metric = _StubMetric("Name", "key", 1.0)
        dispatcher = Dispatcher()

        dispatcher.add_metric(metric)
        registered = dispatcher.metrics

        self.assertEqual(len(registered), 1)
        self.assertIs(registered[0], metric)

        registered.append(_StubMetric("Other", "other", 0.5))
        self.assertEqual(len(dispatcher.metrics), 1)

        dispatcher.clear_metrics()
        self.assertEqual(dispatcher.metrics, [])


if __name__ == "__main__":
    unittest.main()
