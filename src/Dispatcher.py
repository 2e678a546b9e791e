# src/Dispatcher.py
# RUNS A LIST OF METRICS AGAINST ONE REPOSITORY, IN ORDER
import time
from typing import Any, Iterable, List, Mapping, Optional

from src.logging_utils import get_logger
from src.Metrics import Metric, MetricResult

logger = get_logger(__name__)


class Dispatcher:
    """
    Run registered metrics sequentially and collect their results.

    Metrics are independent: each receives the same inputs mapping and
    none sees another's output. A failing metric aborts the whole
    dispatch; no partial result list is returned.
    """

    def __init__(self, metrics: Optional[Iterable[Metric]] = None) -> None:
        self._metrics: List[Metric] = list(metrics or [])

    @property
    def metrics(self) -> List[Metric]:
        """Registered metrics (a copy; mutating it has no effect)."""
        return list(self._metrics)

    def add_metric(self, metric: Metric) -> None:
        self._metrics.append(metric)

    def clear_metrics(self) -> None:
        self._metrics.clear()

    def dispatch(self, inputs: Mapping[str, Any],
                 **kwargs: Any) -> List[MetricResult]:
        """
        Compute every metric for ``inputs``.

        Parameters
        ----------
        inputs : Mapping[str, Any]
            Repository inputs (``owner``, ``repo``, ``url``).
        **kwargs : Any
            Forwarded to every ``Metric.compute`` call.

        Returns
        -------
        list[MetricResult]
            One result per metric, in registration order.

        Raises
        ------
        Exception
            Whatever the failing metric raised, after it is logged.
        """
        results: List[MetricResult] = []
        for metric in self._metrics:
            start = time.perf_counter()
            try:
                value = metric.compute(dict(inputs), **kwargs)
            except Exception:
                logger.error("Metric %s failed for %s", metric.key,
                             inputs.get("url"), exc_info=True)
                raise
            latency_ms = (time.perf_counter() - start) * 1000.0
            logger.debug("Metric %s took %.1f ms", metric.key, latency_ms)
            results.append(MetricResult(metric=metric.name,
                                        key=metric.key,
                                        value=value,
                                        latency_ms=latency_ms))
        return results
