# src/Display.py
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

from src.logging_utils import get_logger
from src.Metrics import MetricResult
from src.Parser import RepoReference

logger = get_logger(__name__)

# Output field -> metric key, in output order
SCORE_FIELDS = (
    ("RAMP_UP_SCORE", "ramp_up"),
    ("CORRECTNESS_SCORE", "correctness"),
    ("BUS_FACTOR_SCORE", "bus_factor"),
    ("RESPONSIVE_MAINTAINER_SCORE", "responsive_maintainer"),
    ("LICENSE_SCORE", "license"),
)


def _results_by_key(
    results: Iterable[MetricResult],
) -> Dict[str, MetricResult]:
    return {r.key: r for r in results}


def _clamp_score(value: Any) -> float:
    try:
        val = float(value)
    except (TypeError, ValueError):
        return 0.0
    if val != val:  # NaN
        return 0.0
    return max(0.0, min(val, 1.0))


def _get_value(res_map: Dict[str, MetricResult], key: str) -> float:
    res = res_map.get(key)
    if res is None or res.value is None:
        return 0.0
    return _clamp_score(res.value)


def build_output_object(
    repo_ref: RepoReference,
    results: List[MetricResult],
) -> Dict[str, Any]:
    logger.debug("Building output object for %s", repo_ref.url)
    res_map = _results_by_key(results)

    scores = {field: _get_value(res_map, key) for field, key in SCORE_FIELDS}
    # Unweighted sum of the sub-scores, as printed
    net_score = sum(scores.values())

    out: Dict[str, Any] = {}
    out["URL"] = repo_ref.url
    out["NET_SCORE"] = net_score
    out.update(scores)
    logger.debug("Output object ready: %s", out)
    return out


def print_results(repo_ref: RepoReference,
                  results: List[MetricResult]) -> None:
    obj = build_output_object(repo_ref, results)
    logger.info("Printing results for %s", repo_ref.url)
    print(json.dumps(obj, separators=(",", ":")), flush=True)
