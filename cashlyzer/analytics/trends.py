from __future__ import annotations

from typing import Dict, List

from cashlyzer.analytics.records import MonthlyBucket


class TrendAnalyzer:
    """
    Percentage change in spend per category between the earliest and the latest
    populated monthly bucket. Intermediate months are ignored.
    """

    def category_trends(self, buckets: List[MonthlyBucket], category_ids: List[str]) -> Dict[str, float]:
        """
        buckets must be in chronological order. Values are unrounded signed percentages.
        """
        trends = {category_id: 0.0 for category_id in category_ids}
        if len(buckets) < 2:
            return trends

        first, last = buckets[0], buckets[-1]
        for category_id in category_ids:
            trends[category_id] = self.percent_change(
                first.per_category_total.get(category_id, 0.0),
                last.per_category_total.get(category_id, 0.0),
            )
        return trends

    @staticmethod
    def percent_change(first: float, last: float) -> float:
        if first <= 0:
            return 0.0
        return (last - first) / first * 100
