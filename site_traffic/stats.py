"""
Aggregation of a visit log into report statistics.
"""

from typing import Dict, Iterable

from .classify import detect_device, extract_domain
from .models import StatsSummary, VisitEvent


def _bump(counter: Dict[str, int], key: str) -> None:
    counter[key] = counter.get(key, 0) + 1


def _by_count(counter: Dict[str, int]) -> Dict[str, int]:
    # sorted() is stable: equal counts keep first-seen order
    return dict(sorted(counter.items(), key=lambda kv: kv[1], reverse=True))


def aggregate(events: Iterable[VisitEvent]) -> StatsSummary:
    """
    Count visits per date, referrer domain, page and device class,
    and average time on page, load time and visits per day.

    A load_time of 0 means "not measured" and is left out of the average.
    time_on_page counts whenever it was recorded, 0 included.
    """
    total = 0
    visits_by_date: Dict[str, int] = {}
    referrers: Dict[str, int] = {}
    pages: Dict[str, int] = {}
    devices: Dict[str, int] = {}

    time_on_page_sum = 0
    time_on_page_count = 0
    load_time_sum = 0
    load_time_count = 0

    for visit in events:
        total += 1
        _bump(visits_by_date, visit.date)
        _bump(referrers, extract_domain(visit.referrer))
        _bump(pages, visit.path)
        _bump(devices, detect_device(visit.user_agent))

        if visit.time_on_page is not None:
            time_on_page_sum += visit.time_on_page
            time_on_page_count += 1

        if visit.load_time:
            load_time_sum += visit.load_time
            load_time_count += 1

    unique_days = len(visits_by_date)

    return StatsSummary(
        total_visits=total,
        visits_by_date=dict(sorted(visits_by_date.items(), reverse=True)),
        referrers=_by_count(referrers),
        pages=_by_count(pages),
        devices=_by_count(devices),
        average_time_on_page=time_on_page_sum / time_on_page_count if time_on_page_count else 0.0,
        average_load_time=load_time_sum / load_time_count if load_time_count else 0.0,
        average_daily_visits=total / unique_days if unique_days else float(total),
    )
