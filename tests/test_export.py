"""
Tests for the CSV export of the raw log.
"""

from site_traffic.export import events_to_csv
from site_traffic.models import VisitEvent


class TestEventsToCsv:
    """Delimited text export."""

    def test_empty(self):
        assert events_to_csv([]) == ""

    def test_header_and_rows(self):
        csv = events_to_csv([
            VisitEvent(timestamp=1, date="2025-01-02", user_agent="UA", path="/a", load_time=10),
        ])
        header, row = csv.split("\n")
        assert header == "timestamp,date,referrer,userAgent,screenSize,language,path,queryParams,loadTime"
        assert row == "1,2025-01-02,direct,UA,,,/a,,10"

    def test_commas_quoted_quotes_left_alone(self):
        csv = events_to_csv([
            VisitEvent(timestamp=1, date="2025-01-02", user_agent='Mozilla/5.0 (KHTML, like "Gecko")'),
        ])
        assert ',"Mozilla/5.0 (KHTML, like "Gecko")",' in csv

    def test_header_from_first_record_only(self):
        csv = events_to_csv([
            VisitEvent(timestamp=1, date="2025-01-02"),
            VisitEvent(timestamp=2, date="2025-01-02", time_on_page=7),
        ])
        lines = csv.split("\n")
        assert "timeOnPage" not in lines[0]
        assert lines[2].endswith(",0,7")
        assert len(lines) == 3
