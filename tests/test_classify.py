"""
Tests for referrer and device classification.
"""

from site_traffic.classify import (
    DIRECT_LABEL, detect_device, extract_domain, format_referrer,
)


class TestExtractDomain:
    """Referrer URL to domain."""

    def test_direct_and_empty(self):
        assert extract_domain("direct") == "direct"
        assert extract_domain("") == "direct"
        assert extract_domain(None) == "direct"

    def test_hostname_of_absolute_url(self):
        assert extract_domain("https://www.google.com/search?q=x") == "www.google.com"
        assert extract_domain("http://example.org:8080/a") == "example.org"

    def test_unparseable_comes_back_unchanged(self):
        assert extract_domain("not a url") == "not a url"
        assert extract_domain("www.google.com/search") == "www.google.com/search"
        assert extract_domain("http://[::1") == "http://[::1"

    def test_scheme_without_host_comes_back_unchanged(self):
        assert extract_domain("mailto:someone@example.org") == "mailto:someone@example.org"
        assert extract_domain("javascript:void(0)") == "javascript:void(0)"
        assert extract_domain("android-app://com.google.android.gm/") == "com.google.android.gm"


class TestFormatReferrer:
    """Domain to display label."""

    def test_known_sources(self):
        assert format_referrer("www.google.com") == "Google"
        assert format_referrer("www.bing.com") == "Bing"
        assert format_referrer("l.facebook.com") == "Facebook"
        assert format_referrer("instagram.com") == "Instagram"
        assert format_referrer("mobile.twitter.com") == "Twitter/X"
        assert format_referrer("x.com") == "Twitter/X"
        assert format_referrer("www.linkedin.com") == "LinkedIn"
        assert format_referrer("m.youtube.com") == "YouTube"

    def test_direct_label(self):
        assert format_referrer("direct") == DIRECT_LABEL

    def test_match_is_case_sensitive(self):
        assert format_referrer("GOOGLE.COM") == "GOOGLE.COM"

    def test_first_rule_wins(self):
        assert format_referrer("google.facebook.example") == "Google"

    def test_unknown_passes_through(self):
        assert format_referrer("news.ycombinator.com") == "news.ycombinator.com"
        assert format_referrer("") == ""


class TestDetectDevice:
    """User agent to device class."""

    def test_mobile(self):
        assert detect_device("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)") == "Mobile"
        assert detect_device("Mozilla/5.0 (Linux; Android 14; Pixel 8)") == "Mobile"

    def test_tablet(self):
        assert detect_device("Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X)") == "Tablet"
        assert detect_device("Some TABLET browser") == "Tablet"

    def test_mobile_checked_before_tablet(self):
        assert detect_device("Mozilla/5.0 (iPad) Mobile/15E148") == "Mobile"

    def test_desktop(self):
        assert detect_device("Mozilla/5.0 (Windows NT 10.0; Win64; x64)") == "Desktop"
        assert detect_device("") == "Desktop"
        assert detect_device(None) == "Desktop"
