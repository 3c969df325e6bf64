"""
Referrer and user-agent classification.

Both classifiers are ordered rule tables: the first rule whose needle
occurs in the input decides the label.
"""

from urllib.parse import urlparse

DIRECT = "direct"
DIRECT_LABEL = "Direct access"

MOBILE = "Mobile"
TABLET = "Tablet"
DESKTOP = "Desktop"

# (needles, label), matched case-sensitively against the domain
REFERRER_LABELS = [
    (("google",), "Google"),
    (("bing",), "Bing"),
    (("facebook",), "Facebook"),
    (("instagram",), "Instagram"),
    (("twitter", "x.com"), "Twitter/X"),
    (("linkedin",), "LinkedIn"),
    (("youtube",), "YouTube"),
]

# (needles, device class), matched against the lower-cased user agent
DEVICE_RULES = [
    (("mobile", "android", "iphone"), MOBILE),
    (("tablet", "ipad"), TABLET),
]


def extract_domain(referrer) -> str:
    """
    Hostname of a referrer URL, "direct" for no referrer.
    Anything that isn't an absolute URL comes back unchanged.
    """
    if not referrer or referrer == DIRECT:
        return DIRECT
    try:
        u = urlparse(referrer)
        hostname = u.hostname
    except ValueError:
        return referrer
    # hostless schemes (mailto:, javascript:) also come back as given
    if not u.scheme or not hostname:
        return referrer
    return hostname


def format_referrer(domain: str) -> str:
    if domain == DIRECT:
        return DIRECT_LABEL
    for needles, label in REFERRER_LABELS:
        if any(n in domain for n in needles):
            return label
    return domain


def detect_device(user_agent) -> str:
    ua_lower = (user_agent or "").lower()
    for needles, device in DEVICE_RULES:
        if any(n in ua_lower for n in needles):
            return device
    return DESKTOP
