"""
URL patterns blocked through ``Network.setBlockedURLs``.

Patterns use the DevTools wildcard syntax (``*`` matches any run of
characters).
"""

from __future__ import annotations

from pageprobe.models import config

# Advertising networks and ad exchanges.
AD_URL_PATTERNS: tuple[str, ...] = (
    "*doubleclick.net*",
    "*googlesyndication.com*",
    "*googleadservices.com*",
    "*adservice.google.*",
    "*amazon-adsystem.com*",
    "*adnxs.com*",
    "*criteo.com*",
    "*criteo.net*",
    "*taboola.com*",
    "*outbrain.com*",
    "*pubmatic.com*",
    "*rubiconproject.com*",
    "*openx.net*",
    "*casalemedia.com*",
    "*moatads.com*",
)

# Common third-party services: analytics, tag managers, chat and
# session replay widgets.
SERVICE_URL_PATTERNS: tuple[str, ...] = (
    "*google-analytics.com*",
    "*googletagmanager.com*",
    "*hotjar.com*",
    "*fullstory.com*",
    "*segment.com*",
    "*segment.io*",
    "*mixpanel.com*",
    "*intercom.io*",
    "*intercomcdn.com*",
    "*zendesk.com*",
    "*newrelic.com*",
    "*nr-data.net*",
    "*optimizely.com*",
    "*connect.facebook.net*",
)


def blocked_url_patterns(rules: config.ScanRules) -> list[str]:
    """Return the de-duplicated block list implied by *rules*, in order."""
    patterns: list[str] = list(rules.blocked_urls)
    if rules.ad_blocking:
        patterns.extend(AD_URL_PATTERNS)
    if rules.disable_services:
        patterns.extend(SERVICE_URL_PATTERNS)
    return list(dict.fromkeys(patterns))
