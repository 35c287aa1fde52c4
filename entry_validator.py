# -*- coding: UTF-8 -*-

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from numbers import Real
from typing import Any, Optional, Union

CHANGE_FREQUENCIES = ('always', 'hourly', 'daily', 'weekly', 'monthly', 'yearly', 'never')

_ALLOWED_KEYS = {'url', 'lastmod', 'change_freq', 'changeFreq', 'priority'}

# Characters XML 1.0 can't hold, eg. NUL or most control characters
_XML_INCOMPATIBLE = re.compile(r'[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]')


class ValidationError(ValueError):
    """Raised when an entry can't be turned into a sitemap record."""


@dataclass(frozen=True)
class SitemapEntry:
    url: str
    lastmod: str
    change_freq: Optional[str] = None
    priority: Optional[float] = None


def iso_now() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision, eg. "2024-01-31T10:00:00.000Z"."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def validate(raw: Union[str, Mapping, None], now: Optional[str] = None) -> SitemapEntry:
    """Checks a raw entry and returns its canonical form.

    A bare string is treated as {'url': raw}. A missing entry (None) is not a validation
    failure: it raises TypeError, the same way reading a field of nothing does.

    :param raw: A URL string or a mapping with "url" and optional "lastmod", "change_freq" and "priority"
    :param now: A timestamp to use when the entry has no "lastmod" (the current time by default)

    :raise TypeError: If the entry is None
    :raise ValidationError: If the entry is not a mapping or any of its fields is invalid

    :return: A SitemapEntry instance
    """
    if raw is None:
        raise TypeError("Cannot read field 'url' of None")
    if isinstance(raw, str):
        raw = {'url': raw}
    if not isinstance(raw, Mapping):
        raise ValidationError('"value" must be an object')

    unknown = sorted(str(key) for key in raw if key not in _ALLOWED_KEYS)
    if unknown:
        raise ValidationError(f'"{unknown[0]}" is not allowed')

    url = raw.get('url')
    if not isinstance(url, str) or not url:
        raise ValidationError('"url" must be a non-empty string')
    if _XML_INCOMPATIBLE.search(url):
        raise ValidationError('"url" contains characters not allowed in XML')

    change_freq = raw.get('change_freq', raw.get('changeFreq'))
    if change_freq is not None and change_freq not in CHANGE_FREQUENCIES:
        raise ValidationError(f'"changeFreq" must be one of {", ".join(CHANGE_FREQUENCIES)}')

    priority = raw.get('priority')
    if priority is not None:
        if isinstance(priority, bool) or not isinstance(priority, Real) or not 0 <= priority <= 1:
            raise ValidationError('"priority" must be a number between 0 and 1')

    return SitemapEntry(url, _lastmod(raw.get('lastmod'), now), change_freq, priority)


def _lastmod(value: Any, now: Optional[str]) -> str:
    if value is None:
        return now or iso_now()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str) and value:
        if _XML_INCOMPATIBLE.search(value):
            raise ValidationError('"lastmod" contains characters not allowed in XML')
        return value
    raise ValidationError('"lastmod" must be a date or a non-empty string')
