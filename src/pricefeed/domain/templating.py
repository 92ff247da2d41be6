"""Placeholder substitution for provider URLs, headers, query params and secrets.

Two passes:

1. ``{name}`` placeholders from a fixed whitelist, computed from a TemplateContext.
   Unknown names and malformed braces are left as literal text.
2. ``${ENV_VAR}`` references looked up in the process environment. A missing
   variable is a ConfigurationError, never an empty string.
"""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime

from pricefeed.exceptions import ConfigurationError

# "{name}" not preceded by "$" (that form is an env reference)
_PLACEHOLDER_RE = re.compile(r"(?<!\$)\{([a-z_]+)\}")
_ENV_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class TemplateContext:
    """Run-time values a mapping template can reference."""

    symbol: str
    provider_id: str
    currency: str
    day: date

    def values(self) -> dict[str, str]:
        midnight = datetime(self.day.year, self.day.month, self.day.day, tzinfo=UTC)
        return {
            "symbol": self.symbol,
            "provider_id": self.provider_id,
            "currency": self.currency,
            "currency_lower": self.currency.lower(),
            "currency_upper": self.currency.upper(),
            "date": self.day.strftime("%Y-%m-%d"),
            "date_yyyymmdd": self.day.strftime("%Y%m%d"),
            "date_ddmmyyyy": self.day.strftime("%d-%m-%Y"),
            "date_unix": str(int(midnight.timestamp())),
            "date_yyyy": self.day.strftime("%Y"),
            "date_mm": self.day.strftime("%m"),
            "date_dd": self.day.strftime("%d"),
        }


SUPPORTED_PLACEHOLDERS = frozenset(TemplateContext("", "", "", date(1970, 1, 1)).values())


def resolve_placeholders(template: str, ctx: TemplateContext) -> str:
    """Substitute whitelisted placeholders in a single pass. Never raises."""
    values = ctx.values()

    def _sub(match: re.Match[str]) -> str:
        return values.get(match.group(1), match.group(0))

    return _PLACEHOLDER_RE.sub(_sub, template)


def expand_env_vars(value: str, env: Mapping[str, str] | None = None) -> str:
    """Replace ${VAR} references. Raises ConfigurationError for unset variables."""
    source = os.environ if env is None else env

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        resolved = source.get(name)
        if not resolved:
            raise ConfigurationError(f"environment variable {name} referenced by mapping is not set")
        return resolved

    return _ENV_RE.sub(_sub, value)


def resolve_template(template: str, ctx: TemplateContext, env: Mapping[str, str] | None = None) -> str:
    """Full resolution: placeholders first, then environment references."""
    return expand_env_vars(resolve_placeholders(template, ctx), env)
