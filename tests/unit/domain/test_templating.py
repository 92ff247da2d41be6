from datetime import date

import pytest

from pricefeed.domain.templating import (
    SUPPORTED_PLACEHOLDERS,
    TemplateContext,
    expand_env_vars,
    resolve_placeholders,
    resolve_template,
)
from pricefeed.exceptions import ConfigurationError

CTX = TemplateContext(symbol="BTC", provider_id="bitcoin", currency="USD", day=date(2024, 3, 5))


class TestResolvePlaceholders:
    def test_date_formats(self):
        out = resolve_placeholders("{date}|{date_yyyymmdd}|{date_ddmmyyyy}|{date_yyyy}-{date_mm}-{date_dd}", CTX)
        assert out == "2024-03-05|20240305|05-03-2024|2024-03-05"

    def test_unix_is_utc_midnight(self):
        assert resolve_placeholders("{date_unix}", CTX) == "1709596800"

    def test_currency_variants(self):
        ctx = TemplateContext(symbol="ETH", provider_id="ethereum", currency="Eur", day=date(2024, 1, 1))
        assert resolve_placeholders("{currency}/{currency_lower}/{currency_upper}", ctx) == "Eur/eur/EUR"

    def test_coingecko_history_url(self):
        url = "https://api.coingecko.com/api/v3/coins/{provider_id}/history?date={date_ddmmyyyy}"
        expected = "https://api.coingecko.com/api/v3/coins/bitcoin/history?date=05-03-2024"
        assert resolve_placeholders(url, CTX) == expected

    def test_unknown_placeholder_left_literal(self):
        assert resolve_placeholders("/{foo}/{symbol}", CTX) == "/{foo}/BTC"

    def test_malformed_braces_left_literal(self):
        assert resolve_placeholders("{symbol", CTX) == "{symbol"
        assert resolve_placeholders("{}", CTX) == "{}"

    def test_env_reference_untouched(self):
        assert resolve_placeholders("${symbol}", CTX) == "${symbol}"

    def test_no_placeholders_is_identity(self):
        assert resolve_placeholders("https://example.com/price", CTX) == "https://example.com/price"

    def test_single_pass(self):
        ctx = TemplateContext(symbol="{date}", provider_id="x", currency="USD", day=date(2024, 1, 1))
        assert resolve_placeholders("{symbol}", ctx) == "{date}"

    @pytest.mark.parametrize("name", sorted(SUPPORTED_PLACEHOLDERS))
    def test_second_pass_is_noop(self, name):
        template = f"https://x/{{{name}}}/raw?key=${{API_KEY}}&q={{unknown}}"
        once = resolve_placeholders(template, CTX)
        assert resolve_placeholders(once, CTX) == once
        assert "${API_KEY}" in once
        assert f"{{{name}}}" not in once

    def test_full_resolution_is_idempotent(self):
        template = "/".join(f"{{{name}}}" for name in sorted(SUPPORTED_PLACEHOLDERS)) + "?k=${KEY}"
        once = resolve_template(template, CTX, {"KEY": "v"})
        assert resolve_template(once, CTX, {"KEY": "v"}) == once

    def test_supported_set(self):
        assert {"symbol", "provider_id", "date", "date_unix", "currency_lower"} <= SUPPORTED_PLACEHOLDERS


class TestExpandEnvVars:
    def test_expands_from_mapping(self):
        assert expand_env_vars("Bearer ${API_KEY}", {"API_KEY": "s3cret"}) == "Bearer s3cret"

    def test_missing_raises(self):
        with pytest.raises(ConfigurationError, match="MISSING_KEY"):
            expand_env_vars("${MISSING_KEY}", {})

    def test_empty_value_is_missing(self):
        with pytest.raises(ConfigurationError):
            expand_env_vars("${EMPTY}", {"EMPTY": ""})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("PRICEFEED_TEST_TOKEN", "abc")
        assert expand_env_vars("${PRICEFEED_TEST_TOKEN}") == "abc"

    def test_resolve_template_runs_both_passes(self):
        out = resolve_template("https://x/{symbol}?key=${KEY}", CTX, {"KEY": "k1"})
        assert out == "https://x/BTC?key=k1"
