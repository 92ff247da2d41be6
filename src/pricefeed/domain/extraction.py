"""Pull a price out of a provider JSON response by dot-path."""

import json
import math
from typing import Any

from pricefeed.domain.templating import TemplateContext, resolve_placeholders
from pricefeed.exceptions import EmptyPathError, PathNotFoundError, ResponseParseError, TypeMismatchError

# asset_prices.price is Numeric(28, 10): 18 integer digits
MAX_PRICE = 1e18


def parse_document(body: str) -> Any:
    try:
        return json.loads(body)
    except (ValueError, TypeError) as exc:
        raise ResponseParseError(f"response is not valid JSON: {exc}") from exc


def extract_price(document: Any, path_template: str | None, ctx: TemplateContext | None = None) -> float:
    """Walk ``document`` along a dot-path and return the leaf as a float.

    The path may contain placeholders (e.g. ``market_data.current_price.{currency_lower}``),
    resolved against ``ctx`` first. Only object keys are walked; list indices are not supported.
    Numeric strings are accepted since some providers quote prices as text.
    """
    path = (path_template or "").strip()
    if ctx is not None:
        path = resolve_placeholders(path, ctx)
    if not path:
        raise EmptyPathError("response_path is empty")

    current = document
    walked: list[str] = []
    for segment in path.split("."):
        if not isinstance(current, dict) or segment not in current:
            where = ".".join(walked) or "<root>"
            raise PathNotFoundError(f"path '{path}': key '{segment}' not found at {where}")
        current = current[segment]
        walked.append(segment)

    return _to_float(current, path)


def _to_float(value: Any, path: str) -> float:
    if isinstance(value, bool):
        raise TypeMismatchError(f"path '{path}': expected a number, got boolean")
    if isinstance(value, str) and "_" in value:
        raise TypeMismatchError(f"path '{path}': value {value!r} is not numeric")
    if not isinstance(value, (int, float, str)):
        raise TypeMismatchError(f"path '{path}': expected a number, got {type(value).__name__}")

    try:
        result = float(value.strip() if isinstance(value, str) else value)
    except (OverflowError, ValueError):
        raise TypeMismatchError(f"path '{path}': value {_preview(value)} is not a representable number") from None

    if not math.isfinite(result):
        raise TypeMismatchError(f"path '{path}': value {_preview(value)} is not a finite number")
    if abs(result) >= MAX_PRICE:
        raise TypeMismatchError(f"path '{path}': value {_preview(value)} is out of range")
    return result


def _preview(value: Any) -> str:
    text = repr(value)
    return text if len(text) <= 40 else f"{text[:37]}..."
