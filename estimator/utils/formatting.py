"""
Macro number formatting and parsing.

Formatting takes the locale and precision explicitly; nothing here reads or
changes process-wide locale state.
"""

from typing import Dict, Optional, Tuple

DEFAULT_LOCALE = "en_US_POSIX"

# locale -> (decimal separator, grouping separator)
SEPARATORS: Dict[str, Tuple[str, str]] = {
    "en_US_POSIX": (".", ""),
    "en_US": (".", ","),
    "en_GB": (".", ","),
    "de_DE": (",", "."),
    "es_ES": (",", "."),
    "it_IT": (",", "."),
    "nl_NL": (",", "."),
    "pt_BR": (",", "."),
    "fr_FR": (",", "\u202f"),  # narrow no-break space
    "ru_RU": (",", "\u00a0"),
    "de_CH": (".", "\u2019"),
}


def _separators(locale: str) -> Tuple[str, str]:
    if locale in SEPARATORS:
        return SEPARATORS[locale]
    # Fall back on the language alone ("de" -> "de_DE"), then POSIX
    language = locale.replace("-", "_").split("_")[0]
    for name, separators in SEPARATORS.items():
        if name.split("_")[0] == language:
            return separators
    return SEPARATORS[DEFAULT_LOCALE]


def format_macro(value: float, *, locale: str = DEFAULT_LOCALE, precision: int = 0) -> str:
    """
    Format a macro value for display.

    Args:
        value: The number to format
        locale: Locale identifier selecting decimal and grouping separators
        precision: Digits after the decimal point

    Examples:
        >>> format_macro(1234.5, locale="en_US", precision=1)
        '1,234.5'

        >>> format_macro(1234.5, locale="de_DE", precision=1)
        '1.234,5'
    """
    if precision < 0:
        raise ValueError("precision must be >= 0")
    decimal_sep, group_sep = _separators(locale)

    text = f"{value:,.{precision}f}"
    integer, _, fraction = text.partition(".")
    integer = integer.replace(",", group_sep)
    return f"{integer}{decimal_sep}{fraction}" if fraction else integer


def parse_macro(text: Optional[str]) -> Optional[float]:
    """
    Parse a hand-typed macro value.

    Spaces are ignored and a comma is accepted as the decimal separator when
    no dot is present. Empty, invalid or negative input returns None.
    """
    if text is None:
        return None
    normalized = text.strip().replace(" ", "")
    if not normalized:
        return None
    if "," in normalized and "." not in normalized:
        normalized = normalized.replace(",", ".")
    try:
        value = float(normalized)
    except ValueError:
        return None
    if value < 0 or value != value or value in (float("inf"), float("-inf")):
        return None
    return value
