"""Output formatting utilities for earmark search results.

Provides reusable functions for:
- Formatting currency amounts the way a browser's default number format does
- Projecting a record onto the four displayed columns
- Tabular terminal output
"""

from typing import Optional, List, Dict, Any

DISPLAY_COLUMNS = ("year", "recipient", "amount", "agency")


def format_currency(value: Any, symbol: str = "$", max_fraction_digits: int = 3) -> str:
    """Format an amount as a grouped currency string.

    Mirrors en-US default number formatting: thousands separators and at most
    three fraction digits with trailing zeros dropped.

    Args:
        value: Amount (int, float, or numeric string)
        symbol: Currency prefix (default: "$")
        max_fraction_digits: Upper bound on decimals kept

    Returns:
        Formatted string like "$500,000" or "$1,234.5"; "-" when missing or
        not numeric

    Examples:
        format_currency(500000) -> "$500,000"
        format_currency(1234.5) -> "$1,234.5"
        format_currency(None) -> "-"
    """
    if value is None or isinstance(value, bool):
        return "-"
    try:
        v = float(value)
    except (TypeError, ValueError):
        return "-"
    if v != v:  # NaN
        return "-"

    sign = "-" if v < 0 else ""
    text = f"{abs(v):,.{max_fraction_digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{sign}{symbol}{text}"


def format_count(value: Optional[int]) -> str:
    """Format a count with thousands separator.

    Examples:
        format_count(1234567) -> "1,234,567"
        format_count(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:,d}"


def project_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Project a raw record onto the displayed fields.

    Returns a dict with ``year``, ``recipient``, ``amount`` (raw),
    ``amount_display`` (currency string) and ``agency``.  Missing fields are
    None.
    """
    year = record.get("year")
    if isinstance(year, str) and year.strip().isdigit():
        year = int(year.strip())
    return {
        "year": year,
        "recipient": record.get("recipient"),
        "amount": record.get("amount"),
        "amount_display": format_currency(record.get("amount")),
        "agency": record.get("agency"),
    }


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """Truncate text to maximum length with ellipsis.

    Examples:
        truncate_text("Long text here", 10) -> "Long te..."
        truncate_text("Short", 10) -> "Short"
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


class TableFormatter:
    """Formats data as aligned tabular output."""

    def __init__(self, columns: List[str], column_widths: Optional[List[int]] = None,
                 max_width: int = 40):
        """Initialize table formatter.

        Args:
            columns: List of column headers
            column_widths: Optional list of column widths (auto-calculated if None)
            max_width: Cells longer than this are truncated
        """
        self.columns = columns
        self.column_widths = column_widths or [len(col) for col in columns]
        self.max_width = max_width
        self.rows: List[List[str]] = []

    def add_row(self, values: List[Any]) -> None:
        """Add a row to the table.

        Raises:
            ValueError: If value count doesn't match column count
        """
        if len(values) != len(self.columns):
            raise ValueError(f"Expected {len(self.columns)} values, got {len(values)}")

        str_values = []
        for i, val in enumerate(values):
            str_val = str(val) if val is not None else "-"
            str_val = truncate_text(str_val, self.max_width)
            str_values.append(str_val)
            if len(str_val) > self.column_widths[i]:
                self.column_widths[i] = len(str_val)

        self.rows.append(str_values)

    def _format_row(self, values: List[str], is_header: bool = False) -> str:
        cells = []
        for i, val in enumerate(values):
            width = self.column_widths[i]
            # Amounts and years right-aligned, text left-aligned
            if not is_header and (val.startswith("$") or val.lstrip("-").isdigit()):
                cells.append(val.rjust(width))
            else:
                cells.append(val.ljust(width))
        return "  ".join(cells).rstrip()

    def format(self) -> str:
        """Render header, separator and rows as one string."""
        lines = [self._format_row(self.columns, is_header=True)]
        lines.append("  ".join("-" * w for w in self.column_widths))
        lines.extend(self._format_row(row) for row in self.rows)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()
