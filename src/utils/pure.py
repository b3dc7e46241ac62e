import math
from typing import List, Literal, Optional


def format_money(amount: float) -> str:
    """
    Two-decimal presentation of an amount kept at full precision internally.
    Values that round to zero never show as "-0.00".
    """
    rounded = round(amount, 2)
    if rounded == 0:
        rounded = 0.0
    return f"${rounded:.2f}"


def parse_amount(text: Optional[str]) -> Optional[float]:
    """
    Parse an operator-typed amount such as "20", "$11.34" or " 5.5 ".
    Returns None for empty, non-numeric or negative input.
    """
    if text is None:
        return None
    cleaned = str(text).strip().lstrip("$").replace(",", "").strip()
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_percent(text: Optional[str]) -> Optional[float]:
    """'8.25' (percent) -> 0.0825 (fraction). None when not a valid amount."""
    value = parse_amount(text)
    if value is None:
        return None
    return value / 100


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table, used for the checkout summary.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of cell values.
        aligns: 'l', 'c' or 'r' per column. Defaults to left for the first
                column and right for the rest (amount columns).

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [str(h) for h in headers]
    num_cols = len(headers)
    if aligns is None:
        aligns = ["l"] + ["r"] * (num_cols - 1)
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}

    def line(cells) -> str:
        # pipes inside product names would split the cell
        return "| " + " | ".join(str(c).replace("|", "\\|") for c in cells) + " |"

    return "\n".join(
        [
            line(headers),
            "| " + " | ".join(align_map[a] for a in aligns) + " |",
            *(line(row) for row in rows),
        ]
    )
