"""Index selection — pick the indices to search from their embedded dates."""

import logging
import re
from datetime import date, datetime

from logstasher.errors import DateParseError, IndexSelectionError

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"


def extract_ymd_date(text: str, separator: str) -> date:
    """Return the first YYYY<sep>MM<sep>DD date found in *text*.

    Index names use ``.`` as separator (``logstash-2024.01.31``), dates given
    on the command line use ``-``.

    Raises DateParseError if there is no such run or it is not a valid date.
    """
    sep = re.escape(separator)
    match = re.search(rf"\d{{4}}{sep}\d{{2}}{sep}\d{{2}}", text)
    if not match:
        raise DateParseError(f"Failed to extract date: {text!r}")
    fmt = separator.join(("%Y", "%m", "%d"))
    try:
        return datetime.strptime(match.group(0), fmt).date()
    except ValueError as exc:
        raise DateParseError(f"Failed parsing date {match.group(0)!r}: {exc}") from exc


def find_last_index(indices: list[str], pattern: str) -> str:
    """Return the lexicographically greatest index name matching *pattern*."""
    regex = re.compile(pattern)
    matching = [idx for idx in indices if regex.search(idx)]
    if not matching:
        raise IndexSelectionError(f"No index matches pattern {pattern!r}")
    return max(matching)


def find_indices_for_date_range(indices: list[str], pattern: str,
                                start_date: str, end_date: str) -> list[str]:
    """Return matching indices whose embedded date lies in [start, end].

    Both ends are inclusive and the input order is preserved.
    """
    start = extract_ymd_date(start_date, "-")
    end = extract_ymd_date(end_date, "-")
    regex = re.compile(pattern)
    result = []
    for idx in indices:
        if not regex.search(idx):
            continue
        if start <= extract_ymd_date(idx, ".") <= end:
            result.append(idx)
    return result


def select_indices(indices: list[str], pattern: str, after_date: str = "",
                   before_date: str = "", today: date | None = None) -> list[str]:
    """Compute the ordered list of indices a query should run against.

    Without date bounds only the newest index is searched. With bounds, every
    matching index inside the effective calendar range is returned.
    """
    if not after_date and not before_date:
        return [find_last_index(indices, pattern)]

    start_date = after_date
    end_date = before_date
    if not start_date and end_date:
        last_index_date = extract_ymd_date(find_last_index(indices, pattern), ".")
        if last_index_date < extract_ymd_date(end_date, "-"):
            start_date = last_index_date.strftime(DATE_FORMAT)
        else:
            start_date = end_date
    if not end_date:
        end_date = (today or date.today()).strftime(DATE_FORMAT)

    logger.debug("Selecting indices between %s and %s", start_date, end_date)
    selected = find_indices_for_date_range(indices, pattern, start_date, end_date)
    if not selected:
        raise IndexSelectionError(
            f"No index matching {pattern!r} between {start_date} and {end_date}"
        )
    return selected
