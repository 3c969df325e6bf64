"""
CSV export of the raw visit log.
"""

from typing import Sequence

from .models import VisitEvent


def _cell(value) -> str:
    # strings with a comma get quoted; embedded quotes are left as they are
    if isinstance(value, str) and "," in value:
        return f'"{value}"'
    return str(value)


def events_to_csv(events: Sequence[VisitEvent]) -> str:
    """
    Header from the first record's fields, then one line per record.
    Records without timeOnPage simply have one value fewer.
    """
    if not events:
        return ""
    records = [e.to_dict() for e in events]
    lines = [",".join(records[0].keys())]
    for record in records:
        lines.append(",".join(_cell(v) for v in record.values()))
    return "\n".join(lines)
