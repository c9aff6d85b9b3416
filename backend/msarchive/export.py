"""
CSV export of the public incident dataset.
"""
import csv
import io
from datetime import date, datetime
from typing import Iterable, Optional

from msarchive.models import Incident

# (attribute, header) in column order
CSV_COLUMNS = (
    ("id", "ID"),
    ("date", "Date"),
    ("city", "City"),
    ("state", "State"),
    ("location_type", "Location Type"),
    ("fatalities", "Fatalities"),
    ("injuries", "Injuries"),
    ("context", "Context"),
    ("description", "Description"),
    ("involves_children", "Involves Children"),
    ("hate_crime", "Hate Crime"),
    ("last_verified_at", "Last Verified"),
)


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def incidents_to_csv(incidents: Iterable[Incident]) -> str:
    """
    Render incidents as CSV text. Fields holding a quote, comma or line
    break are quoted with inner quotes doubled, so csv.reader parses the
    output back into the same values.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow([header for _, header in CSV_COLUMNS])
    for incident in incidents:
        writer.writerow([_cell(getattr(incident, attr)) for attr, _ in CSV_COLUMNS])
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"msarchive_incidents_{today.isoformat()}.csv"
