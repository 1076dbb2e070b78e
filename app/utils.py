# app/utils.py
from __future__ import annotations

import datetime as dt
from io import BytesIO
from typing import List

import pandas as pd
from starlette.responses import StreamingResponse

# open-ended assignments are treated as running this long past "today"
OPEN_END_DAYS = 3650


# -------------------------
# Date parsing
# -------------------------
def parse_any_date(value):
    """Accept date/datetime objects, ISO timestamps, yyyy-mm-dd / dd-mm-yyyy / dd/mm/yyyy / yyyy/mm/dd."""
    if value in (None, "", "nan"):
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value

    s = str(value).strip()
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return dt.datetime.strptime(s, fmt).date()
        except ValueError:
            pass
    try:  # ISO timestamps, e.g. 2024-03-01T00:00:00.000Z
        return dt.datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


# -------------------------
# Date arithmetic
# -------------------------
def add_days(day: dt.date, days: int) -> dt.date:
    return day + dt.timedelta(days=days)


def start_of_month(day: dt.date) -> dt.date:
    return day.replace(day=1)


def end_of_month(day: dt.date) -> dt.date:
    first_next = (day.replace(day=28) + dt.timedelta(days=4)).replace(day=1)
    return first_next - dt.timedelta(days=1)


def start_of_week(day: dt.date) -> dt.date:
    # weeks start on Sunday
    return day - dt.timedelta(days=(day.weekday() + 1) % 7)


def end_of_week(day: dt.date) -> dt.date:
    return start_of_week(day) + dt.timedelta(days=6)


def days_between(start: dt.date, end: dt.date) -> List[dt.date]:
    out = []
    d = start
    while d <= end:
        out.append(d)
        d += dt.timedelta(days=1)
    return out


# -------------------------
# Excel download
# -------------------------
def excel_response(df: pd.DataFrame, filename: str) -> StreamingResponse:
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, index=False)
    buf.seek(0)
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
