from datetime import date
from typing import Optional

from fastapi import Request

from app.store import FleetStore


def get_store(request: Request) -> FleetStore:
    return request.app.state.store


def get_today(on: Optional[date] = None) -> date:
    # ?on=YYYY-MM-DD evaluates the board as of another day
    return on or date.today()
