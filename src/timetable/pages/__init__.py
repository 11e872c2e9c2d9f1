"""Heuristic readers for the campus portal's HTML pages."""

from src.timetable.pages.document import Document
from src.timetable.pages.login import find_credential_fields, find_token
from src.timetable.pages.navigation import extract_flow_key, find_menu_link
from src.timetable.pages.timetable import find_ics_url

__all__ = [
    "Document",
    "find_token",
    "find_credential_fields",
    "find_menu_link",
    "extract_flow_key",
    "find_ics_url",
]
