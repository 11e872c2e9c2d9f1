"""Login form readers: anti-forgery token and credential field names.

The portal renders its login form dynamically, so the username/password input
names are inferred from input types rather than hard-coded.
"""

from typing import NamedTuple

from src.timetable.logging import get_logger
from src.timetable.pages.document import Document

log = get_logger(__name__)

TOKEN_FIELD = "ajax-token"

# Placeholder names submitted when the form exposes no matching input.
FALLBACK_USERNAME_FIELD = "asdf"
FALLBACK_PASSWORD_FIELD = "fdsa"


class CredentialFields(NamedTuple):
    username: str
    password: str
    inferred: bool  # False if either name is a placeholder


def find_token(document: Document, field_name: str = TOKEN_FIELD) -> str | None:
    """Value of the named hidden token input, or None if absent or empty."""
    value = document.input_value(f"input[name='{field_name}']")
    return value or None


def find_credential_fields(document: Document) -> CredentialFields:
    """Infer the username and password input names from the login form.

    Inputs are scanned once in document order. The first type=password input
    names the password field; the first type=text or type=email input names
    the username field. Missing names fall back to placeholders and the
    result is marked as not inferred.
    """
    username: str | None = None
    password: str | None = None

    for element in document.select("input"):
        input_type = (Document.attr(element, "type") or "").lower()
        if input_type == "password" and password is None:
            password = Document.attr(element, "name")
        elif input_type in ("text", "email") and username is None:
            username = Document.attr(element, "name")

    inferred = bool(username) and bool(password)
    if not inferred:
        log.warning(
            "credential_fields_defaulted",
            username_found=bool(username),
            password_found=bool(password),
        )

    return CredentialFields(
        username=username or FALLBACK_USERNAME_FIELD,
        password=password or FALLBACK_PASSWORD_FIELD,
        inferred=inferred,
    )
