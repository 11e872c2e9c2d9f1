"""Portal client configuration loaded from environment variables.

Defaults target the HISinOne campus portal of the University of Regensburg.
"""

from urllib.parse import urljoin, urlsplit

from pydantic import Field
from pydantic_settings import BaseSettings


class PortalConfig(BaseSettings):
    """Portal client configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Campus portal (HISinOne, no API exists)
    portal_url: str = Field(
        default="https://campusportal.ur.de",
        description="Base origin of the campus portal",
    )
    start_path: str = Field(
        default="/qisserver/pages/cs/sys/portal/hisinoneStartPage.faces",
        description="Start page; serves the login form and the post-login landing page",
    )
    login_path: str = Field(
        default="/qisserver/rds?state=user&type=1&category=auth.login",
        description="Login form POST target",
    )
    timetable_path: str = Field(
        default="/qisserver/pages/plan/individualTimetable.xhtml",
        description="Individual timetable module address",
    )
    flow_id: str = Field(
        default="individualTimetableSchedule-flow",
        description="Navigation flow identifier of the timetable module",
    )

    # Credentials
    portal_user: str = Field(default="", description="Campus portal username")
    portal_password: str = Field(default="", description="Campus portal password")

    # HTTP settings
    request_timeout: float = Field(
        default=60.0,
        description="Blanket timeout in seconds applied to every request",
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:128.0) "
            "Gecko/20100101 Firefox/128.0"
        ),
        description="User-Agent header sent with every request",
    )
    accept_language: str = Field(
        default="en-US,en;q=0.5",
        description="Accept-Language header sent with every request",
    )

    # Discovery behavior
    require_credential_fields: bool = Field(
        default=True,
        description="Fail instead of submitting placeholder login field names",
    )
    debug_dump_dir: str | None = Field(
        default=None,
        description="Directory for timetable page dumps when no calendar URL is found",
    )

    # Caller-level resilience
    retry_attempts: int = Field(
        default=1,
        ge=1,
        description="Whole-pipeline attempts made by runner.fetch_timetable",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def start_url(self) -> str:
        return urljoin(self.portal_url, self.start_path)

    @property
    def login_url(self) -> str:
        return urljoin(self.portal_url, self.login_path)

    @property
    def timetable_url(self) -> str:
        return urljoin(self.portal_url, self.timetable_path)

    @property
    def origin(self) -> str:
        parts = urlsplit(self.portal_url)
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def cookie_domain(self) -> str:
        return urlsplit(self.portal_url).hostname or ""


# Singleton pattern
_config: PortalConfig | None = None


def get_config() -> PortalConfig:
    """Get the portal configuration singleton.

    Returns:
        PortalConfig: Portal configuration instance
    """
    global _config
    if _config is None:
        _config = PortalConfig()
    return _config
