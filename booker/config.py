from dataclasses import dataclass

from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class PortalConfig:
    """Explicit portal configuration handed to every browser-side component."""

    base_url: str
    landing_path: str
    username: str
    password: str
    timezone: str = "America/Vancouver"
    headless: bool = True
    chromedriver_path: str = ""
    login_timeout_seconds: float = 60.0
    redirect_timeout_seconds: float = 60.0
    step_timeout_seconds: float = 15.0
    overlay_timeout_seconds: float = 3.0
    idp_link_timeout_seconds: float = 10.0
    settle_quiet_seconds: float = 1.0
    poll_interval_seconds: float = 0.25
    max_resources: int = 10
    capture_diagnostics: bool = False

    @property
    def landing_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.landing_path.lstrip('/')}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)


class Settings(BaseSettings):
    port: int = 8080
    log_level: str = "INFO"

    booker_api_token: str = ""

    portal_base_url: str = "https://ubc.perfectmind.com"
    portal_landing_path: str = "/24063/Clients/BookMe4FacilityList/List"
    portal_username: str = ""
    portal_password: str = ""
    portal_timezone: str = "America/Vancouver"

    headless: bool = True
    chromedriver_path: str = ""
    login_timeout_seconds: float = 60.0
    redirect_timeout_seconds: float = 60.0
    step_timeout_seconds: float = 15.0
    overlay_timeout_seconds: float = 3.0
    idp_link_timeout_seconds: float = 10.0
    settle_quiet_seconds: float = 1.0
    poll_interval_seconds: float = 0.25
    max_resources: int = 10
    capture_diagnostics: bool = False

    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    smtp_host: str = ""
    smtp_port: int = 465
    smtp_user: str = ""
    smtp_password: str = ""
    email_from: str = ""
    email_to: str = ""

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def portal_config(self) -> PortalConfig:
        """Build the explicit configuration value used by the browser components."""
        return PortalConfig(
            base_url=self.portal_base_url,
            landing_path=self.portal_landing_path,
            username=self.portal_username,
            password=self.portal_password,
            timezone=self.portal_timezone,
            headless=self.headless,
            chromedriver_path=self.chromedriver_path,
            login_timeout_seconds=self.login_timeout_seconds,
            redirect_timeout_seconds=self.redirect_timeout_seconds,
            step_timeout_seconds=self.step_timeout_seconds,
            overlay_timeout_seconds=self.overlay_timeout_seconds,
            idp_link_timeout_seconds=self.idp_link_timeout_seconds,
            settle_quiet_seconds=self.settle_quiet_seconds,
            poll_interval_seconds=self.poll_interval_seconds,
            max_resources=self.max_resources,
            capture_diagnostics=self.capture_diagnostics,
        )

    @property
    def smtp_ready(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.email_from)


settings = Settings()
