from datetime import date

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_assignment=True,
    )

    app_env: str = "dev"
    database_url: str

    # Meta WhatsApp Cloud API
    whatsapp_verify_token: str
    whatsapp_access_token: str
    whatsapp_phone_number_id: str
    whatsapp_app_secret: str | None = None  # App Secret for webhook signature verification
    whatsapp_dry_run: bool = True  # Set to False in production to enable real sending
    whatsapp_api_version: str = "v18.0"
    whatsapp_template_language: str = "hi"

    # Relay in front of the Meta webhook (X-Relay-Secret / X-Relay-Signature)
    relay_secret: str | None = None

    # Twilio WhatsApp
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None  # Our WhatsApp sender, E.164 without "whatsapp:"
    twilio_messaging_service_sid: str | None = None
    twilio_validate_signature: bool = False  # Check X-Twilio-Signature on /webhooks/twilio
    public_base_url: str | None = None  # External URL Twilio signs (behind proxies)
    twilio_greeting_content_sid: str = "HX46464a13f80adebb4b9d552d63acfae9"
    twilio_loan_content_sid: str = "HXcdbf14c73f068958f96efc216961834d"
    twilio_welcome_content_sid: str = "HX6a0f4a444898f786438781e8e2058a46"
    twilio_otp_content_sid: str = "HX53634524df0195b948e15de6fd0c602c"

    # Admin auth
    admin_api_key: str | None = (
        None  # Optional - if not set, ops endpoints are unprotected (dev mode)
    )
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Local business timezone (campaign days, opening hours)
    timezone: str = "Asia/Kolkata"

    # Scheduler and campaigns
    scheduler_enabled: bool = False  # Run APScheduler inside the API process
    location_reminder_enabled: bool = True
    support_reminder_enabled: bool = True
    support_reminder_hour: int = 10  # Local hour for the daily inactive-vendor scan
    inactive_days: int = 5  # No inbound message for this many days = inactive
    support_reminder_cooldown_hours: int = 24
    support_reply_window_hours: int = 24  # "yes" counts as a support reply within this window
    intent_reply_cooldown_seconds: int = 30  # Suppress repeated greeting/loan replies

    announcement_template: str | None = None
    announcement_start_date: date | None = None
    announcement_end_date: date | None = None
    announcement_hour: int = 9

    weekly_campaign_template: str | None = None
    weekly_campaign_cron: str = "0 15 * * 1"  # Mondays 15:00 local

    # OTP verification
    otp_expiry_minutes: int = 5
    otp_max_attempts: int = 5  # Wrong codes allowed per OTP before a new one must be requested

    # Rate limiting
    rate_limit_enabled: bool = True  # Enable rate limiting for auth, OTP and admin endpoints
    rate_limit_requests: int = 10  # Number of requests allowed per window
    rate_limit_window_seconds: int = 60  # Time window in seconds

    # SystemEvent retention
    system_event_retention_days: int = 90


# Settings will load from environment variables or .env file
# Required fields will raise ValidationError if missing (fail-fast)
settings = Settings()
