from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class AnalyticsRules(BaseModel):
    enabled: bool = True
    session_inactivity_minutes: int = Field(30, gt=0)
    bot_patterns: list[str] = Field(default_factory=list)

class ProviderRule(BaseModel):
    name: str
    url_template: str

class GeolocationRules(BaseModel):
    enabled: bool = True
    ip_echo_url: str
    ip_echo_timeout_seconds: float = Field(5, gt=0)
    lookup_timeout_seconds: float = Field(5, gt=0)
    max_consecutive_failures: int = Field(3, ge=0)
    providers: list[ProviderRule]

class ReportingRules(BaseModel):
    display_timezone: str = "Europe/Paris"
    default_window_days: int = Field(30, gt=0)
    peak_hours_limit: int = Field(5, gt=0)
    marker_min_radius: float = 4
    marker_max_radius: float = 24

class DigestRules(BaseModel):
    window_hours: int = Field(24, gt=0)
    max_messages: int = Field(10, ge=0)
    excerpt_length: int = Field(100, gt=0)
    subject: str

class Rules(BaseModel):
    project: ProjectRules
    analytics: AnalyticsRules
    geolocation: GeolocationRules
    reporting: ReportingRules
    digest: DigestRules
