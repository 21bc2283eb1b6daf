"""
health_models.py: Pydantic models for page audits, Core Web Vitals and health scores.

Field names are snake_case in Python. Every model reads and writes the
camelCase JSON the crawler produces, so a crawler payload can be passed
straight into PageAuditSnapshot.model_validate().
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Rating = Literal["good", "needs-improvement", "poor"]
Grade = Literal["A", "B", "C", "D", "F"]


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ---------------------------------------------------------------------------
# Severity: the one ordering table shared by the engine and its consumers
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    NOTICE = "notice"


SEVERITY_ORDER: dict[str, int] = {
    Severity.CRITICAL.value: 0,
    Severity.WARNING.value: 1,
    Severity.NOTICE.value: 2,
}


def severity_rank(severity: Severity | str) -> int:
    return SEVERITY_ORDER[Severity(severity).value]


# ---------------------------------------------------------------------------
# Page audit: core crawl data
# ---------------------------------------------------------------------------

class MetaInfo(_Record):
    title: str = ""
    title_length: int = 0
    description: str = ""
    description_length: int = 0
    canonical: Optional[str] = None
    robots: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None


class HeadingInfo(_Record):
    tag: str                  # "h1", "h2", ...
    text: str = ""
    count: int = 1


class LinkInfo(_Record):
    url: str
    text: str = ""
    type: Literal["internal", "external"] = "internal"
    status_code: Optional[int] = None
    is_broken: Optional[bool] = None


class ImageInfo(_Record):
    src: str = ""
    alt: str = ""
    has_alt: bool = False
    format: Optional[str] = None
    has_lazy_loading: Optional[bool] = None


# ---------------------------------------------------------------------------
# Optional sub-records (None = not collected for this page)
# ---------------------------------------------------------------------------

class SchemaMarkup(_Record):
    types: list[str] = Field(default_factory=list)
    count: int = 0
    has_json_ld: bool = False
    has_microdata: bool = False


class SecurityHeaders(_Record):
    has_hsts: bool = Field(False, alias="hasHSTS")
    has_csp: bool = Field(False, alias="hasCSP")
    has_x_frame_options: bool = False
    has_x_content_type: bool = False
    has_referrer_policy: bool = False
    has_permissions_policy: bool = False
    score: int = Field(0, ge=0, le=6)   # count of the six headers present


class AccessibilityInfo(_Record):
    has_viewport: bool = False
    viewport_content: str = ""
    has_lang_attribute: bool = False
    lang_value: str = ""
    images_without_alt: int = 0
    total_images: int = 0
    form_inputs_without_label: int = 0


class ContentQuality(_Record):
    readability_grade: float = 0      # Flesch-Kincaid grade level
    avg_sentence_length: float = 0
    keyword_count: int = 0
    keyword_density: float = 0        # percentage
    has_keyword_in_title: bool = False
    has_keyword_in_h1: bool = False
    has_keyword_in_meta: bool = False


class SocialMeta(_Record):
    og_complete: bool = False         # title + description + image
    og_type: Optional[str] = None
    og_url: Optional[str] = None
    twitter_card: Optional[str] = None
    twitter_title: Optional[str] = None
    twitter_image: Optional[str] = None
    twitter_complete: bool = False


class IndexabilityInfo(_Record):
    is_indexable: bool = True
    robots_directive: str = ""
    has_noindex: bool = False
    has_nofollow: bool = False
    x_robots_tag: str = ""
    canonical_url: str = ""
    canonical_status: Literal["match", "mismatch", "missing"] = "match"
    has_redirect_chain: bool = False
    redirect_count: int = 0


class EEATSignals(_Record):
    has_author_info: bool = False
    has_about_page: bool = False
    has_contact_page: bool = False
    has_privacy_policy: bool = False
    has_terms_of_service: bool = False
    trust_score: int = 0
    signals: list[str] = Field(default_factory=list)
    same_as_links: list[str] = Field(default_factory=list)


class PageBudget(_Record):
    total_resource_count: int = 0
    script_count: int = 0
    stylesheet_count: int = 0
    total_transfer_size_kb: float = 0
    render_blocking_count: int = 0
    has_excessive_js: bool = False


class InternalLinkTopology(_Record):
    unique_internal_links: int = 0
    self_referencing: int = 0
    has_orphan_risk: bool = False
    max_link_depth: int = 0
    link_distribution: dict[str, int] = Field(default_factory=dict)


class ContentComprehensiveness(_Record):
    topic_coverage: list[str] = Field(default_factory=list)
    has_faq: bool = Field(False, alias="hasFAQ")
    has_table_of_contents: bool = False
    content_sections: int = 0
    estimated_read_time_min: float = 0
    entity_count: int = 0
    missing_topics: list[str] = Field(default_factory=list)


class RichResultEligibility(_Record):
    eligible: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)
    current_schema_types: list[str] = Field(default_factory=list)
    potential_ctr_boost: Literal["low", "medium", "high"] = Field("low", alias="potentialCTRBoost")


class PageAuditSnapshot(_Record):
    """Everything the crawler extracted from one page."""

    url: str
    final_url: str = ""
    status_code: int = 200
    meta: MetaInfo = Field(default_factory=MetaInfo)
    headings: list[HeadingInfo] = Field(default_factory=list)
    word_count: int = 0
    internal_links: list[LinkInfo] = Field(default_factory=list)
    external_links: list[LinkInfo] = Field(default_factory=list)
    images: list[ImageInfo] = Field(default_factory=list)
    has_robots_txt: bool = False
    has_sitemap: bool = False
    is_https: bool = False
    load_time_ms: float = 0
    crawled_at: Optional[int] = None
    has_canonical_mismatch: bool = False
    hreflang_tags: list[str] = Field(default_factory=list)
    broken_links: list[LinkInfo] = Field(default_factory=list)

    schema_markup: Optional[SchemaMarkup] = None
    security_headers: Optional[SecurityHeaders] = None
    accessibility: Optional[AccessibilityInfo] = None
    content_quality: Optional[ContentQuality] = None
    social_meta: Optional[SocialMeta] = None
    indexability: Optional[IndexabilityInfo] = None
    eeat: Optional[EEATSignals] = None
    page_budget: Optional[PageBudget] = None
    internal_link_topology: Optional[InternalLinkTopology] = None
    content_comprehensiveness: Optional[ContentComprehensiveness] = None
    rich_results: Optional[RichResultEligibility] = None

    def heading(self, tag: str) -> Optional[HeadingInfo]:
        """First heading inventory entry for `tag`, or None."""
        return next((h for h in self.headings if h.tag == tag), None)


class CoreWebVitalsSnapshot(_Record):
    performance_score: float = Field(ge=0, le=100)
    lcp: float = 0      # Largest Contentful Paint (ms)
    inp: float = 0      # Interaction to Next Paint (ms)
    cls: float = 0      # Cumulative Layout Shift
    fcp: float = 0      # First Contentful Paint (ms)
    si: float = 0       # Speed Index (ms)
    tbt: float = 0      # Total Blocking Time (ms)
    lcp_rating: Rating = "good"
    inp_rating: Rating = "good"
    cls_rating: Rating = "good"


# ---------------------------------------------------------------------------
# Health score output
# ---------------------------------------------------------------------------

class HealthIssue(_Record):
    severity: Severity
    category: str
    message: str
    recommendation: str


class HealthCategory(_Record):
    name: str
    score: int | float = Field(ge=0, le=100)
    max_score: int
    weighted_score: int | float
    issues: tuple[HealthIssue, ...] = ()


class HealthScoreResult(_Record):
    overall: int = Field(ge=0, le=100)
    grade: Grade
    categories: tuple[HealthCategory, ...]
    issues: tuple[HealthIssue, ...]

    def issues_with(self, severity: Severity | str) -> list[HealthIssue]:
        wanted = Severity(severity)
        return [i for i in self.issues if i.severity == wanted]


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

class Recommendation(_Record):
    priority: int               # 1 = highest
    title: str
    description: str
    effort: Literal["low", "medium", "high"]
    impact: Literal["low", "medium", "high"]
    category: Literal["content", "technical", "performance", "strategy"]
