# =============================================================================
# SEO Health Engine: 15 Weighted Categories -> 0-100 Health Score
# =============================================================================
#
# Pure Python, no I/O. Turns one crawled page (PageAuditSnapshot) plus the
# optional Core Web Vitals into a weighted score, a letter grade and a
# severity-sorted issue list.
#
# - CATEGORY_RULES:    the 15 categories, in report order (weights sum to 100)
# - evaluate_category(): run a single category
# - analyze_health():  run all of them and aggregate
#
# Two scoring models:
#   DEDUCTIVE: start at 100, subtract per problem, floor at 0
#   ADDITIVE : start at 0, add per trust/depth signal, cap at 100
# =============================================================================

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from health_models import (
    SEVERITY_ORDER,
    CoreWebVitalsSnapshot,
    HealthCategory,
    HealthIssue,
    HealthScoreResult,
    PageAuditSnapshot,
    Severity,
)

logger = logging.getLogger("seo-health")

# ---------------------------------------------------------------------------
# Constants: thresholds shared by several rules
# ---------------------------------------------------------------------------

TITLE_MIN_CHARS = 30
TITLE_MAX_CHARS = 60
DESCRIPTION_MIN_CHARS = 120
DESCRIPTION_MAX_CHARS = 160

NEXT_GEN_IMAGE_FORMATS = ("webp", "avif", "svg")

# Bonus signals as the crawler spells them in EEATSignals.signals
SIGNAL_COPYRIGHT = "Copyright notice"
SIGNAL_ADDRESS = "Physical address present"
SIGNAL_SOCIAL_PROFILES = "Social media profiles linked"

GRADE_THRESHOLDS = (
    (90, "A"),
    (80, "B"),
    (65, "C"),
    (50, "D"),
)

# (severity, message, recommendation); the owning rule stamps its label on it
Finding = tuple[Severity, str, str]
CheckResult = tuple[float, list[Finding]]
CheckFn = Callable[[PageAuditSnapshot, Optional[CoreWebVitalsSnapshot]], CheckResult]


def round_half_up(value: float) -> int:
    """Round .5 upwards (builtin round() is banker's rounding)."""
    return math.floor(value + 0.5)


def _num(value: float) -> str:
    """Shortest display form: 250.0 -> '250', 13.5 -> '13.5'."""
    return f"{value:g}"


# ---------------------------------------------------------------------------
# Scoring strategies
# ---------------------------------------------------------------------------

class ScoringModel(str, Enum):
    DEDUCTIVE = "deductive"
    ADDITIVE = "additive"


class Weighting(str, Enum):
    LINEAR = "linear"     # score / 100 * weight
    ROUNDED = "rounded"   # round(score * weight) / 100


@dataclass(frozen=True)
class CategoryRule:
    name: str
    weight: int
    label: str
    scoring: ScoringModel
    weighting: Weighting
    check: CheckFn

    def evaluate(
        self,
        audit: PageAuditSnapshot,
        vitals: Optional[CoreWebVitalsSnapshot] = None,
    ) -> HealthCategory:
        raw, findings = self.check(audit, vitals)

        if self.scoring is ScoringModel.DEDUCTIVE:
            score = max(0, raw)
        else:
            score = min(100, raw)

        # Lighthouse scores arrive as floats; report whole numbers as ints
        if isinstance(score, float) and score.is_integer():
            score = int(score)

        if self.weighting is Weighting.ROUNDED:
            score = round_half_up(score)
            weighted = round_half_up(score * self.weight) / 100
        else:
            weighted = (score / 100) * self.weight

        issues = tuple(
            HealthIssue(severity=sev, category=self.label, message=msg, recommendation=rec)
            for sev, msg, rec in findings
        )
        return HealthCategory(
            name=self.name,
            score=score,
            max_score=self.weight,
            weighted_score=weighted,
            issues=issues,
        )


# ── RULE 1: Title Tag (7 points) ─────────────────────────────────────────────

def check_title_tag(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    findings: list[Finding] = []
    score = 100
    meta = audit.meta

    if not meta.title:
        return 0, [(
            Severity.CRITICAL,
            "Page is missing a title tag.",
            "Add a unique, descriptive <title> tag between 30-60 characters.",
        )]

    if meta.title_length < TITLE_MIN_CHARS:
        score -= 40
        findings.append((
            Severity.WARNING,
            f"Title tag is too short ({meta.title_length} chars).",
            "Expand the title to 30-60 characters for optimal display in SERPs.",
        ))
    elif meta.title_length > TITLE_MAX_CHARS:
        score -= 20
        findings.append((
            Severity.NOTICE,
            f"Title tag is too long ({meta.title_length} chars) and may be truncated.",
            "Keep titles under 60 characters to prevent truncation in search results.",
        ))
    return score, findings


# ── RULE 2: Meta Description (6 points) ─────────────────────────────────────

def check_meta_description(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    findings: list[Finding] = []
    score = 100
    meta = audit.meta

    if not meta.description:
        return 0, [(
            Severity.CRITICAL,
            "Page is missing a meta description.",
            "Add a compelling meta description between 120-160 characters.",
        )]

    if meta.description_length < DESCRIPTION_MIN_CHARS:
        score -= 30
        findings.append((
            Severity.WARNING,
            f"Meta description is short ({meta.description_length} chars).",
            "Expand description to 120-160 characters for maximum SERP visibility.",
        ))
    elif meta.description_length > DESCRIPTION_MAX_CHARS:
        score -= 15
        findings.append((
            Severity.NOTICE,
            f"Meta description may be truncated ({meta.description_length} chars).",
            "Keep description under 160 characters.",
        ))
    return score, findings


# ── RULE 3: Heading Structure (7 points) ────────────────────────────────────

def check_headings(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    findings: list[Finding] = []
    score = 100

    h1 = audit.heading("h1")
    if h1 is None:
        score -= 60
        findings.append((
            Severity.CRITICAL,
            "Page is missing an H1 heading.",
            "Add a single, descriptive H1 tag that includes your primary keyword.",
        ))
    elif h1.count > 1:
        score -= 30
        findings.append((
            Severity.WARNING,
            f"Multiple H1 tags found ({h1.count}).",
            "Use only one H1 per page for clear topic signaling.",
        ))

    if audit.heading("h2") is None:
        score -= 20
        findings.append((
            Severity.NOTICE,
            "No H2 headings found.",
            "Use H2 tags to structure content into sections for better readability and SEO.",
        ))
    return score, findings


# ── RULE 4: Image Optimization (6 points) ───────────────────────────────────

def check_images(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    findings: list[Finding] = []
    score = 100
    images = audit.images
    total = len(images)

    if total == 0:
        return 80, [(
            Severity.NOTICE,
            "No images found on the page.",
            "Add relevant images to improve engagement and provide visual context.",
        )]

    missing_alt = sum(1 for img in images if not img.has_alt)
    if missing_alt > 0:
        ratio = missing_alt / total
        score -= round_half_up(ratio * 60)
        findings.append((
            Severity.CRITICAL if ratio > 0.5 else Severity.WARNING,
            f"{missing_alt} of {total} images missing alt text.",
            "Add descriptive alt text to all images for accessibility and SEO.",
        ))

    # Only images with a known format can be judged; "WEBP" counts as webp
    legacy_format = sum(
        1 for img in images
        if img.format and img.format.lower() not in NEXT_GEN_IMAGE_FORMATS
    )
    if legacy_format > total * 0.5:
        score -= 15
        findings.append((
            Severity.NOTICE,
            f"{legacy_format} images not using next-gen formats (WebP/AVIF).",
            "Convert images to WebP or AVIF for smaller file sizes and faster loads.",
        ))

    not_lazy = sum(1 for img in images if not img.has_lazy_loading)
    if not_lazy > 3:
        score -= 10
        findings.append((
            Severity.NOTICE,
            f"{not_lazy} images without lazy loading.",
            'Add loading="lazy" to below-the-fold images to improve initial load time.',
        ))
    return score, findings


# ── RULE 5: Link Hygiene (7 points) ─────────────────────────────────────────

def check_links(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    findings: list[Finding] = []
    score = 100
    internal = len(audit.internal_links)
    broken = len(audit.broken_links)

    if internal == 0:
        score -= 40
        findings.append((
            Severity.WARNING,
            "No internal links found.",
            "Add internal links to key pages to distribute PageRank and aid navigation.",
        ))

    if broken > 0:
        score -= min(60, broken * 15)
        findings.append((
            Severity.CRITICAL,
            f"{broken} broken link(s) detected.",
            "Fix or remove broken links to preserve crawl budget and user experience.",
        ))

    if 0 < internal < 3:
        score -= 15
        findings.append((
            Severity.NOTICE,
            "Very few internal links on the page.",
            "Add more internal links (5+) to related content for better crawlability.",
        ))
    return score, findings


# ── RULE 6: Content Depth (10 points) ───────────────────────────────────────
# Discrete bands, not cumulative deductions.

def check_content_depth(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    words = audit.word_count

    if words < 100:
        return 10, [(
            Severity.CRITICAL,
            f"Very thin content ({words} words).",
            "Expand content to at least 300 words for basic SEO. Target 1,000+ for competitive keywords.",
        )]
    if words < 300:
        return 40, [(
            Severity.WARNING,
            f"Content is thin ({words} words).",
            "Target at least 300-500 words. Competitive keywords often require 1,000+.",
        )]
    if words < 600:
        return 65, [(
            Severity.NOTICE,
            f"Moderate content ({words} words).",
            "Consider expanding to 1,000+ words with supporting subtopics for competitive keywords.",
        )]
    if words < 1000:
        return 80, []
    return 100, []


# ── RULE 7: Performance / Core Web Vitals (13 points) ───────────────────────
# Score is the Lighthouse performance score; CWV ratings only add issues.

def check_performance(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    if vitals is None:
        return 50, [(
            Severity.NOTICE,
            "Core Web Vitals data unavailable.",
            "Configure the PageSpeed API key to get real performance metrics.",
        )]

    findings: list[Finding] = []
    if vitals.lcp_rating == "poor":
        findings.append((
            Severity.CRITICAL,
            f"LCP is poor ({vitals.lcp / 1000:.1f}s). Target: under 2.5s.",
            "Optimize largest content element: compress images, use CDN, reduce server response time.",
        ))
    elif vitals.lcp_rating == "needs-improvement":
        findings.append((
            Severity.WARNING,
            f"LCP needs improvement ({vitals.lcp / 1000:.1f}s).",
            "Optimize images and reduce main thread blocking to improve LCP.",
        ))

    if vitals.cls_rating == "poor":
        findings.append((
            Severity.CRITICAL,
            f"CLS is poor ({vitals.cls:.3f}). Target: under 0.1.",
            "Add explicit dimensions to images/ads and avoid inserting content above existing content.",
        ))

    if vitals.inp_rating == "poor":
        findings.append((
            Severity.WARNING,
            f"INP is poor ({_num(vitals.inp)}ms). Target: under 200ms.",
            "Reduce JavaScript execution time and break up long tasks.",
        ))
    return vitals.performance_score, findings


# ── RULE 8: Security & Best Practices (8 points) ────────────────────────────

def check_security(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    findings: list[Finding] = []
    score = 100

    if not audit.is_https:
        score -= 50
        findings.append((
            Severity.CRITICAL,
            "Site is not using HTTPS.",
            "Install an SSL certificate. HTTPS is a confirmed ranking signal.",
        ))

    if not audit.has_robots_txt:
        score -= 15
        findings.append((
            Severity.WARNING,
            "No robots.txt file found.",
            "Add a robots.txt to guide crawler behavior and protect sensitive paths.",
        ))

    if not audit.has_sitemap:
        score -= 15
        findings.append((
            Severity.WARNING,
            "No sitemap.xml found.",
            "Create and submit a sitemap.xml to help search engines discover your pages.",
        ))

    if not audit.meta.canonical:
        score -= 10
        findings.append((
            Severity.NOTICE,
            "No canonical URL tag defined.",
            'Add a <link rel="canonical"> tag to prevent duplicate content issues.',
        ))

    headers = audit.security_headers
    if headers is not None and headers.score < 3:
        score -= 10
        findings.append((
            Severity.WARNING,
            f"Only {headers.score}/6 security headers present.",
            "Add HSTS, CSP, X-Frame-Options, X-Content-Type-Options, Referrer-Policy, "
            "and Permissions-Policy headers.",
        ))

    if audit.has_canonical_mismatch:
        score -= 10
        findings.append((
            Severity.WARNING,
            "Canonical URL does not match the actual page URL.",
            "Ensure the canonical tag points to the correct, preferred URL of this page.",
        ))
    return score, findings


# ── RULE 9: Schema & Structured Data (5 points) ─────────────────────────────

def check_schema(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    schema = audit.schema_markup
    if schema is None:
        return 30, [(
            Severity.WARNING,
            "Schema data not available.",
            "Add JSON-LD structured data to help search engines understand your content.",
        )]

    if not schema.has_json_ld and not schema.has_microdata:
        return 20, [(
            Severity.WARNING,
            "No structured data (JSON-LD or Microdata) found.",
            "Add JSON-LD schema markup (Organization, WebPage, FAQ, etc.) to earn rich snippets "
            "in search results.",
        )]

    findings: list[Finding] = []
    score = 100
    if len(schema.types) < 2:
        score -= 30
        findings.append((
            Severity.NOTICE,
            f"Only {len(schema.types)} schema type(s) detected: {', '.join(schema.types) or 'none'}.",
            "Add additional schema types (e.g., Organization + WebPage + BreadcrumbList) for richer "
            "search presence.",
        ))

    if not schema.has_json_ld and schema.has_microdata:
        score -= 15
        findings.append((
            Severity.NOTICE,
            "Using Microdata instead of JSON-LD.",
            "Google recommends JSON-LD as the preferred format for structured data.",
        ))
    return score, findings


# ── RULE 10: Social Media Readiness (4 points) ──────────────────────────────

def check_social(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    social = audit.social_meta
    if social is None:
        return 30, []

    findings: list[Finding] = []
    score = 100
    if not social.og_complete:
        score -= 40
        meta = audit.meta
        missing = [
            tag for tag, value in (
                ("og:title", meta.og_title),
                ("og:description", meta.og_description),
                ("og:image", meta.og_image),
            )
            if not value
        ]
        findings.append((
            Severity.WARNING,
            f"Incomplete Open Graph tags. Missing: {', '.join(missing)}.",
            "Add og:title, og:description, and og:image for optimal social media sharing.",
        ))

    if not social.twitter_complete:
        score -= 30
        findings.append((
            Severity.NOTICE,
            "Missing or incomplete Twitter Card tags.",
            "Add twitter:card, twitter:title, and twitter:image for Twitter/X sharing previews.",
        ))
    return score, findings


# ── RULE 11: Accessibility (5 points) ───────────────────────────────────────

def check_accessibility(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    a11y = audit.accessibility
    if a11y is None:
        return 40, []

    findings: list[Finding] = []
    score = 100

    if not a11y.has_viewport:
        score -= 40
        findings.append((
            Severity.CRITICAL,
            "Missing viewport meta tag.",
            'Add <meta name="viewport" content="width=device-width, initial-scale=1"> for mobile '
            "responsiveness.",
        ))

    if not a11y.has_lang_attribute:
        score -= 25
        findings.append((
            Severity.WARNING,
            "Missing lang attribute on <html> element.",
            'Add lang="en" (or appropriate language) to help screen readers and search engines.',
        ))

    if a11y.total_images > 0 and a11y.images_without_alt > 0:
        coverage = (a11y.total_images - a11y.images_without_alt) / a11y.total_images * 100
        if coverage < 80:
            score -= 20
            findings.append((
                Severity.WARNING,
                f"Alt text coverage: {round_half_up(coverage)}% "
                f"({a11y.images_without_alt} images missing alt).",
                "Add descriptive alt text to all images. This is critical for screen readers and "
                "image SEO.",
            ))

    if a11y.form_inputs_without_label > 0:
        score -= 15
        findings.append((
            Severity.NOTICE,
            f"{a11y.form_inputs_without_label} form input(s) without associated labels.",
            "Add <label> elements or aria-label attributes to all form inputs for accessibility.",
        ))
    return score, findings


# ── RULE 12: Content Quality: readability & keyword use (4 points) ─────────

def check_content_quality(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    quality = audit.content_quality
    if quality is None:
        return 50, []

    findings: list[Finding] = []
    score = 100

    if quality.readability_grade > 14:
        score -= 25
        findings.append((
            Severity.WARNING,
            f"Reading level is very high (grade {_num(quality.readability_grade)}). "
            f"Avg sentence: {_num(quality.avg_sentence_length)} words.",
            "Simplify language. Target grade 8-12 for most web content. Use shorter sentences and "
            "simpler words.",
        ))
    elif quality.readability_grade > 12:
        score -= 10
        findings.append((
            Severity.NOTICE,
            f"Reading level is moderately high (grade {_num(quality.readability_grade)}).",
            "Consider simplifying some sections for broader audience appeal.",
        ))

    if not quality.has_keyword_in_title and quality.keyword_count > 0:
        score -= 25
        findings.append((
            Severity.WARNING,
            "Target keyword not found in the title tag.",
            "Include your target keyword near the beginning of the title tag for maximum SEO impact.",
        ))

    if not quality.has_keyword_in_h1 and quality.keyword_count > 0:
        score -= 20
        findings.append((
            Severity.NOTICE,
            "Target keyword not found in the H1 heading.",
            "Include your target keyword in the H1 heading to signal topical relevance.",
        ))

    # Density is meaningless on near-empty pages
    if audit.word_count > 100:
        if quality.keyword_density == 0:
            score -= 25
            findings.append((
                Severity.WARNING,
                "Target keyword not found in page content.",
                "Naturally incorporate your target keyword in the body content (aim for 1-3% density).",
            ))
        elif quality.keyword_density > 5:
            score -= 20
            findings.append((
                Severity.WARNING,
                f"Keyword density is high ({_num(quality.keyword_density)}%). "
                "Risk of keyword stuffing.",
                "Reduce keyword density to 1-3%. Use natural language variations and LSI keywords.",
            ))
    return score, findings


# ── RULE 13: Indexability (7 points) ────────────────────────────────────────

def check_indexability(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    idx = audit.indexability
    if idx is None:
        return 50, []

    findings: list[Finding] = []
    score = 100

    if idx.has_noindex:
        score -= 100
        findings.append((
            Severity.CRITICAL,
            "Page has a noindex directive. Google will NOT index this page.",
            "Remove the noindex tag from meta robots or X-Robots-Tag header if you want this page "
            "to rank.",
        ))

    if idx.has_nofollow:
        score -= 20
        findings.append((
            Severity.WARNING,
            "Page has a nofollow directive. Links on this page won't pass PageRank.",
            "Remove nofollow unless you intentionally want to prevent link equity flow from this page.",
        ))

    if idx.canonical_status == "missing":
        score -= 15
        findings.append((
            Severity.WARNING,
            "No canonical URL specified.",
            'Add a <link rel="canonical"> tag to prevent duplicate content issues and consolidate '
            "ranking signals.",
        ))
    elif idx.canonical_status == "mismatch":
        score -= 30
        findings.append((
            Severity.CRITICAL,
            f'Canonical URL mismatch: canonical points to "{idx.canonical_url}" but the page URL '
            "is different.",
            "Fix the canonical tag to point to the correct URL. Mismatched canonicals confuse "
            "Google about which URL to index.",
        ))

    if idx.has_redirect_chain:
        score -= 10
        findings.append((
            Severity.WARNING,
            "URL redirects detected. Redirect chains waste crawl budget and dilute PageRank.",
            "Update links to point directly to the final URL to eliminate redirect hops.",
        ))
    return score, findings


# ── RULE 14: E-E-A-T Signals (6 points) ─────────────────────────────────────

def check_eeat(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    eeat = audit.eeat
    if eeat is None:
        return 0, []

    findings: list[Finding] = []
    score = 0

    if eeat.has_author_info:
        score += 20
    else:
        findings.append((
            Severity.WARNING,
            "No author information detected.",
            "Add author bylines with credentials/bio to demonstrate expertise. Google values "
            "identifiable authors.",
        ))

    if eeat.has_about_page:
        score += 15
    else:
        findings.append((
            Severity.WARNING,
            "No link to an About page found.",
            "Add an About page that details your organization's expertise, history, and mission.",
        ))

    if eeat.has_contact_page:
        score += 15
    else:
        findings.append((
            Severity.NOTICE,
            "No link to a Contact page found.",
            "Add a Contact page with email, phone, and physical address for trustworthiness.",
        ))

    if eeat.has_privacy_policy:
        score += 15
    else:
        findings.append((
            Severity.WARNING,
            "No Privacy Policy linked.",
            "Add a Privacy Policy page to build trust and comply with regulations (GDPR, CCPA).",
        ))

    if eeat.has_terms_of_service:
        score += 10

    # Bonus signals never produce issues
    if SIGNAL_COPYRIGHT in eeat.signals:
        score += 5
    if SIGNAL_ADDRESS in eeat.signals:
        score += 10
    if SIGNAL_SOCIAL_PROFILES in eeat.signals:
        score += 10
    return score, findings


# ── RULE 15: Content Comprehensiveness (5 points) ───────────────────────────

def check_comprehensiveness(audit: PageAuditSnapshot, vitals=None) -> CheckResult:
    cc = audit.content_comprehensiveness
    if cc is None:
        return 0, []

    findings: list[Finding] = []
    score = 0

    if cc.content_sections >= 5:
        score += 25
    elif cc.content_sections >= 3:
        score += 15
    else:
        score += 5
        findings.append((
            Severity.WARNING,
            f"Only {cc.content_sections} content section(s) found. Top-ranking pages typically "
            "have 5+ sections.",
            "Add more H2-based sections covering related subtopics to demonstrate comprehensive "
            "authority.",
        ))

    topics = len(cc.topic_coverage)
    if topics >= 8:
        score += 20
    elif topics >= 4:
        score += 10
    else:
        findings.append((
            Severity.NOTICE,
            f"Only {topics} distinct topic(s) covered in headings.",
            "Expand content with subheadings covering FAQs, use cases, comparisons, and related "
            "concepts.",
        ))

    if cc.has_faq:
        score += 15
    else:
        findings.append((
            Severity.NOTICE,
            "No FAQ section detected.",
            'Add a FAQ section to target "People Also Ask" boxes and improve featured snippet '
            "eligibility.",
        ))

    if cc.has_table_of_contents:
        score += 10

    if cc.entity_count >= 10:
        score += 15
    elif cc.entity_count >= 5:
        score += 8

    if cc.estimated_read_time_min >= 5:
        score += 15
    elif cc.estimated_read_time_min >= 3:
        score += 8
    else:
        findings.append((
            Severity.NOTICE,
            f"Estimated read time is only {_num(cc.estimated_read_time_min)} minute(s). "
            "Top-ranking content averages 5-7 minutes.",
            "Expand content depth with examples, data, and detailed explanations.",
        ))
    return score, findings


# ---------------------------------------------------------------------------
# Category registry: order here is the order of the report
# ---------------------------------------------------------------------------

_D, _A = ScoringModel.DEDUCTIVE, ScoringModel.ADDITIVE
_LIN, _RND = Weighting.LINEAR, Weighting.ROUNDED

CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule("Title Tag",                 7, "Title Tag",                 _D, _LIN, check_title_tag),
    CategoryRule("Meta Description",          6, "Meta Description",          _D, _LIN, check_meta_description),
    CategoryRule("Heading Structure",         7, "Headings",                  _D, _LIN, check_headings),
    CategoryRule("Image Optimization",        6, "Images",                    _D, _LIN, check_images),
    CategoryRule("Link Hygiene",              7, "Links",                     _D, _LIN, check_links),
    CategoryRule("Content Depth",            10, "Content",                   _D, _LIN, check_content_depth),
    CategoryRule("Performance",              13, "Performance",               _D, _LIN, check_performance),
    CategoryRule("Security & Best Practices", 8, "Security",                  _D, _LIN, check_security),
    CategoryRule("Schema & Structured Data",  5, "Schema",                    _D, _LIN, check_schema),
    CategoryRule("Social Media Readiness",    4, "Social",                    _D, _LIN, check_social),
    CategoryRule("Accessibility",             5, "Accessibility",             _D, _LIN, check_accessibility),
    CategoryRule("Content Quality",           4, "Content Quality",           _D, _LIN, check_content_quality),
    CategoryRule("Indexability",              7, "Indexability",              _D, _RND, check_indexability),
    CategoryRule("E-E-A-T Signals",           6, "E-E-A-T",                   _A, _RND, check_eeat),
    CategoryRule("Content Comprehensiveness", 5, "Content Comprehensiveness", _A, _RND, check_comprehensiveness),
)

TOTAL_WEIGHT = sum(rule.weight for rule in CATEGORY_RULES)
assert TOTAL_WEIGHT == 100, f"category weights sum to {TOTAL_WEIGHT}, expected 100"

_RULES_BY_NAME = {rule.name: rule for rule in CATEGORY_RULES}


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def get_grade(score: float) -> str:
    for floor_score, grade in GRADE_THRESHOLDS:
        if score >= floor_score:
            return grade
    return "F"


def evaluate_category(
    name: str,
    audit: PageAuditSnapshot,
    vitals: Optional[CoreWebVitalsSnapshot] = None,
) -> HealthCategory:
    """Score a single category by name. Unknown names raise KeyError."""
    return _RULES_BY_NAME[name].evaluate(audit, vitals)


def analyze_health(
    audit: PageAuditSnapshot,
    vitals: Optional[CoreWebVitalsSnapshot] = None,
) -> HealthScoreResult:
    """
    Score a page across all 15 categories.
    Returns: overall (0-100), grade, per-category breakdown, issues sorted
    critical -> warning -> notice (category order kept within a severity).
    """
    categories = tuple(rule.evaluate(audit, vitals) for rule in CATEGORY_RULES)

    overall = round_half_up(sum(c.weighted_score for c in categories))
    grade = get_grade(overall)

    all_issues = [issue for c in categories for issue in c.issues]
    # sorted() is stable, so same-severity issues keep category order
    all_issues = sorted(all_issues, key=lambda i: SEVERITY_ORDER[i.severity.value])

    logger.debug(
        f"Health score for {audit.url}: {overall}/100 ({grade}), {len(all_issues)} issues"
    )
    return HealthScoreResult(
        overall=overall,
        grade=grade,
        categories=categories,
        issues=tuple(all_issues),
    )
