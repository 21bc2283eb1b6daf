# =============================================================================
# SEO Advisor: Prioritized Recommendations
# =============================================================================
#
# - generate_rule_based_advice(): deterministic top-5 advice from crawl data
# - generate_recommendations(): Claude pass with rule-based fallback
# - build_audit_summary(): plain-text audit digest fed to Claude
#
# The Claude caller is injected (same signature as main.call_claude) to
# avoid circular imports with main.py.
# =============================================================================

import logging
from typing import Any, Callable, Coroutine, Optional

from pydantic import ValidationError

from health_models import (
    CoreWebVitalsSnapshot,
    HealthScoreResult,
    PageAuditSnapshot,
    Recommendation,
)

logger = logging.getLogger("seo-health")

ClaudeCaller = Callable[..., Coroutine[Any, Any, Any]]

MAX_RECOMMENDATIONS = 5

ADVISOR_SYSTEM = "You are a Senior SEO Strategist. Respond with valid JSON only."

ADVISOR_PROMPT = """Based on this site audit data, provide exactly 5 prioritized, actionable strategies to improve SEO rankings. Be specific and reference exact metrics from the data.

AUDIT DATA:
{audit_summary}

Respond ONLY with a valid JSON array. Each item must have:
- "priority" (number 1-5, 1 = most important)
- "title" (short action title)
- "description" (2-3 sentences with specific, metric-driven advice)
- "effort" ("low", "medium", or "high")
- "impact" ("low", "medium", or "high")
- "category" ("content", "technical", "performance", or "strategy")

Example format:
[{{"priority":1,"title":"...","description":"...","effort":"low","impact":"high","category":"content"}}]"""


def _rec(title: str, description: str, effort: str, impact: str, category: str) -> dict:
    return {
        "title": title,
        "description": description,
        "effort": effort,
        "impact": impact,
        "category": category,
    }


def _finalize(items: list[dict]) -> list[Recommendation]:
    """Keep the top 5 and renumber priorities 1..5."""
    return [
        Recommendation(priority=i, **item)
        for i, item in enumerate(items[:MAX_RECOMMENDATIONS], start=1)
    ]


# ---------------------------------------------------------------------------
# Rule-based advice, no API key needed
# ---------------------------------------------------------------------------

def generate_rule_based_advice(
    audit: PageAuditSnapshot,
    vitals: Optional[CoreWebVitalsSnapshot] = None,
) -> list[Recommendation]:
    """Deterministic advice, most important first. Always returns 1-5 items."""
    recs: list[dict] = []
    meta = audit.meta

    if not meta.title or meta.title_length < 20:
        state = "missing" if not meta.title else f"only {meta.title_length} characters"
        recs.append(_rec(
            "Optimize Title Tag",
            f"Your title tag is {state}. Write a compelling, keyword-rich title between 30-60 "
            "characters that accurately describes your page content.",
            "low", "high", "content",
        ))

    if not meta.description:
        recs.append(_rec(
            "Add Meta Description",
            "Your page has no meta description. Add a compelling 120-160 character description "
            "that includes your target keyword to improve click-through rates from search results.",
            "low", "high", "content",
        ))

    if vitals is not None and vitals.performance_score < 70:
        if vitals.lcp_rating == "poor":
            detail = (
                f"LCP is {vitals.lcp / 1000:.1f}s (target: under 2.5s). Optimize your largest "
                "content element by compressing images and using a CDN."
            )
        elif vitals.cls_rating == "poor":
            detail = (
                f"CLS is {vitals.cls:g} (target: under 0.1). Add explicit dimensions to images and "
                "avoid injecting content above the fold."
            )
        else:
            detail = "Focus on reducing Total Blocking Time by deferring non-critical JavaScript."
        recs.append(_rec(
            "Improve Page Performance",
            f"Your performance score is {vitals.performance_score:g}/100. {detail}",
            "medium", "high", "performance",
        ))

    if audit.word_count < 500:
        recs.append(_rec(
            "Expand Content Depth",
            f"Your page has only {audit.word_count} words. Add comprehensive sections covering "
            "related subtopics, FAQs, and supporting data to establish topical authority.",
            "high", "high", "content",
        ))

    missing_alt = sum(1 for img in audit.images if not img.has_alt)
    if missing_alt > 0:
        recs.append(_rec(
            "Fix Image Alt Text",
            f"{missing_alt} of {len(audit.images)} images are missing alt text. Add descriptive, "
            "keyword-relevant alt attributes to all images for accessibility and image search "
            "visibility.",
            "low", "medium", "technical",
        ))

    if not audit.is_https:
        recs.append(_rec(
            "Enable HTTPS",
            "Your site is not using HTTPS. Install an SSL certificate immediately. HTTPS is a "
            "confirmed Google ranking signal and visitors see security warnings on HTTP sites.",
            "medium", "high", "technical",
        ))

    if not audit.has_sitemap:
        recs.append(_rec(
            "Create XML Sitemap",
            "No sitemap.xml was detected. Create and submit an XML sitemap to Google Search "
            "Console to help search engines discover and index your pages efficiently.",
            "low", "medium", "technical",
        ))

    if audit.heading("h1") is None:
        recs.append(_rec(
            "Add H1 Heading",
            "Your page is missing an H1 heading. Add a single, descriptive H1 that includes your "
            "primary keyword. This is one of the strongest on-page SEO signals.",
            "low", "high", "content",
        ))

    if len(audit.internal_links) < 5:
        recs.append(_rec(
            "Strengthen Internal Linking",
            f"Your page has only {len(audit.internal_links)} internal links. Add contextual "
            "internal links to related pages to distribute link equity and improve crawlability.",
            "low", "medium", "technical",
        ))

    schema = audit.schema_markup
    if schema is not None and not schema.has_json_ld and not schema.has_microdata:
        recs.append(_rec(
            "Add Structured Data (Schema Markup)",
            "No JSON-LD or Microdata structured data detected. Add schema markup (Organization, "
            "WebPage, FAQ, BreadcrumbList) to help search engines understand your content and "
            "earn rich snippets.",
            "medium", "medium", "technical",
        ))

    headers = audit.security_headers
    if headers is not None and headers.score < 3:
        recs.append(_rec(
            "Implement Security Headers",
            f"Only {headers.score}/6 security headers are present. Add Content-Security-Policy, "
            "Strict-Transport-Security, X-Frame-Options, and other security headers to protect "
            "users and signal trustworthiness.",
            "medium", "medium", "technical",
        ))

    if audit.social_meta is not None and not audit.social_meta.og_complete:
        recs.append(_rec(
            "Complete Social Media Tags",
            "Open Graph tags are incomplete. Add og:title, og:description, and og:image to ensure "
            "your page looks professional when shared on social media platforms.",
            "low", "medium", "content",
        ))

    if audit.accessibility is not None and not audit.accessibility.has_lang_attribute:
        recs.append(_rec(
            "Add Language Attribute",
            'The <html> element is missing a lang attribute. Add lang="en" (or the appropriate '
            "language) to help screen readers and search engines understand your content's "
            "language.",
            "low", "low", "technical",
        ))

    if audit.content_quality is not None and not audit.content_quality.has_keyword_in_title:
        recs.append(_rec(
            "Add Keyword to Title Tag",
            "Your target keyword is not present in the title tag. Include it near the beginning "
            "for maximum SEO impact. The title tag is the strongest on-page ranking signal.",
            "low", "high", "content",
        ))

    if audit.broken_links:
        recs.append(_rec(
            "Fix Broken Links",
            f"{len(audit.broken_links)} broken link(s) detected on the page. Broken links waste "
            "crawl budget and create poor user experiences. Fix or remove them immediately.",
            "low", "medium", "technical",
        ))

    idx = audit.indexability
    if idx is not None and not idx.is_indexable:
        cause = "a noindex directive" if idx.has_noindex else "a canonical mismatch"
        # Nothing else matters until the page can be indexed
        recs.insert(0, _rec(
            "Page Is NOT Indexable - Fix Immediately",
            f"Google cannot index this page due to {cause}. None of your SEO efforts matter until "
            "this is fixed. Remove the blocking directive to allow indexing.",
            "low", "high", "technical",
        ))

    eeat = audit.eeat
    if eeat is not None and eeat.trust_score < 50:
        gaps = ""
        if not eeat.has_author_info:
            gaps += "Add author bylines with credentials. "
        if not eeat.has_about_page:
            gaps += "Create an About page. "
        if not eeat.has_privacy_policy:
            gaps += "Add a Privacy Policy. "
        recs.append(_rec(
            "Strengthen E-E-A-T Trust Signals",
            f"Your E-E-A-T trust score is {eeat.trust_score}/100. {gaps}"
            "Google increasingly values trust signals for ranking.",
            "medium", "high", "strategy",
        ))

    cc = audit.content_comprehensiveness
    if cc is not None:
        if not cc.has_faq:
            recs.append(_rec(
                'Add FAQ Section for "People Also Ask"',
                'No FAQ section detected. Adding a FAQ section with schema markup can earn "People '
                'Also Ask" rich results, increasing visibility and CTR by 20-30%.',
                "low", "high", "content",
            ))
        if cc.estimated_read_time_min < 3:
            recs.append(_rec(
                "Deepen Content for Topical Authority",
                f"Content read time is only {cc.estimated_read_time_min:g} min. Top-ranking pages "
                "average 5-7 minutes. Add case studies, data, expert quotes, and examples to "
                "demonstrate comprehensive expertise.",
                "high", "high", "content",
            ))

    rich = audit.rich_results
    if rich is not None and len(rich.missing) > 3:
        recs.append(_rec(
            "Unlock Google Rich Results",
            f"You're missing {len(rich.missing)} rich result opportunities: "
            f"{', '.join(rich.missing[:3])}. Adding structured data for these can boost CTR by up "
            "to 58%.",
            "medium", "high", "technical",
        ))

    # ── Baseline growth strategies for pages that already pass most checks ──
    if len(recs) < 3:
        recs.append(_rec(
            "Add Structured Data (Schema Markup)",
            "Add JSON-LD schema markup (e.g., Organization, WebPage, FAQ) to help search engines "
            "understand your content and potentially earn rich snippets in search results.",
            "medium", "medium", "technical",
        ))
        recs.append(_rec(
            "Build Topic Clusters",
            "Create supporting blog posts or resource pages around your primary keyword and "
            "interlink them with your main page. This establishes topical authority and increases "
            "organic traffic across multiple queries.",
            "high", "high", "strategy",
        ))
        if vitals is not None and vitals.performance_score < 95:
            recs.append(_rec(
                "Optimize for Perfect Performance Score",
                f"Your performance score is {vitals.performance_score:g}/100. Good, but there's "
                "room to reach 95+. Audit third-party scripts, implement lazy loading for "
                "below-the-fold images, and consider a CDN for global reach.",
                "medium", "medium", "performance",
            ))
        recs.append(_rec(
            "Implement Content Freshness Strategy",
            'Schedule regular content updates to signal relevance to search engines. Add a "Last '
            'Updated" date, refresh statistics, and expand sections based on new industry '
            "developments.",
            "low", "medium", "content",
        ))

    return _finalize(recs)


# ---------------------------------------------------------------------------
# Claude pass
# ---------------------------------------------------------------------------

def build_audit_summary(
    audit: PageAuditSnapshot,
    vitals: Optional[CoreWebVitalsSnapshot] = None,
    health: Optional[HealthScoreResult] = None,
) -> str:
    meta = audit.meta
    h1 = audit.heading("h1")
    with_alt = sum(1 for img in audit.images if img.has_alt)
    parts = [
        f"URL: {audit.url}",
        f'Title: "{meta.title}" ({meta.title_length} chars)',
        f'Description: "{meta.description}" ({meta.description_length} chars)',
        f"Word Count: {audit.word_count}",
        f"H1: {h1.text if h1 and h1.text else 'MISSING'}",
        f"Images: {len(audit.images)} ({with_alt} with alt)",
        f"Internal Links: {len(audit.internal_links)}",
        f"HTTPS: {'Yes' if audit.is_https else 'No'}",
        f"Sitemap: {'Yes' if audit.has_sitemap else 'No'}",
        f"Robots.txt: {'Yes' if audit.has_robots_txt else 'No'}",
    ]

    if audit.schema_markup is not None:
        schema = audit.schema_markup
        formats = [f for f, on in (("JSON-LD", schema.has_json_ld), ("Microdata", schema.has_microdata)) if on]
        parts.append(
            f"Schema: {' + '.join(formats) or 'None'}; Types: {', '.join(schema.types) or 'None'}"
        )
    if audit.security_headers is not None:
        parts.append(f"Security Headers: {audit.security_headers.score}/6")
    if audit.content_quality is not None:
        cq = audit.content_quality
        parts.append(f"Readability Grade: {cq.readability_grade:g}")
        parts.append(f"Keyword Density: {cq.keyword_density:g}%")
        parts.append(f"Keyword in Title: {'Yes' if cq.has_keyword_in_title else 'No'}")
        parts.append(f"Keyword in H1: {'Yes' if cq.has_keyword_in_h1 else 'No'}")
    if audit.eeat is not None:
        parts.append(f"E-E-A-T Trust Score: {audit.eeat.trust_score}/100")
    if audit.indexability is not None:
        parts.append(f"Indexable: {'Yes' if audit.indexability.is_indexable else 'No'}")

    if vitals is not None:
        parts.append(
            f"\nPerformance Score: {vitals.performance_score:g}/100 "
            f"(LCP {vitals.lcp / 1000:.1f}s {vitals.lcp_rating}, "
            f"CLS {vitals.cls:g} {vitals.cls_rating}, INP {vitals.inp:g}ms {vitals.inp_rating})"
        )

    if health is not None:
        parts.append(f"\nHealth Score: {health.overall}/100 (Grade {health.grade})")
        for issue in health.issues[:10]:
            parts.append(f"- [{issue.severity.value}] {issue.category}: {issue.message}")

    return "\n".join(parts)


def _parse_recommendations(raw: Any) -> list[Recommendation]:
    """Validate Claude output; raises ValueError when unusable."""
    if isinstance(raw, dict):
        raw = raw.get("recommendations", raw)
    if not isinstance(raw, list) or not raw:
        raise ValueError("expected a non-empty JSON array of recommendations")

    if not all(isinstance(entry, dict) for entry in raw):
        raise ValueError("every recommendation must be a JSON object")

    def _order(entry: dict) -> float:
        priority = entry.get("priority")
        return priority if isinstance(priority, (int, float)) else float("inf")

    # Claude's priority only orders the list; _finalize renumbers it
    fields = ("title", "description", "effort", "impact", "category")
    items = [{k: entry.get(k) for k in fields} for entry in sorted(raw, key=_order)]
    try:
        return _finalize(items)
    except ValidationError as e:
        raise ValueError(str(e)) from e


async def generate_recommendations(
    audit: PageAuditSnapshot,
    vitals: Optional[CoreWebVitalsSnapshot] = None,
    health: Optional[HealthScoreResult] = None,
    *,
    claude_caller: Optional[ClaudeCaller] = None,
) -> list[Recommendation]:
    """
    Ask Claude for 5 strategies; fall back to deterministic advice when no
    caller is configured or the response can't be used.
    """
    if claude_caller is None:
        return generate_rule_based_advice(audit, vitals)

    prompt = ADVISOR_PROMPT.format(audit_summary=build_audit_summary(audit, vitals, health))
    result = await claude_caller(ADVISOR_SYSTEM, prompt, max_tokens=1500)

    try:
        return _parse_recommendations(result)
    except ValueError as e:
        logger.warning(f"Claude recommendations unusable, using rule-based fallback: {e}")
        return generate_rule_based_advice(audit, vitals)
