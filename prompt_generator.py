"""
prompt_generator.py: Plain-text SEO instructions for an AI coding agent.

Usage:
    from prompt_generator import generate_seo_prompt
    text = generate_seo_prompt(audit, health, keyword="emergency plumber")

The output is meant to be pasted straight into a coding agent, so every
line is plain ASCII-ish text with fixed-width section rules.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from health_models import (
    CoreWebVitalsSnapshot,
    HealthScoreResult,
    PageAuditSnapshot,
    Recommendation,
    Severity,
)

RULE_WIDTH = 70
MAX_LISTED_IMAGES = 10
MAX_LISTED_BROKEN_LINKS = 5

SECURITY_HEADER_FIXES = (
    ("has_hsts", "Strict-Transport-Security: max-age=31536000; includeSubDomains"),
    ("has_csp", "Content-Security-Policy: default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'"),
    ("has_x_frame_options", "X-Frame-Options: DENY"),
    ("has_x_content_type", "X-Content-Type-Options: nosniff"),
    ("has_referrer_policy", "Referrer-Policy: strict-origin-when-cross-origin"),
    ("has_permissions_policy", "Permissions-Policy: camera=(), microphone=(), geolocation=()"),
)


def _yes_no(flag: bool, missing: str = "No") -> str:
    return "Yes" if flag else missing


def _section(lines: list[str], title: str) -> None:
    lines.append("-" * RULE_WIDTH)
    lines.append(title)
    lines.append("-" * RULE_WIDTH)


def _critical_fixes(lines: list[str], health: HealthScoreResult) -> None:
    critical = health.issues_with(Severity.CRITICAL)
    if not critical:
        return
    _section(lines, "1. CRITICAL FIXES (Do these FIRST, they block ranking)")
    for n, issue in enumerate(critical, 1):
        lines.append(f"  {n}. [{issue.category.upper()}] {issue.message}")
        lines.append(f"     Action: {issue.recommendation}")
    lines.append("")


def _meta_tags(lines: list[str], audit: PageAuditSnapshot, keyword: str) -> None:
    meta = audit.meta
    _section(lines, "2. META TAGS & TITLE OPTIMIZATION")
    lines.append(f'  Current Title:        "{meta.title or "(MISSING)"}"')
    lines.append(f"  Title Length:          {meta.title_length} chars (target: 30-60)")
    lines.append(f'  Current Description:  "{meta.description or "(MISSING)"}"')
    lines.append(f"  Description Length:    {meta.description_length} chars (target: 120-160)")
    cq = audit.content_quality
    if cq is not None:
        lines.append(f"  Keyword in Title:     {_yes_no(cq.has_keyword_in_title, 'NO - Add it')}")
        lines.append(f"  Keyword in H1:        {_yes_no(cq.has_keyword_in_h1, 'NO - Add it')}")
        lines.append(f"  Keyword in Meta Desc: {_yes_no(cq.has_keyword_in_meta, 'NO - Add it')}")
    lines.append("")
    lines.append("  Instructions:")
    if not meta.title or not 30 <= meta.title_length <= 60:
        lines.append(
            f'  - Rewrite the <title> tag to be 30-60 characters, include "{keyword}" near the front.'
        )
    if not meta.description or not 120 <= meta.description_length <= 160:
        lines.append(
            f'  - Rewrite the meta description to be 120-160 characters, include "{keyword}", '
            "and add a call-to-action."
        )
    social = audit.social_meta
    if social is not None and not social.og_complete:
        lines.append("  - Add Open Graph tags: og:title, og:description, og:image, og:url, og:type.")
    if social is not None and not social.twitter_complete:
        lines.append(
            "  - Add Twitter Card tags: twitter:card, twitter:title, twitter:description, twitter:image."
        )
    lines.append("")


def _headings(lines: list[str], audit: PageAuditSnapshot, keyword: str) -> None:
    h1 = audit.heading("h1")
    h2_count = sum(h.count for h in audit.headings if h.tag == "h2")
    _section(lines, "3. HEADING STRUCTURE")
    h1_display = f'"{h1.text}"' if h1 is not None else "MISSING - Add one immediately"
    lines.append(f"  H1 Tag:     {h1_display}")
    lines.append(f"  H2 Count:   {h2_count}")
    lines.append("")
    lines.append("  Instructions:")
    if h1 is None:
        lines.append(
            f'  - Add a single <h1> tag containing "{keyword}" that describes the page content.'
        )
    elif audit.content_quality is not None and not audit.content_quality.has_keyword_in_h1:
        lines.append(f'  - Update the H1 to naturally include "{keyword}".')
    if h2_count < 3:
        lines.append("  - Add more H2 subheadings to break content into scannable sections.")
    lines.append("")


def _schema(lines: list[str], audit: PageAuditSnapshot) -> None:
    schema = audit.schema_markup
    rich = audit.rich_results
    _section(lines, "4. SCHEMA MARKUP (STRUCTURED DATA)")
    if schema is not None:
        lines.append(f"  JSON-LD Present:    {_yes_no(schema.has_json_ld)}")
        lines.append(f"  Microdata Present:  {_yes_no(schema.has_microdata)}")
        lines.append(f"  Current Types:      {', '.join(schema.types) or 'None'}")
    if rich is not None:
        lines.append(f"  Missing for Rich Results: {', '.join(rich.missing) or 'None'}")
        lines.append(f"  CTR Boost Potential:      {rich.potential_ctr_boost}")
    lines.append("")
    lines.append("  Instructions:")
    if schema is None or not schema.has_json_ld:
        lines.append('  - Add a JSON-LD <script type="application/ld+json"> block in the <head>.')
    lines.append("  - Include at minimum: Organization, WebPage, and BreadcrumbList schemas.")
    has_faq = audit.content_comprehensiveness is not None and audit.content_comprehensiveness.has_faq
    if has_faq or (rich is not None and "FAQ" in rich.missing):
        lines.append(
            '  - Add FAQPage schema for any FAQ content to earn "People Also Ask" rich results.'
        )
    if audit.eeat is not None and audit.eeat.same_as_links:
        lines.append(
            f"  - Include sameAs links in Organization schema: {', '.join(audit.eeat.same_as_links)}"
        )
    lines.append("")


def _content(lines: list[str], audit: PageAuditSnapshot, keyword: str) -> None:
    cq = audit.content_quality
    cc = audit.content_comprehensiveness
    _section(lines, "5. CONTENT OPTIMIZATION")
    lines.append(f"  Word Count:         {audit.word_count}")
    if cq is not None:
        lines.append(
            f"  Keyword Count:      {cq.keyword_count} (density: {cq.keyword_density:g}%)"
        )
        lines.append(f"  Readability Grade:  {cq.readability_grade:g}")
    if cc is not None:
        lines.append(f"  Content Sections:   {cc.content_sections}")
        lines.append(f"  Has FAQ:            {_yes_no(cc.has_faq)}")
        lines.append(f"  Has Table of Contents: {_yes_no(cc.has_table_of_contents)}")
        lines.append(f"  Read Time:          {cc.estimated_read_time_min:g} min (target: 5-7 min)")
        if cc.missing_topics:
            lines.append(f"  Missing Topics:     {', '.join(cc.missing_topics)}")
    lines.append("")
    lines.append("  Instructions:")
    if audit.word_count < 800:
        lines.append(
            f"  - Expand content to at least 800-1500 words. Current: {audit.word_count}."
        )
    if cq is not None and cq.keyword_density < 0.5:
        lines.append(
            f'  - Increase usage of "{keyword}" naturally throughout the content '
            "(target: 1-2% density)."
        )
    elif cq is not None and cq.keyword_density > 3:
        lines.append(
            f"  - Reduce keyword stuffing. Current density is {cq.keyword_density:g}% (target: 1-2%)."
        )
    if cc is not None and not cc.has_faq:
        lines.append(
            "  - Add a FAQ section with 5-8 questions and answers relevant to the target keyword."
        )
    if cc is not None and not cc.has_table_of_contents:
        lines.append(
            "  - Add a Table of Contents with anchor links to each section for better UX and "
            "possible sitelinks."
        )
    lines.append("")


def _images(lines: list[str], audit: PageAuditSnapshot) -> None:
    if not audit.images:
        return
    missing_alt = [img for img in audit.images if not img.has_alt]
    missing_lazy = [img for img in audit.images if not img.has_lazy_loading]
    _section(lines, "6. IMAGE OPTIMIZATION")
    lines.append(f"  Total Images:       {len(audit.images)}")
    lines.append(f"  Missing Alt Text:   {len(missing_alt)}")
    lines.append(f"  Missing Lazy Load:  {len(missing_lazy)}")
    lines.append("")
    lines.append("  Instructions:")
    if missing_alt:
        lines.append("  - Add descriptive alt attributes to these images:")
        for img in missing_alt[:MAX_LISTED_IMAGES]:
            lines.append(f"    * {img.src}")
        if len(missing_alt) > MAX_LISTED_IMAGES:
            lines.append(f"    ... and {len(missing_alt) - MAX_LISTED_IMAGES} more.")
    if missing_lazy:
        lines.append('  - Add loading="lazy" to all below-the-fold images.')
    lines.append("  - Ensure all images have explicit width and height attributes to prevent CLS.")
    lines.append("")


def _performance(
    lines: list[str],
    audit: PageAuditSnapshot,
    vitals: Optional[CoreWebVitalsSnapshot],
) -> None:
    if vitals is None:
        return
    _section(lines, "7. PERFORMANCE & CORE WEB VITALS")
    lines.append(f"  Performance Score:  {vitals.performance_score:g}/100")
    lines.append(f"  LCP:                {vitals.lcp / 1000:.2f}s ({vitals.lcp_rating}), target: < 2.5s")
    lines.append(f"  CLS:                {vitals.cls:g} ({vitals.cls_rating}), target: < 0.1")
    lines.append(f"  INP:                {vitals.inp:g}ms ({vitals.inp_rating}), target: < 200ms")
    lines.append(f"  FCP:                {vitals.fcp / 1000:.2f}s, target: < 1.8s")
    lines.append(f"  TBT:                {vitals.tbt:g}ms, target: < 200ms")
    lines.append("")
    lines.append("  Instructions:")
    if vitals.lcp_rating != "good":
        lines.append(
            "  - Optimize the largest contentful element: compress images, use WebP/AVIF, add "
            "preload hints."
        )
    if vitals.cls_rating != "good":
        lines.append(
            "  - Fix layout shifts: add explicit dimensions to images/embeds, avoid injecting "
            "content above fold."
        )
    if vitals.inp_rating != "good":
        lines.append(
            "  - Reduce interaction delays: defer non-critical JS, break up long tasks, use "
            "requestIdleCallback."
        )
    budget = audit.page_budget
    if budget is not None:
        if budget.has_excessive_js:
            lines.append(
                f"  - Reduce JavaScript payload. Current: {budget.total_transfer_size_kb:g}KB "
                f"across {budget.script_count} scripts."
            )
        if budget.render_blocking_count > 0:
            lines.append(
                f"  - Eliminate {budget.render_blocking_count} render-blocking resource(s). "
                "Use async/defer for scripts."
            )
    lines.append("")


def _security_headers(lines: list[str], audit: PageAuditSnapshot) -> None:
    headers = audit.security_headers
    if headers is None or headers.score >= 6:
        return
    _section(lines, "8. SECURITY HEADERS")
    lines.append(f"  Current Score: {headers.score}/6")
    lines.append("")
    lines.append("  Add the following headers to your server configuration:")
    for flag, header in SECURITY_HEADER_FIXES:
        if not getattr(headers, flag):
            lines.append(f"  - {header}")
    lines.append("")


def _eeat(lines: list[str], audit: PageAuditSnapshot) -> None:
    eeat = audit.eeat
    if eeat is None:
        return
    checks = (
        ("Author Info:     ", eeat.has_author_info, "Add author bylines with credentials/bio to content pages."),
        ("About Page:      ", eeat.has_about_page, "Create an About page with company/team information and expertise."),
        ("Contact Page:    ", eeat.has_contact_page, "Create a Contact page with physical address, phone, and email."),
        ("Privacy Policy:  ", eeat.has_privacy_policy, "Add a Privacy Policy page (required for trust and compliance)."),
        ("Terms of Service:", eeat.has_terms_of_service, "Add a Terms of Service page."),
    )
    _section(lines, "9. E-E-A-T & TRUST SIGNALS")
    lines.append(f"  Trust Score:      {eeat.trust_score}/100")
    for label, present, _ in checks:
        lines.append(f"  {label} {'Present' if present else 'MISSING'}")
    lines.append("")
    lines.append("  Instructions:")
    for _, present, action in checks:
        if not present:
            lines.append(f"  - {action}")
    lines.append("")


def _technical(lines: list[str], audit: PageAuditSnapshot) -> None:
    items: list[str] = []
    if not audit.is_https:
        items.append("Install and enforce HTTPS with SSL certificate.")
    if not audit.has_sitemap:
        items.append("Create and submit an XML sitemap at /sitemap.xml.")
    if not audit.has_robots_txt:
        items.append("Create a robots.txt file that references your sitemap.")
    idx = audit.indexability
    if audit.has_canonical_mismatch:
        canonical = idx.canonical_url if idx is not None and idx.canonical_url else "unknown"
        items.append(f"Fix canonical URL mismatch. Current canonical: {canonical}")
    if idx is not None and idx.has_redirect_chain:
        items.append(
            f"Eliminate redirect chain ({idx.redirect_count} redirects). Use a single 301."
        )
    if audit.broken_links:
        listed = "".join(
            f"\n       * {link.url} (status: {link.status_code or 'timeout'})"
            for link in audit.broken_links[:MAX_LISTED_BROKEN_LINKS]
        )
        items.append(f"Fix {len(audit.broken_links)} broken link(s):{listed}")
    a11y = audit.accessibility
    if a11y is not None and not a11y.has_lang_attribute:
        items.append('Add lang="en" attribute to the <html> element.')
    if a11y is not None and not a11y.has_viewport:
        items.append(
            'Add <meta name="viewport" content="width=device-width, initial-scale=1"> to <head>.'
        )

    if not items:
        return
    _section(lines, "10. ADDITIONAL TECHNICAL FIXES")
    for n, item in enumerate(items, 1):
        lines.append(f"  {n}. {item}")
    lines.append("")


def _quick_wins(lines: list[str], recommendations: Iterable[Recommendation]) -> None:
    wins = [r for r in recommendations if r.effort == "low" and r.impact == "high"]
    if not wins:
        return
    _section(lines, "11. QUICK WINS (Low Effort, High Impact)")
    for n, rec in enumerate(wins, 1):
        lines.append(f"  {n}. {rec.title}")
        lines.append(f"     {rec.description}")
    lines.append("")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_seo_prompt(
    audit: PageAuditSnapshot,
    health: HealthScoreResult,
    *,
    keyword: str,
    vitals: Optional[CoreWebVitalsSnapshot] = None,
    recommendations: Iterable[Recommendation] = (),
    generated_on: Optional[date] = None,
) -> str:
    """Build the full instruction document, highest-priority sections first."""
    lines: list[str] = []

    lines.append("=" * RULE_WIDTH)
    lines.append("SEO ENHANCEMENT INSTRUCTIONS FOR AI CODING AGENT")
    lines.append("=" * RULE_WIDTH)
    lines.append("")
    lines.append("You are an expert web developer. Use the audit findings below to make")
    lines.append("specific code changes that will improve this website's SEO performance.")
    lines.append("Implement each section in order of priority. Provide production-ready")
    lines.append("code, no placeholders.")
    lines.append("")

    _section(lines, "SITE CONTEXT")
    lines.append(f"  URL:              {audit.url}")
    lines.append(f"  Target Keyword:   {keyword}")
    lines.append(f"  Health Score:     {health.overall}/100 (Grade: {health.grade})")
    if vitals is not None:
        lines.append(f"  Performance:      {vitals.performance_score:g}/100")
    lines.append("")

    _critical_fixes(lines, health)
    _meta_tags(lines, audit, keyword)
    _headings(lines, audit, keyword)
    _schema(lines, audit)
    _content(lines, audit, keyword)
    _images(lines, audit)
    _performance(lines, audit, vitals)
    _security_headers(lines, audit)
    _eeat(lines, audit)
    _technical(lines, audit)
    _quick_wins(lines, recommendations)

    day = generated_on or date.today()
    lines.append("=" * RULE_WIDTH)
    lines.append("END OF SEO INSTRUCTIONS")
    lines.append("=" * RULE_WIDTH)
    lines.append("")
    lines.append(f"Generated by SEO Health Audit on {day.isoformat()}")
    lines.append(f'Audit URL: {audit.url} | Keyword: "{keyword}"')

    return "\n".join(lines)
