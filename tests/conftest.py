"""
Shared fixtures for the SEO health test suite.

The API tests import main.py, which reads its configuration at import time,
so the environment is pinned here before any test module is collected.
"""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="seo-health-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
# Present but empty: load_dotenv() won't override it, so no Claude client is built
os.environ["ANTHROPIC_API_KEY"] = ""

import pytest

from health_models import CoreWebVitalsSnapshot, PageAuditSnapshot


def bare_page_payload(**overrides) -> dict:
    """Crawler payload for a page with no title, description, H1 or links."""
    payload = {
        "url": "http://example.com/",
        "finalUrl": "http://example.com/",
        "statusCode": 200,
        "meta": {"title": "", "titleLength": 0, "description": "", "descriptionLength": 0},
        "headings": [],
        "wordCount": 50,
        "internalLinks": [],
        "externalLinks": [],
        "images": [],
        "hasRobotsTxt": False,
        "hasSitemap": False,
        "isHttps": False,
        "loadTimeMs": 420,
    }
    payload.update(overrides)
    return payload


def healthy_page_payload() -> dict:
    """Crawler payload for a page that passes every check."""
    title = "Emergency Plumber in Austin | 24/7 Repairs"
    description = (
        "Licensed emergency plumbers in Austin, TX. Burst pipes, leaks and drain repairs "
        "handled 24/7 with upfront pricing. Call now for a fast quote."
    )
    return {
        "url": "https://example.com/plumber",
        "finalUrl": "https://example.com/plumber",
        "statusCode": 200,
        "meta": {
            "title": title,
            "titleLength": len(title),
            "description": description,
            "descriptionLength": len(description),
            "canonical": "https://example.com/plumber",
            "ogTitle": title,
            "ogDescription": description,
            "ogImage": "https://example.com/og.webp",
        },
        "headings": [
            {"tag": "h1", "text": "Emergency Plumber in Austin", "count": 1},
            {"tag": "h2", "text": "Services", "count": 6},
        ],
        "wordCount": 1400,
        "internalLinks": [
            {"url": f"https://example.com/page-{n}", "text": f"Page {n}", "type": "internal"}
            for n in range(10)
        ],
        "externalLinks": [],
        "images": [
            {
                "src": f"https://example.com/img-{n}.webp",
                "alt": f"Plumbing job {n}",
                "hasAlt": True,
                "format": "webp",
                "hasLazyLoading": True,
            }
            for n in range(4)
        ],
        "hasRobotsTxt": True,
        "hasSitemap": True,
        "isHttps": True,
        "loadTimeMs": 380,
        "schemaMarkup": {
            "types": ["Organization", "WebPage", "BreadcrumbList"],
            "count": 3,
            "hasJsonLd": True,
            "hasMicrodata": False,
        },
        "securityHeaders": {
            "hasHSTS": True,
            "hasCSP": True,
            "hasXFrameOptions": True,
            "hasXContentType": True,
            "hasReferrerPolicy": True,
            "hasPermissionsPolicy": True,
            "score": 6,
        },
        "accessibility": {
            "hasViewport": True,
            "hasLangAttribute": True,
            "langValue": "en",
            "imagesWithoutAlt": 0,
            "totalImages": 4,
            "formInputsWithoutLabel": 0,
        },
        "contentQuality": {
            "readabilityGrade": 9.5,
            "avgSentenceLength": 15,
            "keywordCount": 14,
            "keywordDensity": 1.4,
            "hasKeywordInTitle": True,
            "hasKeywordInH1": True,
            "hasKeywordInMeta": True,
        },
        "socialMeta": {"ogComplete": True, "twitterComplete": True},
        "indexability": {
            "isIndexable": True,
            "canonicalUrl": "https://example.com/plumber",
            "canonicalStatus": "match",
        },
        "eeat": {
            "hasAuthorInfo": True,
            "hasAboutPage": True,
            "hasContactPage": True,
            "hasPrivacyPolicy": True,
            "hasTermsOfService": True,
            "trustScore": 90,
            "signals": [
                "Copyright notice",
                "Physical address present",
                "Social media profiles linked",
            ],
            "sameAsLinks": ["https://www.facebook.com/example"],
        },
        "contentComprehensiveness": {
            "topicCoverage": [f"topic {n}" for n in range(8)],
            "hasFAQ": True,
            "hasTableOfContents": True,
            "contentSections": 6,
            "estimatedReadTimeMin": 6,
            "entityCount": 12,
        },
    }


GOOD_VITALS = {
    "performanceScore": 95,
    "lcp": 1800,
    "inp": 120,
    "cls": 0.02,
    "fcp": 900,
    "si": 1500,
    "tbt": 80,
    "lcpRating": "good",
    "inpRating": "good",
    "clsRating": "good",
}


@pytest.fixture
def bare_audit() -> PageAuditSnapshot:
    return PageAuditSnapshot.model_validate(bare_page_payload())


@pytest.fixture
def healthy_audit() -> PageAuditSnapshot:
    return PageAuditSnapshot.model_validate(healthy_page_payload())


@pytest.fixture
def good_vitals() -> CoreWebVitalsSnapshot:
    return CoreWebVitalsSnapshot.model_validate(GOOD_VITALS)
