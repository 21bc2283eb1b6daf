"""
Unit tests for the SEO health engine.

Covers every category rule, the aggregator invariants (weights, bounds,
grades, ordering) and the reference scenarios for bare, partial and
fully-optimized pages.
"""
import pytest

from health_engine import (
    CATEGORY_RULES,
    TOTAL_WEIGHT,
    ScoringModel,
    Weighting,
    analyze_health,
    evaluate_category,
    get_grade,
    round_half_up,
)
from health_models import (
    SEVERITY_ORDER,
    CoreWebVitalsSnapshot,
    PageAuditSnapshot,
    Severity,
)

from conftest import GOOD_VITALS, bare_page_payload, healthy_page_payload


def _audit(**overrides) -> PageAuditSnapshot:
    return PageAuditSnapshot.model_validate(bare_page_payload(**overrides))


def _healthy(**overrides) -> PageAuditSnapshot:
    payload = healthy_page_payload()
    payload.update(overrides)
    return PageAuditSnapshot.model_validate(payload)


def _vitals(**overrides) -> CoreWebVitalsSnapshot:
    return CoreWebVitalsSnapshot.model_validate({**GOOD_VITALS, **overrides})


def _by_name(result):
    return {c.name: c for c in result.categories}


class TestRegistry:
    def test_weights_sum_to_100(self):
        assert TOTAL_WEIGHT == 100
        assert sum(rule.weight for rule in CATEGORY_RULES) == 100

    def test_fifteen_categories_in_report_order(self):
        assert [rule.name for rule in CATEGORY_RULES] == [
            "Title Tag",
            "Meta Description",
            "Heading Structure",
            "Image Optimization",
            "Link Hygiene",
            "Content Depth",
            "Performance",
            "Security & Best Practices",
            "Schema & Structured Data",
            "Social Media Readiness",
            "Accessibility",
            "Content Quality",
            "Indexability",
            "E-E-A-T Signals",
            "Content Comprehensiveness",
        ]

    def test_scoring_models_and_weighting(self):
        additive = {r.name for r in CATEGORY_RULES if r.scoring is ScoringModel.ADDITIVE}
        rounded = {r.name for r in CATEGORY_RULES if r.weighting is Weighting.ROUNDED}
        assert additive == {"E-E-A-T Signals", "Content Comprehensiveness"}
        assert rounded == {"Indexability", "E-E-A-T Signals", "Content Comprehensiveness"}

    def test_unknown_category_raises(self, bare_audit):
        with pytest.raises(KeyError):
            evaluate_category("Backlinks", bare_audit)


class TestGrades:
    @pytest.mark.parametrize(
        "score,grade",
        [
            (100, "A"), (90, "A"), (89, "B"), (80, "B"), (79, "C"), (65, "C"),
            (64, "D"), (50, "D"), (49, "F"), (0, "F"),
        ],
    )
    def test_boundaries_inclusive_on_higher_grade(self, score, grade):
        assert get_grade(score) == grade

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(22.5) == 23
        assert round_half_up(28.9) == 29
        assert round_half_up(28.4) == 28


class TestTitleAndMeta:
    def test_missing_title_is_critical(self, bare_audit):
        cat = evaluate_category("Title Tag", bare_audit)
        assert cat.score == 0
        assert cat.issues[0].severity is Severity.CRITICAL
        assert cat.issues[0].category == "Title Tag"

    @pytest.mark.parametrize("length,score", [(20, 60), (45, 100), (75, 80)])
    def test_title_length_bands(self, length, score):
        audit = _audit(meta={"title": "x" * length, "titleLength": length})
        assert evaluate_category("Title Tag", audit).score == score

    @pytest.mark.parametrize("length,score,severity", [
        (80, 70, Severity.WARNING),
        (140, 100, None),
        (190, 85, Severity.NOTICE),
    ])
    def test_description_length_bands(self, length, score, severity):
        audit = _audit(meta={"description": "d" * length, "descriptionLength": length})
        cat = evaluate_category("Meta Description", audit)
        assert cat.score == score
        assert [i.severity for i in cat.issues] == ([severity] if severity else [])


class TestHeadings:
    def test_missing_h1_and_h2(self, bare_audit):
        cat = evaluate_category("Heading Structure", bare_audit)
        assert cat.score == 20
        assert [i.severity for i in cat.issues] == [Severity.CRITICAL, Severity.NOTICE]

    def test_multiple_h1(self):
        audit = _audit(headings=[
            {"tag": "h1", "text": "One", "count": 3},
            {"tag": "h2", "text": "Two", "count": 1},
        ])
        cat = evaluate_category("Heading Structure", audit)
        assert cat.score == 70
        assert cat.issues[0].message == "Multiple H1 tags found (3)."


class TestImages:
    def test_no_images_scores_80_with_notice(self, bare_audit):
        cat = evaluate_category("Image Optimization", bare_audit)
        assert cat.score == 80
        assert cat.issues[0].severity is Severity.NOTICE

    def test_missing_alt_ratio_rounds_half_up(self):
        images = [
            {"src": f"/i{n}.webp", "hasAlt": n >= 3, "format": "webp", "hasLazyLoading": True}
            for n in range(8)
        ]
        cat = evaluate_category("Image Optimization", _audit(images=images))
        # 3/8 * 60 = 22.5 -> 23
        assert cat.score == 77
        assert cat.issues[0].severity is Severity.WARNING
        assert cat.issues[0].message == "3 of 8 images missing alt text."

    def test_majority_missing_alt_is_critical(self):
        images = [{"src": f"/i{n}.png", "hasAlt": False, "format": "png"} for n in range(2)]
        cat = evaluate_category("Image Optimization", _audit(images=images))
        # -60 alt, -15 legacy formats; only 2 without lazy loading so no lazy deduction
        assert cat.score == 25
        assert cat.issues[0].severity is Severity.CRITICAL

    def test_format_match_ignores_case(self):
        images = [
            {"src": f"/i{n}.webp", "hasAlt": True, "format": "WEBP", "hasLazyLoading": True}
            for n in range(4)
        ]
        cat = evaluate_category("Image Optimization", _audit(images=images))
        assert cat.score == 100
        assert cat.issues == ()

    def test_images_without_format_are_not_counted_as_legacy(self):
        images = [{"src": f"/i{n}", "hasAlt": True, "hasLazyLoading": True} for n in range(4)]
        assert evaluate_category("Image Optimization", _audit(images=images)).score == 100

    def test_lazy_loading_counts_unknown_as_missing(self):
        images = [{"src": f"/i{n}.webp", "hasAlt": True, "format": "webp"} for n in range(4)]
        cat = evaluate_category("Image Optimization", _audit(images=images))
        assert cat.score == 90
        assert cat.issues[0].message == "4 images without lazy loading."


class TestLinks:
    def test_no_internal_links(self, bare_audit):
        assert evaluate_category("Link Hygiene", bare_audit).score == 60

    def test_broken_links_capped_and_clamped(self):
        broken = [{"url": f"https://example.com/dead-{n}", "statusCode": 404} for n in range(5)]
        cat = evaluate_category("Link Hygiene", _audit(brokenLinks=broken))
        assert cat.score == 0
        assert any(i.message == "5 broken link(s) detected." for i in cat.issues)

    def test_few_internal_links_notice(self):
        links = [{"url": "https://example.com/a"}, {"url": "https://example.com/b"}]
        cat = evaluate_category("Link Hygiene", _audit(internalLinks=links))
        assert cat.score == 85
        assert cat.issues[0].severity is Severity.NOTICE


class TestContentDepth:
    @pytest.mark.parametrize("words,score,count", [
        (50, 10, 1), (99, 10, 1), (100, 40, 1), (299, 40, 1),
        (300, 65, 1), (599, 65, 1), (600, 80, 0), (999, 80, 0), (1000, 100, 0),
    ])
    def test_bands(self, words, score, count):
        cat = evaluate_category("Content Depth", _audit(wordCount=words))
        assert cat.score == score
        assert len(cat.issues) == count


class TestPerformance:
    def test_missing_vitals_is_neutral(self, bare_audit):
        cat = evaluate_category("Performance", bare_audit)
        assert cat.score == 50
        assert cat.issues[0].message == "Core Web Vitals data unavailable."

    def test_score_comes_from_lighthouse(self, bare_audit):
        cat = evaluate_category("Performance", bare_audit, _vitals())
        assert cat.score == 95
        assert cat.weighted_score == pytest.approx(12.35)
        assert cat.issues == ()

    def test_poor_ratings_emit_issues(self, bare_audit):
        vitals = _vitals(
            performanceScore=31, lcp=4200, cls=0.25, inp=540,
            lcpRating="poor", clsRating="poor", inpRating="poor",
        )
        cat = evaluate_category("Performance", bare_audit, vitals)
        assert cat.score == 31
        assert [i.message for i in cat.issues] == [
            "LCP is poor (4.2s). Target: under 2.5s.",
            "CLS is poor (0.250). Target: under 0.1.",
            "INP is poor (540ms). Target: under 200ms.",
        ]
        assert [i.severity for i in cat.issues] == [
            Severity.CRITICAL, Severity.CRITICAL, Severity.WARNING,
        ]

    def test_lcp_needs_improvement(self, bare_audit):
        vitals = _vitals(lcp=3100, lcpRating="needs-improvement")
        cat = evaluate_category("Performance", bare_audit, vitals)
        assert cat.issues[0].message == "LCP needs improvement (3.1s)."


class TestSecurity:
    def test_http_site_without_basics(self, bare_audit):
        cat = evaluate_category("Security & Best Practices", bare_audit)
        assert cat.score == 10
        assert cat.issues[0].severity is Severity.CRITICAL

    def test_weak_headers_and_canonical_mismatch(self):
        audit = _healthy(
            securityHeaders={"hasHSTS": True, "score": 1},
            hasCanonicalMismatch=True,
        )
        cat = evaluate_category("Security & Best Practices", audit)
        assert cat.score == 80
        assert cat.issues[0].message == "Only 1/6 security headers present."

    def test_absent_headers_record_is_not_penalized(self):
        audit = _healthy(securityHeaders=None)
        assert evaluate_category("Security & Best Practices", audit).score == 100


class TestSchemaAndSocial:
    def test_absent_schema_warns(self, bare_audit):
        cat = evaluate_category("Schema & Structured Data", bare_audit)
        assert cat.score == 30
        assert cat.issues[0].severity is Severity.WARNING

    def test_no_structured_data(self):
        audit = _audit(schemaMarkup={"types": [], "hasJsonLd": False, "hasMicrodata": False})
        assert evaluate_category("Schema & Structured Data", audit).score == 20

    def test_single_microdata_type(self):
        audit = _audit(schemaMarkup={"types": ["Product"], "hasMicrodata": True})
        cat = evaluate_category("Schema & Structured Data", audit)
        assert cat.score == 55
        assert cat.issues[0].message == "Only 1 schema type(s) detected: Product."

    def test_absent_social_is_silent(self, bare_audit):
        cat = evaluate_category("Social Media Readiness", bare_audit)
        assert cat.score == 30
        assert cat.issues == ()

    def test_incomplete_og_lists_missing_tags(self):
        audit = _audit(
            meta={"ogTitle": "Title"},
            socialMeta={"ogComplete": False, "twitterComplete": False},
        )
        cat = evaluate_category("Social Media Readiness", audit)
        assert cat.score == 30
        assert cat.issues[0].message == (
            "Incomplete Open Graph tags. Missing: og:description, og:image."
        )


class TestAccessibilityAndQuality:
    def test_absent_accessibility(self, bare_audit):
        cat = evaluate_category("Accessibility", bare_audit)
        assert (cat.score, cat.issues) == (40, ())

    def test_alt_coverage_below_80(self):
        audit = _audit(accessibility={
            "hasViewport": True,
            "hasLangAttribute": True,
            "imagesWithoutAlt": 3,
            "totalImages": 10,
        })
        cat = evaluate_category("Accessibility", audit)
        assert cat.score == 80
        assert cat.issues[0].message == "Alt text coverage: 70% (3 images missing alt)."

    def test_everything_missing_clamps_to_zero(self):
        audit = _audit(accessibility={
            "hasViewport": False,
            "hasLangAttribute": False,
            "imagesWithoutAlt": 5,
            "totalImages": 5,
            "formInputsWithoutLabel": 2,
        })
        assert evaluate_category("Accessibility", audit).score == 0

    def test_absent_content_quality(self, bare_audit):
        cat = evaluate_category("Content Quality", bare_audit)
        assert (cat.score, cat.issues) == (50, ())

    def test_keyword_stuffing_and_hard_reading(self):
        audit = _healthy(contentQuality={
            "readabilityGrade": 15.2,
            "avgSentenceLength": 31,
            "keywordCount": 40,
            "keywordDensity": 6.5,
            "hasKeywordInTitle": True,
            "hasKeywordInH1": True,
        })
        cat = evaluate_category("Content Quality", audit)
        assert cat.score == 55
        assert [i.message for i in cat.issues] == [
            "Reading level is very high (grade 15.2). Avg sentence: 31 words.",
            "Keyword density is high (6.5%). Risk of keyword stuffing.",
        ]

    def test_density_ignored_on_short_pages(self):
        audit = _audit(wordCount=80, contentQuality={"keywordDensity": 0})
        assert evaluate_category("Content Quality", audit).score == 100


class TestIndexability:
    def test_absent_indexability(self, bare_audit):
        cat = evaluate_category("Indexability", bare_audit)
        assert cat.score == 50
        assert cat.weighted_score == 3.5

    def test_noindex_with_canonical_mismatch(self):
        audit = _audit(indexability={
            "isIndexable": False,
            "hasNoindex": True,
            "canonicalUrl": "https://example.com/other",
            "canonicalStatus": "mismatch",
        })
        cat = evaluate_category("Indexability", audit)
        assert cat.score == 0
        assert cat.weighted_score == 0
        assert [i.severity for i in cat.issues] == [Severity.CRITICAL, Severity.CRITICAL]

    def test_missing_canonical_and_redirects(self):
        audit = _audit(indexability={"canonicalStatus": "missing", "hasRedirectChain": True})
        cat = evaluate_category("Indexability", audit)
        assert cat.score == 75
        assert cat.weighted_score == pytest.approx(5.25)


class TestEEAT:
    def test_absent_eeat_scores_zero_silently(self, bare_audit):
        cat = evaluate_category("E-E-A-T Signals", bare_audit)
        assert (cat.score, cat.issues) == (0, ())

    def test_partial_signals(self):
        audit = _audit(eeat={
            "hasAuthorInfo": True,
            "hasAboutPage": True,
            "hasContactPage": False,
            "hasPrivacyPolicy": True,
            "hasTermsOfService": False,
            "signals": [],
        })
        cat = evaluate_category("E-E-A-T Signals", audit)
        assert cat.score == 50
        assert cat.weighted_score == 3
        assert len(cat.issues) == 1
        assert cat.issues[0].severity is Severity.NOTICE
        assert cat.issues[0].category == "E-E-A-T"

    def test_bonus_signals(self):
        audit = _audit(eeat={"signals": ["Copyright notice", "Social media profiles linked"]})
        cat = evaluate_category("E-E-A-T Signals", audit)
        assert cat.score == 15
        assert len(cat.issues) == 4


class TestComprehensiveness:
    def test_absent(self, bare_audit):
        cat = evaluate_category("Content Comprehensiveness", bare_audit)
        assert (cat.score, cat.issues) == (0, ())

    def test_thin_page(self):
        audit = _audit(contentComprehensiveness={
            "contentSections": 1,
            "topicCoverage": ["pricing"],
            "hasFAQ": False,
            "estimatedReadTimeMin": 1.5,
            "entityCount": 2,
        })
        cat = evaluate_category("Content Comprehensiveness", audit)
        assert cat.score == 5
        assert len(cat.issues) == 4
        assert cat.issues[-1].message.startswith("Estimated read time is only 1.5 minute(s).")

    def test_mid_bands(self):
        audit = _audit(contentComprehensiveness={
            "contentSections": 3,
            "topicCoverage": ["a", "b", "c", "d"],
            "hasFAQ": True,
            "hasTableOfContents": False,
            "estimatedReadTimeMin": 3,
            "entityCount": 5,
        })
        cat = evaluate_category("Content Comprehensiveness", audit)
        # 15 + 10 + 15 + 8 + 8
        assert cat.score == 56
        assert cat.weighted_score == pytest.approx(2.8)
        assert cat.issues == ()


class TestAnalyzeHealth:
    def test_bare_page(self, bare_audit):
        result = analyze_health(bare_audit)
        cats = _by_name(result)

        assert cats["Title Tag"].score == 0
        assert cats["Meta Description"].score == 0
        assert cats["Heading Structure"].score == 20
        assert cats["Content Depth"].score == 10
        assert cats["Security & Best Practices"].score == 10
        assert result.overall == 29
        assert result.grade == "F"

    def test_bare_page_with_good_vitals(self, bare_audit, good_vitals):
        result = analyze_health(bare_audit, good_vitals)
        perf = _by_name(result)["Performance"]
        assert perf.score == 95
        assert perf.weighted_score == pytest.approx(12.35)
        assert not [i for i in result.issues if i.category == "Performance"]
        assert result.overall == 35

    def test_healthy_page(self, healthy_audit, good_vitals):
        result = analyze_health(healthy_audit, good_vitals)
        assert result.overall == 99
        assert result.grade == "A"
        assert result.issues == ()

    def test_overall_rounds_half_up(self, healthy_audit):
        # 87 points plus 6.5 for missing vitals
        assert analyze_health(healthy_audit).overall == 94

    def test_invariants(self, bare_audit, healthy_audit, good_vitals):
        for audit in (bare_audit, healthy_audit):
            result = analyze_health(audit, good_vitals)
            assert sum(c.max_score for c in result.categories) == 100
            assert all(0 <= c.score <= 100 for c in result.categories)
            assert 0 <= result.overall <= 100
            assert len(result.categories) == 15

    def test_issues_sorted_by_severity_keeping_category_order(self, bare_audit):
        result = analyze_health(bare_audit)
        ranks = [SEVERITY_ORDER[i.severity.value] for i in result.issues]
        assert ranks == sorted(ranks)

        critical = [i.category for i in result.issues_with(Severity.CRITICAL)]
        assert critical == [
            "Title Tag", "Meta Description", "Headings", "Content", "Security",
        ]

    def test_issues_match_category_issues(self, bare_audit):
        result = analyze_health(bare_audit)
        assert len(result.issues) == sum(len(c.issues) for c in result.categories)

    def test_deterministic(self, bare_audit, good_vitals):
        first = analyze_health(bare_audit, good_vitals)
        second = analyze_health(bare_audit, good_vitals)
        assert first.model_dump_json() == second.model_dump_json()

    def test_does_not_mutate_inputs(self, healthy_audit, good_vitals):
        before = (healthy_audit.model_dump_json(), good_vitals.model_dump_json())
        analyze_health(healthy_audit, good_vitals)
        assert (healthy_audit.model_dump_json(), good_vitals.model_dump_json()) == before

    def test_camel_case_output(self, bare_audit):
        dumped = analyze_health(bare_audit).model_dump(mode="json", by_alias=True)
        category = dumped["categories"][0]
        assert set(category) == {"name", "score", "maxScore", "weightedScore", "issues"}
        assert dumped["issues"][0]["severity"] == "critical"

    def test_whole_number_scores_serialise_as_ints(self, bare_audit, good_vitals):
        dumped = analyze_health(bare_audit, good_vitals).model_dump(mode="json", by_alias=True)
        perf = next(c for c in dumped["categories"] if c["name"] == "Performance")
        assert perf["score"] == 95
        assert isinstance(perf["score"], int)
        assert all(isinstance(c["score"], int) for c in dumped["categories"])

    def test_fractional_lighthouse_score_is_kept(self, bare_audit):
        cat = evaluate_category("Performance", bare_audit, _vitals(performanceScore=87.5))
        assert cat.score == 87.5
        assert cat.weighted_score == pytest.approx(11.375)
