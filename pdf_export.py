"""
pdf_export.py: Generate a PDF from a stored SEO health report.

Usage:
    from pdf_export import build_pdf
    pdf_bytes = build_pdf(report_dict)

`report_dict` is the JSON stored by main.py: reportId, url, keyword,
createdAt, healthScore (camelCase HealthScoreResult) and, once generated,
recommendations.
"""

from __future__ import annotations

from datetime import datetime
from fpdf import FPDF

# ---------------------------------------------------------------------------
# Latin-1 sanitiser: Helvetica only supports Latin-1 (no emoji / Unicode)
# ---------------------------------------------------------------------------
_REPLACEMENTS = {
    "\u2026": "...",  # ellipsis
    "\u2018": "'",  # left single quote
    "\u2019": "'",  # right single quote
    "\u201c": '"',  # left double quote
    "\u201d": '"',  # right double quote
    "\u2013": "-",  # en dash
    "\u2014": "--",  # em dash
    "\u2022": "*",  # bullet
    "\u2192": "->",  # arrow
}


def _s(text) -> str:
    """Return a Latin-1-safe, single-line string for fpdf cell() calls."""
    t = str(text)
    for char, repl in _REPLACEMENTS.items():
        t = t.replace(char, repl)
    t = t.replace("\n", " ").replace("\r", " ").replace("\t", " ")
    return t.encode("latin-1", errors="replace").decode("latin-1")


# ---------------------------------------------------------------------------
# Colour palette
# ---------------------------------------------------------------------------
NAVY       = (15,  23,  42)   # headings / cover
BLUE       = (37,  99, 235)   # section titles, notices
LIGHT_BLUE = (219, 234, 254)  # section title bg
GRAY_BG    = (248, 250, 252)  # table row bg
GRAY_LINE  = (226, 232, 240)  # dividers
GRAY_TEXT  = (100, 116, 139)  # secondary text
GREEN      = (22, 163,  74)   # healthy
AMBER      = (217, 119,   6)  # warning
RED        = (220,  38,  38)  # critical
WHITE      = (255, 255, 255)

SEVERITY_STYLE = {
    "critical": (RED,   "CRITICAL"),
    "warning":  (AMBER, "WARNING"),
    "notice":   (BLUE,  "NOTICE"),
}


def score_color(score: float) -> tuple[int, int, int]:
    """Colour band for a 0-100 score."""
    if score >= 80:
        return GREEN
    if score >= 50:
        return AMBER
    return RED


# ---------------------------------------------------------------------------
# PDF subclass with helpers
# ---------------------------------------------------------------------------

class HealthReportPDF(FPDF):
    def __init__(self, report: dict):
        super().__init__()
        self.report = report
        self.set_margins(18, 18, 18)
        self.set_auto_page_break(auto=True, margin=22)

    # ── Header / footer ────────────────────────────────────────────────────

    def header(self):
        if self.page_no() == 1:
            return
        self.set_font("Helvetica", "B", 8)
        self.set_text_color(*GRAY_TEXT)
        self.cell(0, 6, _s(f"SEO Health Report  |  {self.report.get('url', '')}"), align="L")
        self.ln(1)
        self.set_draw_color(*GRAY_LINE)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.ln(4)

    def footer(self):
        self.set_y(-16)
        self.set_font("Helvetica", "", 8)
        self.set_text_color(*GRAY_TEXT)
        self.cell(0, 6, f"Page {self.page_no()} of {{nb}}", align="C")

    # ── Low-level drawing primitives ────────────────────────────────────────

    def rule(self):
        self.set_draw_color(*GRAY_LINE)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.ln(3)

    def section_title(self, tag: str, title: str):
        self.ln(4)
        self.set_fill_color(*LIGHT_BLUE)
        self.set_text_color(*BLUE)
        self.set_font("Helvetica", "B", 12)
        self.cell(0, 9, _s(f"  [{tag}]  {title}"), fill=True, ln=True)
        self.ln(3)

    def sub_heading(self, text: str):
        self.set_font("Helvetica", "B", 9)
        self.set_text_color(*NAVY)
        self.cell(0, 6, _s(text), ln=True)
        self.ln(1)

    def small(self, text: str, indent: int = 0):
        self.set_font("Helvetica", "", 8)
        self.set_text_color(*GRAY_TEXT)
        if indent:
            self.set_x(self.l_margin + indent)
        self.multi_cell(0, 5, _s(text))
        self.set_x(self.l_margin)

    def numbered(self, n: int, text: str):
        self.set_font("Helvetica", "", 9)
        self.set_text_color(*NAVY)
        self.set_x(self.l_margin + 4)
        self.cell(6, 5, f"{n}.")
        self.multi_cell(self.w - self.r_margin - self.l_margin - 10, 5, _s(text))
        self.set_x(self.l_margin)

    def severity_badge(self, severity: str):
        """Inline coloured badge: critical / warning / notice."""
        color, label = SEVERITY_STYLE.get((severity or "").lower(), (GRAY_TEXT, "INFO"))
        self.set_font("Helvetica", "B", 7)
        self.set_text_color(*WHITE)
        self.set_fill_color(*color)
        self.cell(18, 4, label, fill=True, align="C")
        self.set_text_color(*NAVY)
        self.set_fill_color(*WHITE)

    def score_circle(self, score: int, grade: str):
        """Large overall-score indicator."""
        cx = self.l_margin + 18
        cy = self.get_y() + 12
        self.set_fill_color(*score_color(score))
        self.ellipse(cx - 12, cy - 10, 24, 20, "F")
        self.set_font("Helvetica", "B", 14)
        self.set_text_color(*WHITE)
        self.set_xy(cx - 12, cy - 5)
        self.cell(24, 10, str(score), align="C")
        self.set_font("Helvetica", "", 9)
        self.set_text_color(*GRAY_TEXT)
        self.set_xy(cx + 15, cy - 3)
        self.cell(0, 5, _s(f"/ 100  Health Score  |  Grade {grade}"))
        self.set_xy(self.l_margin, cy + 14)


# ---------------------------------------------------------------------------
# Section renderers
# ---------------------------------------------------------------------------

def _cover(pdf: HealthReportPDF):
    pdf.add_page()

    pdf.set_fill_color(*NAVY)
    pdf.rect(0, 0, pdf.w, 68, "F")

    pdf.set_xy(18, 18)
    pdf.set_font("Helvetica", "B", 22)
    pdf.set_text_color(*WHITE)
    pdf.cell(0, 10, "SEO Health Report", ln=True)

    pdf.set_x(18)
    pdf.set_font("Helvetica", "", 11)
    pdf.set_text_color(148, 163, 184)
    pdf.cell(0, 8, _s(pdf.report.get("url", "")), ln=True)

    pdf.set_xy(18, 72)

    ts = pdf.report.get("createdAt", "")
    try:
        date_str = datetime.fromisoformat(ts).strftime("%B %d, %Y")
    except (TypeError, ValueError):
        date_str = str(ts)[:10]

    meta_items = [
        ("Keyword",   pdf.report.get("keyword", "") or "-"),
        ("Date",      date_str),
        ("Report ID", str(pdf.report.get("reportId", ""))[:16] + "..."),
    ]
    for key, val in meta_items:
        pdf.set_font("Helvetica", "B", 9)
        pdf.set_text_color(*GRAY_TEXT)
        pdf.cell(32, 6, _s(f"{key}:"))
        pdf.set_font("Helvetica", "", 9)
        pdf.set_text_color(*NAVY)
        pdf.cell(0, 6, _s(val), ln=True)

    pdf.ln(6)
    pdf.rule()

    health = pdf.report.get("healthScore", {})
    pdf.score_circle(int(health.get("overall", 0)), health.get("grade", "F"))
    pdf.ln(2)


def _category_breakdown(pdf: HealthReportPDF):
    categories = pdf.report.get("healthScore", {}).get("categories", [])
    if not categories:
        return

    pdf.section_title("HS", "Category Breakdown")
    col_w = [78, 26, 36, 34]
    pdf.set_fill_color(*NAVY)
    pdf.set_text_color(*WHITE)
    pdf.set_font("Helvetica", "B", 8)
    for h, w in zip(["Category", "Score", "Points", "Issues"], col_w):
        pdf.cell(w, 6, h, fill=True)
    pdf.ln()

    for j, cat in enumerate(categories):
        bg = GRAY_BG if j % 2 == 0 else WHITE
        pdf.set_fill_color(*bg)
        pdf.set_font("Helvetica", "", 8)
        pdf.set_text_color(*NAVY)
        pdf.cell(col_w[0], 6, _s(cat.get("name", "")), fill=True)
        score = cat.get("score", 0)
        pdf.set_text_color(*score_color(score))
        pdf.set_font("Helvetica", "B", 8)
        pdf.cell(col_w[1], 6, f"{score:g}", fill=True)
        pdf.set_font("Helvetica", "", 8)
        pdf.set_text_color(*NAVY)
        pdf.cell(col_w[2], 6, f"{cat.get('weightedScore', 0):.2f} / {cat.get('maxScore', 0)}", fill=True)
        pdf.cell(col_w[3], 6, str(len(cat.get("issues", []))), fill=True)
        pdf.ln()
    pdf.ln(3)


def _issues(pdf: HealthReportPDF):
    issues = pdf.report.get("healthScore", {}).get("issues", [])
    if not issues:
        return

    pdf.add_page()
    pdf.section_title("!", "Issues by Severity")
    for severity in ("critical", "warning", "notice"):
        group = [i for i in issues if i.get("severity") == severity]
        if not group:
            continue
        pdf.sub_heading(f"{severity.capitalize()} ({len(group)})")
        for issue in group:
            pdf.severity_badge(severity)
            pdf.set_font("Helvetica", "B", 8)
            pdf.set_text_color(*NAVY)
            pdf.cell(2, 4, "")
            pdf.multi_cell(0, 4, _s(f"[{issue.get('category', '')}] {issue.get('message', '')}"))
            pdf.small(issue.get("recommendation", ""), indent=20)
            pdf.ln(1)
        pdf.ln(2)


def _recommendations(pdf: HealthReportPDF):
    recs = pdf.report.get("recommendations") or []
    if not recs:
        return

    pdf.section_title("AI", "Recommended Next Steps")
    for rec in recs:
        pdf.numbered(rec.get("priority", 0), rec.get("title", ""))
        pdf.small(
            f"{rec.get('description', '')}  "
            f"(effort: {rec.get('effort', '-')}, impact: {rec.get('impact', '-')})",
            indent=10,
        )
        pdf.ln(1)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_pdf(report: dict) -> bytes:
    """
    Build a PDF from a stored health report dict.
    Returns raw PDF bytes ready to send as an HTTP response.
    """
    pdf = HealthReportPDF(report)
    pdf.alias_nb_pages()

    _cover(pdf)
    _category_breakdown(pdf)
    _recommendations(pdf)
    _issues(pdf)

    return bytes(pdf.output())
