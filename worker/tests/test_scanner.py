"""End-to-end scans against canned pages; no network is used."""

import requests

from qualifier.core import scanner
from qualifier.core.models import DirectoryListing, Enrichment, Lead, ScanResult
from qualifier.core.recommend import ANGLE_NO_CAPTURE, ANGLE_NO_WEBSITE, DEFAULT_ANGLE
from qualifier.core.scanner import scan_lead

SITE = "https://acme.example"

BARE_PAGE = """
<html><head><title>Acme</title></head>
<body><h1>Acme Plumbing</h1><p>We fix pipes.</p></body></html>
"""

PERFECT_PAGE = """
<html><head><meta name="viewport" content="width=device-width, initial-scale=1"></head>
<body>
  <a href="https://calendly.com/acme">Book online</a>
  <a href="tel:+15555550100">(555) 555-0100</a>
  <form action="/send"><input name="email"></form>
  <p>Hours: Monday to Friday, 8am to 5pm</p>
  <p>Proudly serving Springfield</p>
  <p>Read our reviews</p>
</body></html>
"""

HOME_WITH_CONTACT_LINK = """
<html><head><meta name="viewport" content="width=device-width"></head>
<body>
  <a href="https://calendly.com/acme">Book online</a>
  <a href="tel:+15555550100">Call</a>
  <a href="/contact-us">Contact</a>
  <p>Hours: Monday to Friday</p>
  <p>Serving Springfield</p>
  <p>Testimonials</p>
</body></html>
"""

CONTACT_PAGE = "<html><body><form action='/send'><textarea></textarea></form></body></html>"


def site_lead(**kwargs):
    values = {"name": "Acme Plumbing", "city": "Springfield", "website": "acme.example"}
    values.update(kwargs)
    return Lead(**values)


def test_scenario_no_website():
    result = scan_lead(Lead(name="Acme Plumbing", city="Springfield"))

    assert result == ScanResult(
        score=2,
        reasons=("No website listed",),
        missing=(),
        recommended_angle=ANGLE_NO_WEBSITE,
        confidence="low",
        findings={},
        error=None,
    )


def test_no_website_adds_directory_bonus_and_stays_low_confidence():
    lead = Lead(name="Acme", directory=DirectoryListing(verified=True, claimed=True))
    result = scan_lead(lead)
    assert result.score == 4
    assert result.confidence == "low"
    assert "No website listed" in result.reasons


def test_scenario_bare_site(make_session, make_response):
    session = make_session({SITE: make_response(BARE_PAGE, url=SITE + "/")})

    result = scan_lead(site_lead(), session=session)

    assert result.score == 8
    assert result.confidence == "high"
    assert set(result.missing) == {
        "No booking link found",
        "No contact form on homepage",
        "No clickable phone link",
        "Not mobile optimized",
        "No business hours found",
        "Service area not matched",
        "No reviews/testimonials found",
    }
    assert result.reasons == ("No booking link found", "No contact form on homepage", "No clickable phone link")
    assert result.recommended_angle == ANGLE_NO_CAPTURE
    assert result.findings["has_https"] is False
    assert result.findings["final_url"] == SITE + "/"
    assert result.findings["contact_form_source"] == "none"
    assert result.error is None
    assert len(session.calls) == 1


def test_scenario_closed_business_with_perfect_site(make_session, make_response):
    session = make_session({SITE: make_response(PERFECT_PAGE)})
    lead = site_lead(
        directory=DirectoryListing(
            verified=True,
            claimed=True,
            hours_present=True,
            permanently_closed=True,
            review_count=80,
            rating=4.3,
        )
    )

    result = scan_lead(lead, session=session)

    assert result.score == 0
    assert result.reasons[0] == "Business is marked CLOSED on Google"
    assert result.recommended_angle == "Skip — business closed"
    assert result.missing == ()


def test_perfect_site_scores_directory_bonus_only(make_session, make_response):
    session = make_session({SITE: make_response(PERFECT_PAGE)})
    result = scan_lead(site_lead(directory=DirectoryListing(verified=True, rating=4.0)), session=session)
    assert result.score == 2
    assert result.confidence == "high"
    assert result.recommended_angle == DEFAULT_ANGLE
    assert result.reasons == ()


def test_scenario_contact_form_on_secondary_page(make_session, make_response):
    session = make_session(
        {
            SITE: make_response(HOME_WITH_CONTACT_LINK, url=SITE + "/"),
            SITE + "/contact-us": make_response(CONTACT_PAGE),
        }
    )

    result = scan_lead(site_lead(), session=session)

    assert result.findings["has_contact_form"] is True
    assert result.findings["contact_form_source"] == "contact_page"
    assert result.findings["contact_page_url"] == SITE + "/contact-us"
    assert result.confidence == "medium"
    assert "Contact form hidden on secondary page" in result.reasons
    assert "No contact form on homepage" not in result.missing
    assert result.score == 0


def test_secondary_fetch_failure_is_isolated(make_session, make_response):
    session = make_session(
        {
            SITE: make_response(HOME_WITH_CONTACT_LINK, url=SITE + "/"),
            SITE + "/contact-us": requests.exceptions.ConnectionError("boom"),
        }
    )

    result = scan_lead(site_lead(), session=session)

    assert result.confidence == "high"
    assert result.error is None
    assert "error" not in result.findings
    assert result.findings["has_contact_form"] is False
    assert result.findings["contact_form_source"] == "none"
    assert "No contact form on homepage" in result.missing
    assert result.score == 1


def test_scenario_timeout(make_session):
    session = make_session({SITE: requests.exceptions.ReadTimeout("read timed out")})

    result = scan_lead(site_lead(), session=session)

    assert result.confidence == "low"
    assert result.findings == {"error": "Scan timed out (12s)"}
    assert result.error == "Scan timed out (12s)"
    assert result.reasons[0].startswith("Site unreachable:")
    assert result.reasons[0] == "Site unreachable: Scan timed out (12s)"
    assert result.missing == ()


def test_private_host_short_circuits_without_fetch(make_session):
    session = make_session()
    result = scan_lead(site_lead(website="http://192.168.1.20"), session=session)

    assert session.calls == []
    assert result.confidence == "low"
    assert result.reasons == ("Site unreachable: Invalid URL",)


def test_http_status_failure(make_session, make_response):
    session = make_session({SITE: make_response("nope", status_code=503)})
    result = scan_lead(site_lead(), session=session)
    assert result.findings["error"] == "Status 503"
    assert result.confidence == "low"


def test_closed_reason_leads_unreachable_reason(make_session):
    session = make_session({SITE: requests.exceptions.ConnectTimeout()})
    lead = site_lead(directory=DirectoryListing(temporarily_closed=True))

    result = scan_lead(lead, session=session)

    assert result.reasons == ("Business is marked CLOSED on Google", "Site unreachable: Connection timed out")
    assert result.score == 0


def test_unexpected_errors_never_escape(monkeypatch, make_session, make_response):
    def explode(*args, **kwargs):
        raise KeyError("parser blew up")

    monkeypatch.setattr(scanner, "extract_signals", explode)
    session = make_session({SITE: make_response(BARE_PAGE)})

    result = scan_lead(site_lead(), session=session)

    assert result.confidence == "low"
    assert result.reasons[0].startswith("Site unreachable:")


def test_ai_enrichment_shapes_angle_and_reasons(make_session, make_response):
    session = make_session({SITE: make_response(PERFECT_PAGE)})
    enrichment = Enrichment(status="enriched", outreach_hook="Reviews mention missed calls", weaknesses=("No SMS follow-up",))

    result = scan_lead(site_lead(enrichment=enrichment), session=session)

    assert result.recommended_angle == "AI Insight: Reviews mention missed calls"
    assert result.reasons == ("Weakness: No SMS follow-up",)


def test_scan_is_idempotent(make_session, make_response):
    session = make_session(
        {
            SITE: make_response(HOME_WITH_CONTACT_LINK, url=SITE + "/"),
            SITE + "/contact-us": make_response(CONTACT_PAGE),
        }
    )
    lead = site_lead(directory=DirectoryListing(claimed=True, review_count=30))

    first = scan_lead(lead, session=session)
    second = scan_lead(lead, session=session)

    assert first == second


def test_owned_session_is_closed(monkeypatch, make_response):
    closed = []

    class OwnedSession:
        def get(self, url, **kwargs):
            response = make_response(BARE_PAGE)
            response.url = url
            return response

        def close(self):
            closed.append(True)

    monkeypatch.setattr(scanner.requests, "Session", OwnedSession)

    scan_lead(site_lead())

    assert closed == [True]


def test_https_reflects_the_listed_url_not_the_redirect(make_session, make_response):
    session = make_session(
        {
            "http://acme.example": make_response(PERFECT_PAGE, url=SITE + "/"),
            SITE: make_response(PERFECT_PAGE),
        }
    )

    redirected = scan_lead(site_lead(website="http://acme.example"), session=session)
    secure = scan_lead(site_lead(website="https://acme.example"), session=session)

    assert redirected.findings["has_https"] is False
    assert redirected.findings["final_url"] == SITE + "/"
    assert secure.findings["has_https"] is True
