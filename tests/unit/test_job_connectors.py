import httpx
import pytest

from found.core.config import Settings
from found.core.errors import InvalidInputError
from found.db import crud
from found.services import job_connectors
from found.services.activity import list_activity

GREENHOUSE_PAYLOAD = {
    "jobs": [
        {
            "id": 101,
            "title": "Staff Platform Engineer",
            "absolute_url": "https://boards.greenhouse.io/acme-corp/jobs/101",
            "updated_at": "2025-03-10T12:00:00Z",
            "location": {"name": "Remote"},
            "content": "<p>Build <b>reliable</b> infrastructure.</p>",
        },
        {
            "id": 102,
            "title": "Product Designer",
            "absolute_url": "https://boards.greenhouse.io/acme-corp/jobs/102",
            "updated_at": None,
            "location": {"name": "New York"},
            "content": None,
        },
    ]
}

LEVER_PAYLOAD = [
    {
        "id": "abc",
        "text": "Senior Backend Engineer",
        "hostedUrl": "https://jobs.lever.co/globex/abc",
        "createdAt": 1741824000000,
        "descriptionPlain": "Own the payments API.",
        "categories": {"location": "Toronto", "commitment": "Full-time"},
    }
]


def _settings(**overrides) -> Settings:
    values = {"greenhouse_boards": "acme-corp", "lever_sites": "globex", "external_feed_workers": 2}
    values.update(overrides)
    return Settings(**values)


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _feeds(request: httpx.Request) -> httpx.Response:
    if request.url.host == "boards-api.greenhouse.io":
        return httpx.Response(200, json=GREENHOUSE_PAYLOAD)
    if request.url.host == "api.lever.co":
        return httpx.Response(200, json=LEVER_PAYLOAD)
    return httpx.Response(404)


def test_helpers_normalize_feed_text():
    assert job_connectors.normalize_company_name("acme-corp") == "Acme Corp"
    assert job_connectors.normalize_company_name("big_data co") == "Big Data Co"
    assert job_connectors.plain_text_snippet("<p>Hello <b>there</b></p>") == "Hello there"
    assert job_connectors.plain_text_snippet(None) == job_connectors.NO_SNIPPET
    assert job_connectors.plain_text_snippet("x" * 300).endswith("...")
    assert job_connectors.infer_level("Principal Engineer") == "Principal"
    assert job_connectors.infer_level("Engineering Manager") == "Manager"
    assert job_connectors.infer_level("Backend Engineer") == "Senior"


def test_discover_merges_feeds_newest_first():
    jobs = job_connectors.discover_external_jobs(_settings(), client=_client(_feeds))

    assert [job.id for job in jobs] == ["lev-globex-abc", "gh-acme-corp-101", "gh-acme-corp-102"]
    lever = jobs[0]
    assert lever.company == "Globex"
    assert lever.location == "Toronto"
    assert lever.posted_at is not None
    assert jobs[1].description_snippet == "Build reliable infrastructure."
    assert jobs[2].posted_at is None


def test_discover_filters_by_query_company_and_limit():
    settings = _settings()

    by_query = job_connectors.discover_external_jobs(settings, query="remote", client=_client(_feeds))
    by_company = job_connectors.discover_external_jobs(settings, company="acme", client=_client(_feeds))
    limited = job_connectors.discover_external_jobs(settings, limit=1, client=_client(_feeds))

    assert [job.id for job in by_query] == ["gh-acme-corp-101"]
    assert {job.company for job in by_company} == {"Acme Corp"}
    assert len(limited) == 1


def test_failing_feed_is_skipped():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.lever.co":
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(500)

    assert job_connectors.discover_external_jobs(_settings(), client=_client(handler)) == []


def test_malformed_feed_is_skipped():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.lever.co":
            return httpx.Response(200, content=b"not json")
        return httpx.Response(200, json=GREENHOUSE_PAYLOAD)

    jobs = job_connectors.discover_external_jobs(_settings(), client=_client(handler))

    assert {job.source for job in jobs} == {"greenhouse"}


def test_require_connector_availability():
    with pytest.raises(InvalidInputError):
        job_connectors.require_connector_availability(_settings(greenhouse_boards="", lever_sites=" , "))
    job_connectors.require_connector_availability(_settings(greenhouse_boards="", lever_sites="globex"))


def test_import_dedupes_against_catalog(db, clock, seed_catalog):
    seed_catalog()
    crud.add_job(db, title="product designer", company="acme corp", match_score=60)

    result = job_connectors.import_external_jobs(db, _settings(), client=_client(_feeds), clock=clock)

    assert result["imported"] == 2
    assert result["skipped"] == 1
    imported = {job.title: job for job in crud.list_jobs(db) if job.id.startswith("extjob")}
    assert set(imported) == {"Senior Backend Engineer", "Staff Platform Engineer"}

    staff = imported["Staff Platform Engineer"]
    assert staff.logo == "AC"
    assert staff.level == "Staff"
    assert staff.posted == "Mar 10"
    assert staff.description.endswith("Apply: https://boards.greenhouse.io/acme-corp/jobs/101")
    # Profile targets "Staff Engineer": the first word of the role appears in the title.
    assert staff.match_score == 80
    assert list_activity(db)[0].title == "Imported 2 jobs from external connectors"


def test_match_score_is_capped():
    profile = type("Profile", (), {"preferred_companies": ["Acme"], "target_roles": ["Staff Engineer"]})()

    assert job_connectors.compute_match_score("Staff Engineer", "acme", profile) == 92
    assert job_connectors.compute_match_score("Designer", "Globex", None) == 72
