"""Search endpoint contract: validation, pagination bounds, response shape and
failure reporting."""

from types import SimpleNamespace

from sqlalchemy.exc import OperationalError, ProgrammingError

from tests.fakes import make_dataset, sql_of

SEARCH_URL = "/api/datasets/search"


def test_missing_query_returns_400(search_client, fake_session):
    response = search_client.get(SEARCH_URL)

    assert response.status_code == 400
    assert response.json() == {"error": 'Query parameter "q" is required'}
    assert fake_session.statements == []


def test_empty_query_returns_400(search_client, fake_session):
    response = search_client.get(SEARCH_URL, params={"q": ""})

    assert response.status_code == 400
    assert response.json()["error"] == 'Query parameter "q" is required'
    assert fake_session.statements == []


def test_returns_items_total_and_query(search_client, fake_session):
    fake_session.total = 2
    fake_session.rows = [
        (make_dataset(id="a", name="engineering docs"), 0.6079271),
        (make_dataset(id="b", name="engineering handbook"), 0.0607927),
    ]

    response = search_client.get(SEARCH_URL, params={"q": "engineering"})

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"items", "total", "query"}
    assert body["total"] == 2
    assert body["query"] == "engineering"
    assert [item["id"] for item in body["items"]] == ["a", "b"]
    assert body["items"][0]["relevance_score"] == 0.6079271
    assert body["items"][0]["storage_backend"] == "s3"
    assert body["items"][0]["tags"] == ["engineering", "docs"]


def test_no_matches_returns_empty_page(search_client, fake_session):
    response = search_client.get(SEARCH_URL, params={"q": "nonexistent"})

    assert response.status_code == 200
    assert response.json() == {"items": [], "total": 0, "query": "nonexistent"}
    assert len(fake_session.statements) == 1


def test_limit_above_max_is_capped(search_client, fake_session):
    fake_session.total = 1
    fake_session.rows = [(make_dataset(), 0.1)]

    search_client.get(SEARCH_URL, params={"q": "docs", "limit": "500"})

    page = fake_session.statements[1]
    assert sql_of(page, literal=True).endswith("LIMIT 100 OFFSET 0")


def test_malformed_pagination_falls_back_to_defaults(search_client, fake_session):
    fake_session.total = 1
    fake_session.rows = [(make_dataset(), 0.1)]

    response = search_client.get(
        SEARCH_URL, params={"q": "docs", "limit": "many", "offset": "later"}
    )

    assert response.status_code == 200
    page = fake_session.statements[1]
    assert sql_of(page, literal=True).endswith("LIMIT 20 OFFSET 0")


def test_zero_or_negative_limit_does_not_crash(search_client, fake_session):
    fake_session.total = 1
    fake_session.rows = [(make_dataset(), 0.1)]

    for limit in ("0", "-10"):
        response = search_client.get(SEARCH_URL, params={"q": "docs", "limit": limit})
        assert response.status_code == 200

    page = fake_session.statements[-1]
    assert sql_of(page, literal=True).endswith("LIMIT 1 OFFSET 0")


def test_filters_are_combined_with_text_match(search_client, fake_session):
    search_client.get(
        SEARCH_URL,
        params={"q": "handbook", "source_type": "confluence", "status": "active"},
    )

    count_sql = sql_of(fake_session.statements[0], literal=True)
    assert "datasets.search_vector @@ plainto_tsquery('english', 'handbook')" in count_sql
    assert "AND datasets.source_type = 'confluence'" in count_sql
    assert "AND datasets.status = 'active'" in count_sql


def test_tags_filter_reaches_the_store(search_client, fake_session):
    search_client.get(SEARCH_URL, params={"q": "docs", "tags": "engineering,docs"})

    count_sql = sql_of(fake_session.statements[0])
    assert "datasets.tags && " in count_sql


def test_fuzzy_flag_switches_to_similarity_search(search_client, fake_session):
    search_client.get(SEARCH_URL, params={"q": "enginering", "fuzzy": "true"})
    search_client.get(SEARCH_URL, params={"q": "enginering", "fuzzy": "1"})

    fuzzy_sql, plain_sql = (sql_of(stmt) for stmt in fake_session.statements)
    assert "similarity(datasets.name" in fuzzy_sql
    assert "similarity" not in plain_sql


def test_storage_failure_returns_classified_500(search_client, fake_session):
    orig = Exception("relation datasets does not exist")
    orig.pgcode = "42P01"
    orig.diag = SimpleNamespace(message_primary='relation "datasets" does not exist')
    fake_session.count_error = ProgrammingError("SELECT count(*) FROM datasets", {}, orig)

    response = search_client.get(SEARCH_URL, params={"q": "docs"})

    assert response.status_code == 500
    assert response.json() == {
        "error": 'Search failed: relation "datasets" does not exist'
    }


def test_page_failure_returns_no_partial_results(search_client, fake_session):
    fake_session.total = 10
    fake_session.page_error = OperationalError(
        "SELECT datasets.id FROM datasets", {}, Exception("canceling statement due to statement timeout")
    )

    response = search_client.get(SEARCH_URL, params={"q": "docs"})

    assert response.status_code == 500
    body = response.json()
    assert body == {"error": "Search failed: canceling statement due to statement timeout"}
    assert "SELECT" not in body["error"]


def test_offset_past_total_returns_empty_page(search_client, fake_session):
    fake_session.total = 3
    fake_session.rows = [(make_dataset(), 0.1)]

    response = search_client.get(
        SEARCH_URL, params={"q": "docs", "offset": "100000000000000000000"}
    )

    assert response.status_code == 200
    assert response.json() == {"items": [], "total": 3, "query": "docs"}
    assert len(fake_session.statements) == 1
