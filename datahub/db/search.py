"""Full-text and fuzzy search over the dataset catalog.

The store keeps ``datasets.search_vector`` in sync with name, description,
tags and owner (weights A-D) through a trigger, and pg_trgm provides
``similarity()``. This module only composes predicates and ranking on top of
those capabilities:

* ``build_search_query`` turns a ``SearchRequest`` into an ordered predicate
  list (text match first, then exact filters). The query text is a single
  named bind parameter shared by every clause that needs it, so the count and
  page statements bind exactly the same values.
* ``relevance_score`` is ``ts_rank`` in plain mode and
  ``GREATEST(similarity(name, q), ts_rank)`` in fuzzy mode.
* ``search_datasets`` runs the count and the ranked page.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from sqlalchemy import Text, bindparam, func, literal_column, or_, select
from sqlalchemy.orm import Session, defer
from sqlalchemy.sql.elements import ColumnElement

from datahub import config
from datahub.errors import MissingQuery
from datahub.models import Dataset
from datahub.models.service import (
    DatasetSearchResult,
    SearchRequest,
    SearchResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
# Postgres OFFSET is a bigint
MAX_OFFSET = 2**63 - 1
TEXT_SEARCH_CONFIG = literal_column("'english'")


def parse_int(value: Optional[str], default: int) -> int:
    """Lenient integer parsing: anything unparseable is treated as absent."""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_LIMIT))


def clamp_offset(offset: int) -> int:
    return max(0, min(offset, MAX_OFFSET))


def parse_tags(tags: Optional[str]) -> list[str]:
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


def parse_search_request(
    q: Optional[str],
    source_type: Optional[str] = None,
    status: Optional[str] = None,
    owner: Optional[str] = None,
    tags: Optional[str] = None,
    fuzzy: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
) -> SearchRequest:
    if not q:
        raise MissingQuery()

    return SearchRequest(
        q=q,
        source_type=source_type or None,
        status=status or None,
        owner=owner or None,
        tags=parse_tags(tags),
        fuzzy=fuzzy == "true",
        limit=clamp_limit(parse_int(limit, DEFAULT_LIMIT)),
        offset=clamp_offset(parse_int(offset, 0)),
    )


@dataclass
class SearchQuery:
    predicates: list[ColumnElement]
    score: ColumnElement


def build_search_query(request: SearchRequest) -> SearchQuery:
    query_param = bindparam("q", request.q, type_=Text)
    ts_query = func.plainto_tsquery(TEXT_SEARCH_CONFIG, query_param)
    text_match = Dataset.search_vector.bool_op("@@")(ts_query)

    if request.fuzzy:
        threshold = bindparam(
            "similarity_threshold", config.SEARCH_SIMILARITY_THRESHOLD
        )
        text_match = or_(
            func.similarity(Dataset.name, query_param) >= threshold, text_match
        )

    predicates = [text_match]
    if request.source_type:
        predicates.append(Dataset.source_type == request.source_type)
    if request.status:
        predicates.append(Dataset.status == request.status)
    if request.owner:
        predicates.append(Dataset.owner == request.owner)
    if request.tags:
        predicates.append(Dataset.tags.overlap(request.tags))

    return SearchQuery(
        predicates=predicates,
        score=relevance_score(query_param, ts_query, request.fuzzy),
    )


def relevance_score(query_param, ts_query, fuzzy: bool) -> ColumnElement:
    lexical_rank = func.ts_rank(Dataset.search_vector, ts_query)
    if not fuzzy:
        return lexical_rank.label("relevance_score")
    # A close name match should never rank below its own weak lexical rank
    return func.greatest(
        func.similarity(Dataset.name, query_param), lexical_rank
    ).label("relevance_score")


def count_statement(search_query: SearchQuery):
    return select(func.count()).select_from(Dataset).where(*search_query.predicates)


def page_statement(search_query: SearchQuery, limit: int, offset: int):
    # Ties are broken by recency, then id, so repeated searches page stably
    return (
        select(Dataset, search_query.score)
        .options(defer(Dataset.search_vector))
        .where(*search_query.predicates)
        .order_by(
            search_query.score.desc(),
            Dataset.created_at.desc(),
            Dataset.id.asc(),
        )
        .limit(limit)
        .offset(offset)
    )


def search_datasets(session: Session, request: SearchRequest) -> SearchResponse:
    search_query = build_search_query(request)

    total = int(session.scalar(count_statement(search_query)) or 0)
    if total == 0 or request.offset >= total:
        return SearchResponse(items=[], total=total, query=request.q)

    rows = session.execute(
        page_statement(search_query, request.limit, request.offset)
    ).all()

    items = [
        DatasetSearchResult.model_validate(dataset).model_copy(
            update={"relevance_score": None if score is None else float(score)}
        )
        for dataset, score in rows
    ]
    logger.debug(
        f"Search q={request.q!r} fuzzy={request.fuzzy} total={total} returned={len(items)}"
    )
    return SearchResponse(items=items, total=total, query=request.q)
