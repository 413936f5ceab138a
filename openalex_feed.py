"""OpenAlex works ingestion helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import requests

from affiliations import squish
from errors import MalformedInputError
from models import AuthorAffiliation, WorkRecord

_DEFAULT_API_URL = "https://api.openalex.org/works"
# Journal of Industrial Ecology
_DEFAULT_SOURCE_ID = "S203731762"
_DEFAULT_PER_PAGE = 200
REQUEST_TIMEOUT_SECONDS = 30


def fetch_works_payload(
    source_id: str | None = None,
    per_page: int | None = None,
    mailto: str | None = None,
) -> list[dict[str, Any]]:
    """Download every raw OpenAlex work published in one source.

    Follows cursor pagination until the API stops returning a next cursor.
    Request errors propagate to the caller.
    """
    api_url = os.environ.get("OPENALEX_API_URL", _DEFAULT_API_URL)
    source_id = source_id or os.environ.get("OPENALEX_SOURCE_ID", _DEFAULT_SOURCE_ID)
    per_page = per_page or int(os.environ.get("OPENALEX_PER_PAGE", _DEFAULT_PER_PAGE))
    if mailto is None:
        mailto = os.environ.get("OPENALEX_MAILTO", "")

    params: dict[str, Any] = {
        "filter": f"primary_location.source.id:{source_id}",
        "per-page": per_page,
        "cursor": "*",
    }
    if mailto:
        params["mailto"] = mailto

    results: list[dict[str, Any]] = []
    page = 0
    while True:
        response = requests.get(api_url, params=dict(params), timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict) or not isinstance(body.get("results"), list):
            raise MalformedInputError("Unexpected OpenAlex payload shape: expected an object with 'results'")

        page += 1
        results.extend(body["results"])
        logging.info(
            "OpenAlex fetch: source=%s page=%s page_count=%s total=%s",
            source_id,
            page,
            len(body["results"]),
            len(results),
        )

        next_cursor = (body.get("meta") or {}).get("next_cursor")
        if not next_cursor or not body["results"]:
            break
        params["cursor"] = next_cursor

    return results


def fetch_works(
    source_id: str | None = None,
    per_page: int | None = None,
    mailto: str | None = None,
) -> list[WorkRecord]:
    """Fetch and normalize all works for one OpenAlex source."""
    return parse_works_payload(fetch_works_payload(source_id, per_page=per_page, mailto=mailto))


def parse_works_payload(payload: Any) -> list[WorkRecord]:
    """Parse a list of raw OpenAlex works into WorkRecord objects.

    Raises MalformedInputError for any work without an id or publication
    year; no partial list is returned in that case.
    """
    if not isinstance(payload, list):
        raise MalformedInputError("Unexpected OpenAlex works payload: expected a list", record=payload)

    return [_parse_work(item, position) for position, item in enumerate(payload)]


def _parse_work(item: Any, position: int) -> WorkRecord:
    if not isinstance(item, dict):
        raise MalformedInputError(f"Work at position {position} is not an object", record=item)

    work_id = _as_str(item.get("id"))
    if not work_id:
        raise MalformedInputError(f"Work at position {position} is missing an id", record=item)

    year = item.get("publication_year")
    if isinstance(year, bool) or not isinstance(year, int):
        raise MalformedInputError(f"Work {work_id} is missing publication_year", record=item)

    open_access = item.get("open_access") if isinstance(item.get("open_access"), dict) else {}

    return WorkRecord(
        work_id=work_id,
        publication_year=year,
        is_oa=bool(open_access.get("is_oa")),
        authors=tuple(_parse_authorships(item.get("authorships"), work_id)),
        title=_as_str(item.get("title")) or _as_str(item.get("display_name")) or "",
        work_type=_as_str(item.get("type")) or "",
    )


def _parse_authorships(authorships: Any, work_id: str) -> list[AuthorAffiliation]:
    """One entry per (author, institution); authors without institutions get one None entry."""
    if not isinstance(authorships, list):
        return []

    parsed: list[AuthorAffiliation] = []
    for position, authorship in enumerate(authorships):
        if not isinstance(authorship, dict):
            logging.warning("Skipping non-object authorship %s on work %s", position, work_id)
            continue
        author = authorship.get("author") if isinstance(authorship.get("author"), dict) else {}
        name = _as_str(author.get("display_name")) or _as_str(authorship.get("raw_author_name"))
        if not name:
            logging.warning("Skipping authorship %s on work %s: no author name", position, work_id)
            continue
        orcid = _as_str(author.get("orcid"))

        institutions = authorship.get("institutions")
        names = [
            squish(inst.get("display_name"))
            for inst in institutions or []
            if isinstance(inst, dict)
        ]
        names = [n for n in names if n]
        if not names:
            parsed.append(AuthorAffiliation(display_name=name, author_id=orcid))
            continue
        for institution in names:
            parsed.append(AuthorAffiliation(display_name=name, author_id=orcid, institution_name=institution))

    return parsed


def save_works_json(payload: list[dict[str, Any]], path: str | Path) -> None:
    """Write raw OpenAlex works to a JSON file, creating parent dirs."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False)
    logging.info("Saved %s raw works to %s", len(payload), target)


def load_works_json(path: str | Path) -> list[dict[str, Any]]:
    with Path(path).open(encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as exc:
            raise MalformedInputError(f"Works file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise MalformedInputError(f"Works file {path} does not contain a JSON list")
    return payload


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None
