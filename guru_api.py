"""
guru_api.py – thin wrapper around the Guru REST API

Every corpus-level fetch raises GuruAPIError on a non-2xx answer.
fetch_parent() and download() never raise: they answer None instead,
so one missing folder or one dead image never stops an export.
"""

import logging
from dataclasses import dataclass

import requests

from guru_config import GURU_API_BASE, GURU_SEARCH_BASE, CONTENT_HOST, DEFAULT_TIMEOUT

log = logging.getLogger(__name__)


# ── 1.  Session ----------------------------------------------------------
s = requests.Session()


class GuruAPIError(RuntimeError):
    def __init__(self, what: str, status: int, status_text: str, body: str = ""):
        msg = f"Failed to fetch {what}: {status} {status_text}"
        if body:
            msg += f" - {body}"
        super().__init__(msg)
        self.status      = status
        self.status_text = status_text


@dataclass(frozen=True)
class Download:
    content:      bytes
    content_type: str


def _get_json(url: str, headers: dict, what: str, *, session=None, timeout=DEFAULT_TIMEOUT):
    r = (session or s).get(url, headers=headers, timeout=timeout)
    if not r.ok:
        raise GuruAPIError(what, r.status_code, r.reason)
    return r.json()

# ── 2.  Cards ------------------------------------------------------------
def fetch_cards_from_search(headers: dict, *, session=None, timeout=DEFAULT_TIMEOUT) -> list[dict]:
    """
    Collection mode: an empty search query returns every card the
    collection token can see. The API pages via a Link: rel="next" header.
    """
    sess  = session or s
    url   = f"{GURU_SEARCH_BASE}?q="
    cards: list[dict] = []
    page  = 0
    while url:
        page += 1
        log.debug("search page %d: %s", page, url)
        r = sess.get(url, headers=headers, timeout=timeout)
        if not r.ok:
            body = r.text
            log.error("search failed: status=%s body=%s", r.status_code, body[:400])
            raise GuruAPIError("cards via search", r.status_code, r.reason, body)

        results = r.json()
        if results is None:
            log.info("search page %d: null response", page)
            break
        if not isinstance(results, list):
            log.info("search page %d: unexpected payload (%s)", page, type(results).__name__)
            break
        cards.extend(results)
        url = (r.links.get("next") or {}).get("url")

    log.info("Found %d cards via search", len(cards))
    return cards


def fetch_cards_from_team(team_name: str, headers: dict, *, session=None, timeout=DEFAULT_TIMEOUT) -> list[dict]:
    return _get_json(f"{GURU_API_BASE}/teams/{team_name}/cards", headers, "cards",
                     session=session, timeout=timeout)

# ── 3.  Collections, boards, folders -------------------------------------
def fetch_collections(team_name: str, headers: dict, *, session=None, timeout=DEFAULT_TIMEOUT) -> list[dict]:
    return _get_json(f"{GURU_API_BASE}/teams/{team_name}/collections", headers, "collections",
                     session=session, timeout=timeout)


def fetch_boards(team_name: str, headers: dict, *, session=None, timeout=DEFAULT_TIMEOUT) -> list[dict]:
    return _get_json(f"{GURU_API_BASE}/teams/{team_name}/boards", headers, "boards",
                     session=session, timeout=timeout)


def fetch_parent(board_id: str, headers: dict, *, session=None, timeout=DEFAULT_TIMEOUT) -> dict | None:
    """Parent folder of a board, or None (no parent, 404, network trouble)."""
    try:
        r = (session or s).get(f"{GURU_API_BASE}/folders/{board_id}/parent",
                               headers=headers, timeout=timeout)
    except requests.RequestException as e:
        log.warning("Could not fetch parent for board %s: %s", board_id, e)
        return None
    if not r.ok:
        log.debug("board %s has no parent (%s)", board_id, r.status_code)
        return None
    try:
        parent = r.json()
    except ValueError as e:                # proxy / error page served as 200
        log.warning("Unreadable parent for board %s: %s", board_id, e)
        return None
    if not isinstance(parent, dict):
        log.warning("Unexpected parent payload for board %s: %r", board_id, parent)
        return None
    return parent


def fetch_board_parents(boards: dict, headers: dict, *, session=None, timeout=DEFAULT_TIMEOUT) -> dict:
    """{board_id: board} → {board_id: {**board, "parentFolder": parent-or-None}}"""
    log.info("Fetching parent information for %d boards", len(boards))
    enriched = {}
    for board_id, board in boards.items():
        parent = fetch_parent(board_id, headers, session=session, timeout=timeout)
        if parent:
            log.debug("board %s has parent %s", board.get("title"), parent.get("title"))
        enriched[board_id] = {**board, "parentFolder": parent}
    return enriched

# ── 4.  Files ------------------------------------------------------------
def download(url: str, headers: dict, *, session=None, timeout=DEFAULT_TIMEOUT) -> Download | None:
    """GET raw bytes. None on any non-2xx or network error – never raises."""
    req_headers = dict(headers or {})
    if CONTENT_HOST in url:               # CDN serves HTML unless asked for */*
        req_headers["Accept"] = "*/*"
        req_headers.pop("Accept-Language", None)

    try:
        r = (session or s).get(url, headers=req_headers, timeout=timeout)
        log.debug("GET %s → %s %s", url, r.status_code, r.headers.get("content-type"))
        if not r.ok:
            log.warning("Failed to download file from %s: %s", url, r.status_code)
            return None
        return Download(
            content=r.content,
            content_type=r.headers.get("content-type") or "application/octet-stream",
        )
    except requests.RequestException as e:
        log.warning("Network error downloading file from %s: %s", url, e)
        return None
