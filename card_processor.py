"""
card_processor.py – per-card content pipeline and the records it produces

process_card_content():  attachments → internal links → Markdown
filter_cards_by_verification():  prefer TRUSTED copies of a card
create_*_record():  the dicts handed to the sink
"""

import logging

from attachments import process_attachments
from card_links import card_slug, convert_internal_links
from guru_config import TRUSTED_STATE
from html_to_md import html_to_markdown

log = logging.getLogger(__name__)


def format_user_name(user) -> str:
    """{"firstName", "lastName"} or a plain string → display name."""
    if isinstance(user, dict):
        name = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()
        return name or "Unknown"
    return user or "Unknown"


def process_card_content(card: dict, all_cards, download_attachments: bool,
                         attachment_dir, headers: dict, download=None, logger=None) -> dict:
    """Returns {"convertedContent": markdown, "attachedFiles": [Attachment, …]}."""
    processed = card.get("content") or ""
    attached  = []

    if download_attachments:
        result    = process_attachments(card, headers, attachment_dir,
                                        download=download, logger=logger)
        processed = result["processedContent"]
        attached  = result["attachedFiles"]

    processed = convert_internal_links(processed, card, all_cards, logger=logger)
    return {
        "convertedContent": html_to_markdown(processed) if processed else "",
        "attachedFiles":    attached,
    }


def _normalized_title(card: dict) -> str:
    return (card.get("preferredPhrase") or card.get("title") or "Untitled").lower().strip()


def filter_cards_by_verification(cards, only_verified: bool, logger=None):
    """
    Keep every TRUSTED card; keep any other card only when no TRUSTED
    card shares its (normalized) title. Trusted cards come first.
    """
    if not only_verified:
        return cards

    logger  = logger or log
    trusted = [c for c in cards if c.get("verificationState") == TRUSTED_STATE]
    others  = [c for c in cards if c.get("verificationState") != TRUSTED_STATE]

    trusted_titles = {_normalized_title(c) for c in trusted}
    unique_others  = [c for c in others if _normalized_title(c) not in trusted_titles]

    logger.info("Processed %d cards (%d trusted, %d unique unverified) from %d total",
                len(trusted) + len(unique_others), len(trusted), len(unique_others), len(cards))
    return trusted + unique_others

# ── records ---------------------------------------------------------------
def create_card_record(card: dict, markdown: str, attached_files, boards, sink) -> dict:
    files  = [a.as_dict() for a in attached_files]
    boards = boards if boards is not None else (card.get("boards") or [])
    digest_source = {**card, "content": markdown, "attachedFiles": files, "boards": boards}

    record = {k: v for k, v in card.items() if k != "title"}
    record.update({
        "title":          card.get("preferredPhrase") or card.get("title") or "Untitled Card",
        "content":        markdown,
        "contentHtml":    card.get("content"),
        "attachedFiles":  files,
        "slug":           card_slug(card),
        "boards":         boards,
        "owner":          format_user_name(card.get("owner")),
        "lastModifiedBy": format_user_name(card.get("lastModifiedBy")),
        "guruId":         card.get("id"),
        "id":             sink.create_node_id(f"guru-card-{card.get('id')}"),
        "parent":         None,
        "children":       [],
        "internal": {
            "type":          "GuruCard",
            "contentDigest": sink.create_content_digest(digest_source),
        },
    })
    return record


def _entity_record(entity: dict, kind: str, sink) -> dict:
    return {
        **entity,
        "guruId":   entity.get("id"),
        "id":       sink.create_node_id(f"guru-{kind.lower()}-{entity.get('id')}"),
        "parent":   None,
        "children": [],
        "internal": {
            "type":          f"Guru{kind}",
            "contentDigest": sink.create_content_digest(entity),
        },
    }


def create_collection_record(collection: dict, sink) -> dict:
    return _entity_record(collection, "Collection", sink)


def create_board_record(board: dict, sink) -> dict:
    return _entity_record(board, "Board", sink)


def process_card(card: dict, all_cards, options, headers: dict, sink,
                 boards_with_parents=None, download=None, logger=None) -> dict:
    """Run the content pipeline for one card and emit its record."""
    result = process_card_content(card, all_cards, options.download_attachments,
                                  options.attachment_dir, headers,
                                  download=download, logger=logger)

    boards = card.get("boards") or []
    if boards and boards_with_parents:
        boards = [boards_with_parents.get(b.get("id"), b) for b in boards]

    record = create_card_record(card, result["convertedContent"], result["attachedFiles"],
                                boards, sink)
    sink.emit(record)
    return record
