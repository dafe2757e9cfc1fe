#!/usr/bin/env python3
"""
download_cards.py – export every Guru card (plus its attachments) as Markdown

Folder layout
-------------
dump/
├─ cards/<slug>.md + <slug>.meta.json   (<slug>-<guru id> on a clash)
├─ collections/<id>.json        (--fetch-collections, user mode)
└─ boards/<id>.json             (--fetch-boards, user mode)
static/guru-attachments/        (--download-attachments)

Credentials come from GURU_* environment variables or the flags below.
"""

import argparse, functools, logging, sys

import guru_api
from card_processor import (create_board_record, create_collection_record,
                            filter_cards_by_verification, process_card)
from dump_writer import DumpWriter
from guru_api import GuruAPIError
from guru_config import GuruConfigError, GuruOptions, auth_headers

log = logging.getLogger(__name__)

# ── 1.  Board graph --------------------------------------------------------
def collect_boards(cards) -> dict:
    """Every distinct board referenced by the corpus, keyed by id."""
    boards = {}
    for card in cards or []:
        for board in card.get("boards") or []:
            if board.get("id"):
                boards[board["id"]] = board
    return boards

# ── 2.  Corpus ----------------------------------------------------------------
def process_cards(cards, options, headers, sink, *,
                  session=None, download=None, logger=None) -> dict:
    """
    Resolve the board → parent-folder graph once, drop unverified
    duplicates, then run the content pipeline card by card. The
    filtered corpus is what internal links resolve against.
    """
    logger = logger or log
    boards = collect_boards(cards)
    with_parents = guru_api.fetch_board_parents(boards, headers, session=session,
                                                timeout=options.timeout) if boards else {}
    to_process = filter_cards_by_verification(cards or [], options.only_verified, logger=logger)

    for card in to_process:
        process_card(card, to_process, options, headers, sink,
                     boards_with_parents=with_parents,
                     download=download, logger=logger)
    return {"cardsProcessed": len(to_process), "boardsFound": len(boards)}

# ── 3.  Whole run -------------------------------------------------------------
def source_cards(options: GuruOptions, sink, *, session=None, download=None, logger=None) -> dict:
    """
    Validate options, pull the corpus and emit one record per card
    (and per collection / board when asked). Corpus-level API errors
    are logged and re-raised; everything else degrades per item.
    """
    logger   = logger or log
    options.validate()
    headers  = auth_headers(options)
    download = download or functools.partial(guru_api.download, session=session,
                                           timeout=options.timeout)
    summary  = {"cardsProcessed": 0, "boardsFound": 0,
                "collectionsCreated": 0, "boardsCreated": 0}

    logger.info("Guru export: starting (auth mode: %s)", options.auth_mode)
    try:
        if options.auth_mode == "collection":
            cards = guru_api.fetch_cards_from_search(headers, session=session,
                                                     timeout=options.timeout)
            summary.update(process_cards(
                cards, options, headers, sink,
                session=session, download=download, logger=logger))
            logger.info("Collection mode: Processed %d cards, found %d boards",
                        summary["cardsProcessed"], summary["boardsFound"])
            return summary

        team  = options.team_name
        cards = guru_api.fetch_cards_from_team(team, headers, session=session,
                                               timeout=options.timeout)
        summary.update(process_cards(
            cards, options, headers, sink,
            session=session, download=download, logger=logger))
        logger.info("User mode: Processed %d cards", summary["cardsProcessed"])

        if options.fetch_collections:
            collections = guru_api.fetch_collections(team, headers, session=session,
                                                     timeout=options.timeout)
            for collection in collections:
                sink.emit(create_collection_record(collection, sink))
            summary["collectionsCreated"] = len(collections)
            logger.info("Created %d collection nodes", len(collections))

        if options.fetch_boards:
            boards = guru_api.fetch_boards(team, headers, session=session,
                                           timeout=options.timeout)
            with_parents = guru_api.fetch_board_parents(
                {b["id"]: b for b in boards}, headers,
                session=session, timeout=options.timeout)
            for board in boards:
                sink.emit(create_board_record(with_parents.get(board["id"], board), sink))
            summary["boardsCreated"] = len(boards)
            logger.info("Created %d board nodes", len(boards))
    except GuruAPIError as e:
        logger.error("Error fetching Guru data: %s", e)
        raise

    return summary

# ── 4.  Main ------------------------------------------------------------------
def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Export Guru cards to Markdown.")
    p.add_argument("--auth-mode", choices=("user", "collection"))
    p.add_argument("--team-name")
    p.add_argument("--collection-id")
    p.add_argument("--output-dir")
    p.add_argument("--attachment-dir")
    p.add_argument("--download-attachments", action="store_true", default=None)
    p.add_argument("--only-verified", action="store_true", default=None)
    p.add_argument("--fetch-collections", action="store_true", default=None)
    p.add_argument("--fetch-boards", action="store_true", default=None)
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    options = GuruOptions.from_env(
        auth_mode=args.auth_mode,
        team_name=args.team_name,
        collection_id=args.collection_id,
        output_dir=args.output_dir,
        attachment_dir=args.attachment_dir,
        download_attachments=args.download_attachments,
        only_verified=args.only_verified,
        fetch_collections=args.fetch_collections,
        fetch_boards=args.fetch_boards,
    )
    sink = DumpWriter(options.output_dir)

    try:
        summary = source_cards(options, sink)
    except (GuruConfigError, GuruAPIError) as e:
        sys.exit(f"✗ {e}")

    for record in sink.of_type("GuruCard"):
        print(f"✓ {record['guruId']} → {sink.card_stems.get(record['id'], record['slug'])}.md "
              f"({len(record['attachedFiles'])} attachment(s))")
    print(f"\nFinished: {summary['cardsProcessed']} cards, "
          f"{summary['collectionsCreated']} collections, "
          f"{summary['boardsCreated']} boards → {options.output_dir}/")

if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit("\nInterrupted by user.")
