from card_processor import (create_board_record, create_card_record, create_collection_record,
                            filter_cards_by_verification, format_user_name, process_card,
                            process_card_content)
from conftest import FakeDownloader
from dump_writer import DumpWriter, create_node_id
from guru_config import GuruOptions

A = "a1b2c3d4-0000-4000-8000-000000000001"
B = "b1c2d3e4-0000-4000-8000-000000000002"


# ── verification filter ------------------------------------------------------
def test_filter_is_identity_when_disabled():
    cards = [{"id": "1", "verificationState": "NEEDS_VERIFICATION"}]
    assert filter_cards_by_verification(cards, False) is cards


def test_trusted_copy_wins_over_unverified_duplicate():
    trusted = {"id": "1", "title": "Vacation Policy", "verificationState": "TRUSTED"}
    stale   = {"id": "2", "preferredPhrase": "  vacation policy ", "verificationState": "NEEDS_VERIFICATION"}
    assert filter_cards_by_verification([stale, trusted], True) == [trusted]


def test_cards_without_title_collision_both_survive():
    trusted = {"id": "1", "title": "Vacation Policy", "verificationState": "TRUSTED"}
    other   = {"id": "2", "title": "Expenses", "verificationState": "NEEDS_VERIFICATION"}
    assert filter_cards_by_verification([other, trusted], True) == [trusted, other]


def test_trust_state_is_case_sensitive_and_untitled_cards_share_a_bucket():
    trusted_untitled = {"id": "1", "verificationState": "TRUSTED"}
    lower_case       = {"id": "2", "verificationState": "trusted"}
    no_state         = {"id": "3", "title": "Untitled"}
    titled           = {"id": "4", "title": "Kept"}
    out = filter_cards_by_verification([lower_case, no_state, titled, trusted_untitled], True)
    assert out == [trusted_untitled, titled]


def test_filter_logs_summary(caplog):
    cards = [{"id": "1", "title": "x", "verificationState": "TRUSTED"},
             {"id": "2", "title": "x", "verificationState": "NEEDS_VERIFICATION"}]
    with caplog.at_level("INFO", logger="card_processor"):
        filter_cards_by_verification(cards, True)
    assert "Processed 1 cards (1 trusted, 0 unique unverified) from 2 total" in caplog.text


# ── user names -----------------------------------------------------------------
def test_format_user_name():
    assert format_user_name({"firstName": "Ada", "lastName": "Lovelace"}) == "Ada Lovelace"
    assert format_user_name({"firstName": "Ada"}) == "Ada"
    assert format_user_name({"firstName": None, "lastName": "  "}) == "Unknown"
    assert format_user_name({}) == "Unknown"
    assert format_user_name("ada@example.com") == "ada@example.com"
    assert format_user_name("") == "Unknown"
    assert format_user_name(None) == "Unknown"


# ── content pipeline -----------------------------------------------------------
CORPUS = [
    {"id": A, "title": "Card A",
     "content": f'<p>Go to <a href="https://app.getguru.com/card/q" data-ghq-guru-card-id="{B}">B</a></p>'
                '<img src="https://img.test/pic.png">'},
    {"id": B, "title": "Card B", "content": "<p>B body</p>"},
]


def test_pipeline_without_attachments_converts_links_and_markdown(tmp_path):
    download = FakeDownloader()
    result = process_card_content(CORPUS[0], CORPUS, False, tmp_path, {}, download=download)
    assert "Go to [B](/pages/card-b/)" in result["convertedContent"]
    assert "https://img.test/pic.png" in result["convertedContent"]
    assert result["attachedFiles"] == []
    assert download.calls == []


def test_pipeline_with_attachments_rewrites_images(tmp_path, png_download):
    download = FakeDownloader({"https://img.test/pic.png": png_download})
    result = process_card_content(CORPUS[0], CORPUS, True, tmp_path, {}, download=download)
    [att] = result["attachedFiles"]
    assert f"/guru-attachments/{att.filename}" in result["convertedContent"]


def test_pipeline_with_empty_body():
    card = {"id": A, "title": "Empty", "content": None}
    assert process_card_content(card, [card], True, "unused", {}, download=FakeDownloader()) == {
        "convertedContent": "", "attachedFiles": []}


# ── records -------------------------------------------------------------------------
def test_card_record_shape(tmp_path):
    card = {
        "id": A, "title": "Raw title", "preferredPhrase": "Nice Title",
        "content": "<p>hi</p>", "verificationState": "TRUSTED",
        "owner": {"firstName": "Ada", "lastName": "Lovelace"}, "lastModifiedBy": None,
        "boards": [{"id": "b1", "title": "Board"}],
    }
    sink = DumpWriter()
    record = create_card_record(card, "hi", [], None, sink)

    assert record["title"] == "Nice Title"
    assert record["preferredPhrase"] == "Nice Title"
    assert record["content"] == "hi"
    assert record["contentHtml"] == "<p>hi</p>"
    assert record["slug"] == "nice-title"
    assert record["boards"] == [{"id": "b1", "title": "Board"}]
    assert record["owner"] == "Ada Lovelace"
    assert record["lastModifiedBy"] == "Unknown"
    assert record["guruId"] == A
    assert record["id"] == create_node_id(f"guru-card-{A}")
    assert record["internal"]["type"] == "GuruCard"
    assert len(record["internal"]["contentDigest"]) == 32
    assert "Raw title" not in record.values()


def test_card_record_untitled():
    record = create_card_record({"id": A}, "", [], [], DumpWriter())
    assert record["title"] == "Untitled Card"
    assert record["slug"] == A


def test_digest_changes_with_content():
    sink = DumpWriter()
    one = create_card_record({"id": A, "title": "T"}, "one", [], [], sink)
    two = create_card_record({"id": A, "title": "T"}, "two", [], [], sink)
    assert one["id"] == two["id"]
    assert one["internal"]["contentDigest"] != two["internal"]["contentDigest"]


def test_collection_and_board_records():
    sink = DumpWriter()
    coll = create_collection_record({"id": "c1", "name": "Engineering"}, sink)
    board = create_board_record({"id": "b1", "title": "Onboarding", "parentFolder": None}, sink)
    assert coll["name"] == "Engineering" and coll["internal"]["type"] == "GuruCollection"
    assert coll["id"] == create_node_id("guru-collection-c1")
    assert board["parentFolder"] is None and board["internal"]["type"] == "GuruBoard"
    assert board["id"] == create_node_id("guru-board-b1")


def test_process_card_enriches_boards_and_emits(tmp_path):
    card = {"id": B, "title": "Card B", "content": "<p>B</p>",
            "boards": [{"id": "b1", "title": "One"}, {"id": "b2", "title": "Two"}]}
    parents = {"b1": {"id": "b1", "title": "One", "parentFolder": {"id": "f1", "title": "Folder"}}}
    sink = DumpWriter()

    record = process_card(card, [card], GuruOptions(), {}, sink, boards_with_parents=parents)

    assert sink.records == [record]
    assert record["boards"] == [parents["b1"], {"id": "b2", "title": "Two"}]
    assert record["content"] == "B"
