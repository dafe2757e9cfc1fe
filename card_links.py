"""
card_links.py – turn links between Guru cards into local page links

Pure string work on purpose: card HTML is often unbalanced, so nothing
here parses it. Links whose target card isn't in the corpus stay as-is.
"""

import logging, re

from file_utils import slugify

log = logging.getLogger(__name__)

CARD_ID_ATTR = "data-ghq-guru-card-id"

re_card_anchor = re.compile(rf'''<a\b[^>]*{CARD_ID_ATTR}=["']([^"']+)["'][^>]*>''', re.I)
re_href        = re.compile(r'''(?<![\w-])href\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)''', re.I)
re_tag_close   = re.compile(r"\s*/?>$")

# bare card URLs that carry the card id
GURU_LINK_PATTERNS = (
    re.compile(r"https://app\.getguru\.com/card/([a-f0-9-]+)", re.I),
    re.compile(r"https://getguru\.com/card/([a-f0-9-]+)", re.I),
    re.compile(r"guru://card/([a-f0-9-]+)", re.I),
)


def card_slug(card: dict) -> str:
    """Slug of preferredPhrase → title → id, falling back to the raw id."""
    title = card.get("preferredPhrase") or card.get("title") or card.get("id") or ""
    return slugify(title) or card.get("id") or ""


def create_card_map(cards) -> dict:
    """{card id: "/pages/<slug>/"} for every card that has an id."""
    return {card["id"]: f"/pages/{card_slug(card)}/"
            for card in cards if (card.get("id") or "").strip()}


def _set_href(tag: str, local_path: str) -> str:
    if re_href.search(tag):
        return re_href.sub(f'href="{local_path}"', tag, count=1)
    close = re_tag_close.search(tag)
    return f'{tag[:close.start()]} href="{local_path}"{tag[close.start():]}'


def convert_internal_links(content, current_card: dict, all_cards, logger=None):
    """
    Rewrite links to other cards of the corpus into /pages/<slug>/ paths.

    1. <a … data-ghq-guru-card-id="…"> tags get their href replaced
       (or added); every other attribute and the link text are untouched.
    2. Remaining bare card URLs are replaced wherever the id resolves.
    """
    logger       = logger or log
    current_card = current_card or {}
    if not content or not all_cards:
        logger.debug("convert_internal_links: nothing to do for card %s",
                     current_card.get("id"))
        return content

    card_map = create_card_map(all_cards)
    found    = 0

    def anchor(m: re.Match) -> str:
        nonlocal found
        local_path = card_map.get(m.group(1))
        if local_path is None:
            return m.group(0)
        found += 1
        return _set_href(m.group(0), local_path)

    def bare(m: re.Match) -> str:
        nonlocal found
        local_path = card_map.get(m.group(1))
        if local_path is None:
            return m.group(0)
        found += 1
        return local_path

    processed = re_card_anchor.sub(anchor, content)
    for pattern in GURU_LINK_PATTERNS:
        processed = pattern.sub(bare, processed)

    if found:
        logger.info("Converted %d internal links for card: %s",
                    found, current_card.get("title") or current_card.get("id"))
    return processed
