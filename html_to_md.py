#!/usr/bin/env python3
"""
Convert Guru card HTML to Markdown.

html_to_markdown() is what the card pipeline calls; run the module to
convert every *.html under a folder to a sibling *.md instead.

Usage:
    python html_to_md.py [dump]   # processes dump/**/*.html

Dependencies:
    pip install beautifulsoup4 lxml markdownify
"""
import logging, pathlib, re, sys
from bs4 import BeautifulSoup
from markdownify import ATX, MarkdownConverter

log = logging.getLogger(__name__)

# ------- config ----------------------------------------------------------
ROOT = pathlib.Path("dump")            # where your HTML files live
GLOB = "**/*.html"
CLEAN_TAGS_RE = re.compile(r"^(script|style|nav)$", re.I)
MD_OPTIONS = {"heading_style": ATX, "bullets": "-"}     # <pre> → ``` fences
COMPLEX_CELL_TAGS = ["img", "a", "strong", "em", "code", "ul", "ol", "table"]
# -------------------------------------------------------------------------


class GuruMarkdownConverter(MarkdownConverter):
    """
    markdownify with one table rule: every <table> becomes a pipe table,
    first row as header. Row and cell converters are silenced so only
    convert_table produces output.
    """

    def convert_table(self, el, text, *args, **kwargs):
        rows = [tr for tr in el.find_all("tr") if tr.find_parent("table") is el]
        lines: list[str] = []
        for tr in rows:
            cells = tr.find_all(["td", "th"], recursive=False)
            if not cells:
                continue
            lines.append("| " + " | ".join(self.cell_text(td) for td in cells) + " |")
            if len(lines) == 1:
                lines.append("|" + "|".join(" --- " for _ in cells) + "|")
        if not lines:
            return ""
        log.debug("table → %d markdown rows", len(lines))
        return "\n\n" + "\n".join(lines) + "\n\n"

    def cell_text(self, cell) -> str:
        paragraphs = cell.find_all("p")
        if paragraphs:
            texts = (p.get_text().strip() for p in paragraphs)
            content = "<br>".join(t for t in texts if t)
        elif cell.find(COMPLEX_CELL_TAGS):
            content = make_converter().convert(cell.decode_contents()).strip()
        else:
            content = cell.get_text().strip()
        return content.replace("|", r"\|")

    def convert_td(self, el, text, *args, **kwargs):
        return ""

    convert_th = convert_td
    convert_tr = convert_td


def make_converter() -> GuruMarkdownConverter:
    return GuruMarkdownConverter(**MD_OPTIONS)


def html_to_markdown(html: str | None) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all(CLEAN_TAGS_RE):
        tag.decompose()
    md_txt = make_converter().convert_soup(soup)
    return re.sub(r"\n{3,}", "\n\n", md_txt).strip()


def convert_file(src: pathlib.Path, dst: pathlib.Path) -> None:
    text = src.read_text(encoding="utf-8", errors="ignore")
    soup = BeautifulSoup(text, "lxml")

    # unwrap span/div that only add styling
    for tag in soup.find_all(["span", "div"]):
        if not tag.attrs or set(tag.attrs).issubset({"style"}):
            tag.unwrap()

    dst.write_text(html_to_markdown(str(soup.body or soup)) + "\n", encoding="utf-8")


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    root = pathlib.Path(argv[0]) if argv else ROOT
    html_files = list(root.glob(GLOB))
    if not html_files:
        sys.exit(f"No HTML files found under {root}/")

    for src in html_files:
        dst = src.with_suffix(".md")
        convert_file(src, dst)
        print(f"✓ {dst.relative_to(root)}")

if __name__ == "__main__":
    main()
