"""
file_utils.py – small pure helpers shared by the card processors

• slugify                      – title → URL slug
• extension_for_content_type   – MIME → ".ext" (or "")
• is_image_by_signature        – sniff magic bytes
• extract_file_urls            – <img src> values + downloadable links
"""

import re

FILE_EXTENSIONS = ("pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "zip", "txt", "csv")

IMAGE_SIGNATURES = {
    "JPEG": b"\xff\xd8\xff",
    "PNG":  b"\x89PNG",
    "GIF":  b"GIF",
}

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg":      ".jpg",
    "image/png":       ".png",
    "image/gif":       ".gif",
    "image/svg":       ".svg",
    "image/webp":      ".webp",
    "application/pdf": ".pdf",
}

re_img_src       = re.compile(r'''<img[^>]+src=["']([^"']+)["'][^>]*>''', re.I)
_ext_alt         = "|".join(sorted(FILE_EXTENSIONS, key=len, reverse=True))   # docx before doc
re_file_url      = re.compile(rf'''https://[^"\s<>]+\.(?:{_ext_alt})''', re.I)
re_guru_att_url  = re.compile(r'''https://api\.getguru\.com/api/v1/cards/[^"]+/attachments/[^"\s<>]+''', re.I)

re_slug_drop     = re.compile(r"[^\w\s-]", re.ASCII)
re_slug_space    = re.compile(r"\s+")
re_slug_hyphens  = re.compile(r"-+")


def slugify(title: str) -> str:
    """Lower-case, drop punctuation, whitespace runs → "-". Idempotent."""
    slug = re_slug_drop.sub("", title.lower())
    slug = re_slug_space.sub("-", slug)
    slug = re_slug_hyphens.sub("-", slug)
    return slug.strip("-")


def extension_for_content_type(content_type: str | None) -> str:
    return CONTENT_TYPE_EXTENSIONS.get(content_type or "", "")


def is_image_by_signature(buf: bytes) -> bool:
    if any(buf.startswith(sig) for sig in IMAGE_SIGNATURES.values()):
        return True
    return buf[:5] == b"<?xml" or buf[:4] == b"<svg"     # SVG served as text


def extract_file_urls(html_body: str) -> dict:
    """
    Return {"imageUrls": [...], "otherFileUrls": [...]}.

    imageUrls keep document order and duplicates; otherFileUrls is the
    de-duplicated union of bare document links (.pdf, .docx, …) and
    Guru attachment-endpoint URLs.
    """
    image_urls = re_img_src.findall(html_body)
    file_urls  = [m.group(0) for m in re_file_url.finditer(html_body)]
    guru_urls  = [m.group(0) for m in re_guru_att_url.finditer(html_body)]
    return {
        "imageUrls":     image_urls,
        "otherFileUrls": list(dict.fromkeys(file_urls + guru_urls)),
    }
