"""
attachments.py – download the files a card embeds and point the card at them

Folder layout
-------------
static/guru-attachments/
├─ screenshot_1a2b3c4d.png      ← <basename>_<md5(url)[:8]><ext>
└─ Detailed-Spec_9f8e7d6c.pdf

Only <img> URLs are rewritten inside the HTML (to /guru-attachments/<name>);
other documents are downloaded and listed but the link is left alone.
"""

import hashlib, logging, os, pathlib
import urllib.parse as up
from dataclasses import dataclass

import guru_api
from file_utils import extension_for_content_type, extract_file_urls, is_image_by_signature
from guru_config import ATTACHMENT_URL_PREFIX, GATED_FILE_PATH

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename:     str
    filepath:     str
    original_url: str
    size:         int
    mime_type:    str

    def as_dict(self) -> dict:
        return {
            "filename":    self.filename,
            "filepath":    self.filepath,
            "originalUrl": self.original_url,
            "size":        self.size,
            "mimeType":    self.mime_type,
        }


def attachment_filename(url: str, content_type: str | None) -> str:
    # basename after unquoting: "%2F" decodes to a separator
    decoded   = up.unquote(up.urlparse(url).path).replace("\\", "/")
    base_name = os.path.basename(decoded) or "attachment"
    stem, ext = os.path.splitext(base_name)
    if not ext:
        ext = extension_for_content_type(content_type)
    url_hash = hashlib.md5(url.encode()).hexdigest()[:8]
    return f"{stem or 'file'}_{url_hash}{ext}"


def save_downloaded_file(url: str, content: bytes, content_type: str,
                         download_dir, logger=None) -> Attachment:
    logger   = logger or log
    dest_dir = pathlib.Path(download_dir)
    filename = attachment_filename(url, content_type)
    dest     = dest_dir / filename

    dest_dir.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_name(dest.name + ".part")
    tmp.write_bytes(content)
    tmp.replace(dest)                      # same name ⇒ same URL ⇒ same bytes

    logger.info("Downloaded file: %s (%d bytes, content-type: %s)",
                filename, len(content), content_type)
    logger.debug("%s looks like an image: %s", filename, is_image_by_signature(content))
    return Attachment(
        filename=filename,
        filepath=str(dest),
        original_url=url,
        size=len(content),
        mime_type=content_type,
    )


def _is_html(content_type: str | None) -> bool:
    return (content_type or "").split(";")[0].strip().lower() == "text/html"


def _fetch_image(url: str, headers: dict, download, attachment_dir, logger) -> Attachment | None:
    if GATED_FILE_PATH in url:
        # anonymous request: a login page comes back as text/html
        public = download(url, {"Accept": "*/*"})
        logger.debug("Public test %s – %s, content-type: %s", url,
                     "OK" if public else "failed", public.content_type if public else "N/A")
        if public is None or _is_html(public.content_type):
            logger.info("File is not public or returns HTML, keeping original URL: %s", url)
            return None
        return save_downloaded_file(url, public.content, public.content_type, attachment_dir, logger)

    result = download(url, headers)
    if result is None:
        return None
    return save_downloaded_file(url, result.content, result.content_type, attachment_dir, logger)


def process_attachments(card: dict, headers: dict, attachment_dir,
                        download=None, logger=None) -> dict:
    """
    Download every image and document a card references.

    Returns {"processedContent": html, "attachedFiles": [Attachment, …]}.
    A failure on one URL is logged and skipped; the card keeps the remote URL.
    """
    logger   = logger or log
    download = download or guru_api.download
    if not card.get("content"):
        return {"processedContent": "", "attachedFiles": []}

    logger.info("Processing attachments for card: %s", card.get("title") or card.get("id"))
    processed = card["content"]
    attached: list[Attachment] = []
    urls      = extract_file_urls(card["content"])

    seen: set[str] = set()              # one download per URL, however often it appears

    # ── images: download, then rewrite src to the local copy
    for image_url in dict.fromkeys(urls["imageUrls"]):
        if not image_url.startswith(("http://", "https://")):
            continue
        seen.add(image_url)
        try:
            saved = _fetch_image(image_url, headers, download, attachment_dir, logger)
        except Exception as e:
            logger.warning("Failed to download image %s: %s", image_url, e)
            continue
        if saved:
            attached.append(saved)
            processed = processed.replace(image_url, ATTACHMENT_URL_PREFIX + saved.filename)

    # ── other documents: download only
    if urls["otherFileUrls"]:
        logger.info("Found %d non-image attachment(s) in card", len(urls["otherFileUrls"]))
    for file_url in urls["otherFileUrls"]:
        if file_url in seen:
            continue
        seen.add(file_url)
        try:
            result = download(file_url, headers)
            if result:
                attached.append(save_downloaded_file(
                    file_url, result.content, result.content_type, attachment_dir, logger))
        except Exception as e:
            logger.warning("Failed to download file %s: %s", file_url, e)

    if attached:
        logger.info("Downloaded %d file(s) total", len(attached))
    return {"processedContent": processed, "attachedFiles": attached}
