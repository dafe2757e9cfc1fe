"""
dump_writer.py – where finished records go

Folder layout
-------------
dump/
├─ cards/
│  ├─ <slug>.md            ← converted Markdown
│  └─ <slug>.meta.json     ← everything else about the card
│     (a slug already written this run becomes <slug>-<guru id>)
├─ collections/<guru id>.json
└─ boards/<guru id>.json
"""

import hashlib, json, pathlib, uuid

NODE_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://api.getguru.com/")

FOLDERS = {
    "GuruCard":       "cards",
    "GuruCollection": "collections",
    "GuruBoard":      "boards",
}


def create_node_id(key: str) -> str:
    """Stable id for a record: same key, same id, every run."""
    return str(uuid.uuid5(NODE_NAMESPACE, key))


def create_content_digest(obj) -> str:
    canonical = json.dumps(obj, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


class DumpWriter:
    """
    Record sink. Keeps every emitted record in .records and, when
    output_dir is set, writes it to disk as well.
    """

    def __init__(self, output_dir=None):
        self.output_dir = pathlib.Path(output_dir) if output_dir else None
        self.records: list[dict] = []
        self.card_stems: dict[str, str] = {}     # record id → file stem under cards/

    create_node_id        = staticmethod(create_node_id)
    create_content_digest = staticmethod(create_content_digest)

    def emit(self, record: dict) -> None:
        self.records.append(record)
        if self.output_dir is not None:
            self._write(record)

    def of_type(self, node_type: str) -> list[dict]:
        return [r for r in self.records if r["internal"]["type"] == node_type]

    def _card_stem(self, record: dict) -> str:
        if record["id"] in self.card_stems:
            return self.card_stems[record["id"]]
        stem  = record.get("slug") or record["id"]
        taken = set(self.card_stems.values())
        if stem in taken:
            stem = f"{stem}-{record.get('guruId') or record['id']}"
        if stem in taken:                        # node ids are unique per record
            stem = record["id"]
        self.card_stems[record["id"]] = stem
        return stem

    def _write(self, record: dict) -> pathlib.Path:
        node_type = record["internal"]["type"]
        folder    = self.output_dir / FOLDERS.get(node_type, "other")
        folder.mkdir(parents=True, exist_ok=True)

        if node_type == "GuruCard":
            stem = self._card_stem(record)
            (folder / f"{stem}.md").write_text(record["content"] + "\n", encoding="utf-8")
            meta = {k: v for k, v in record.items() if k not in ("content", "contentHtml")}
            out  = folder / f"{stem}.meta.json"
        else:
            meta = record
            out  = folder / f"{record.get('guruId') or record['id']}.json"

        with open(out, "w", encoding="utf-8") as fh:
            json.dump(meta, fh, ensure_ascii=False, indent=2, default=str)
        return out
