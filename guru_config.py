"""
guru_config.py – settings shared by every Guru export script

• constants for the Guru REST API and the attachment layout
• GuruOptions   – one struct holding every knob, with defaults
• auth_headers  – Basic-auth headers for user or collection mode
"""

import base64, os
from dataclasses import dataclass, fields

# ── 0.  Config -----------------------------------------------------------
GURU_API_BASE    = "https://api.getguru.com/api/v1"
GURU_SEARCH_BASE = f"{GURU_API_BASE}/search/query"
CONTENT_HOST     = "content.api.getguru.com"       # file CDN (sometimes public)
GATED_FILE_PATH  = f"{CONTENT_HOST}/files/view/"

ATTACHMENT_URL_PREFIX = "/guru-attachments/"        # what rewritten <img src> point at
TRUSTED_STATE         = "TRUSTED"

AUTH_MODES = ("user", "collection")
DEFAULT_TIMEOUT = 45                             # seconds, every HTTP call


class GuruConfigError(ValueError):
    """Raised when the options can't possibly produce a run."""


@dataclass
class GuruOptions:
    auth_mode:            str = "user"
    api_username:         str | None = None
    api_password:         str | None = None
    team_name:            str | None = None
    collection_id:        str | None = None
    collection_token:     str | None = None
    download_attachments: bool = False
    attachment_dir:       str = "static/guru-attachments"
    only_verified:        bool = False
    fetch_collections:    bool = False
    fetch_boards:         bool = False
    output_dir:           str = "dump"
    timeout:              float = DEFAULT_TIMEOUT

    def validate(self) -> "GuruOptions":
        if self.auth_mode not in AUTH_MODES:
            raise GuruConfigError(
                f"unknown auth_mode {self.auth_mode!r} (expected one of {', '.join(AUTH_MODES)})")
        if self.auth_mode == "collection":
            if not self.collection_id or not self.collection_token:
                raise GuruConfigError(
                    "collection mode requires collection_id and collection_token")
        elif not self.api_username or not self.api_password or not self.team_name:
            raise GuruConfigError(
                "user mode requires api_username, api_password and team_name")
        return self

    @classmethod
    def from_env(cls, environ=None, **overrides) -> "GuruOptions":
        """
        Build options from GURU_* variables, e.g. GURU_AUTH_MODE,
        GURU_API_USERNAME, GURU_DOWNLOAD_ATTACHMENTS=1.
        Keyword overrides win over the environment.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(f"GURU_{f.name.upper()}")
            if raw is None:
                continue
            if f.type == "bool" or f.type is bool:
                values[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
            elif f.type == "float" or f.type is float:
                values[f.name] = float(raw)
            else:
                values[f.name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def auth_headers(options: GuruOptions) -> dict:
    if options.auth_mode == "collection":
        pair = f"{options.collection_id}:{options.collection_token}"
    else:
        pair = f"{options.api_username}:{options.api_password}"
    token = base64.b64encode(pair.encode()).decode()
    return {
        "Authorization": f"Basic {token}",
        "Accept":        "application/json",
    }
