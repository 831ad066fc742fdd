"""
Persists the bearer token handed out by the login endpoint.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

log = logging.getLogger(__name__)

TOKEN_KEY = "token"


class TokenStore:
    """
    File-backed credential storage shared by every client in the process.

    The file is re-read on each :meth:`get_token` call so a login performed by
    another command (or another process) is picked up immediately.
    """

    FILE_NAME = "token.json"

    def __init__(self, config_dir: Path):
        self.token_path = Path(config_dir) / self.FILE_NAME

    def get_token(self) -> str | None:
        """Returns the stored token, or None if nothing usable is stored."""
        try:
            content = self.token_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            log.debug(f"Could not read token file '{self.token_path}': {e}")
            return None

        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            log.debug(f"Token file '{self.token_path}' is not valid JSON; ignoring.")
            return None

        token = data.get(TOKEN_KEY) if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            return None
        return token

    def set_token(self, token: str) -> None:
        """Atomically replaces the stored token."""
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=".token-", suffix=".tmp", dir=self.token_path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({TOKEN_KEY: token}, f)
            os.replace(tmp_name, self.token_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        log.debug(f"Stored new token at '{self.token_path}'.")

    def clear(self) -> bool:
        """Removes the stored token. Returns True if a token file existed."""
        try:
            self.token_path.unlink()
        except FileNotFoundError:
            return False
        log.debug("Stored token removed.")
        return True
