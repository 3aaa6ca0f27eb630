"""Persistence for the DNS provider API token."""
import os
from pathlib import Path
from typing import Optional

from homeport.core.logger import get_logger

logger = get_logger(__name__)

LEGACY_TOKEN_KEY = "CLOUDFLARE_TOKEN"


class TokenStore:
    """Read and write the API token under the operator's config directory.

    The token lives in ``<config_dir>/cloudflare_token`` with mode 0600.
    Older installs kept a single ``KEY=value`` file at the config directory
    path itself; that file is still read and is replaced on the next save.
    """

    def __init__(self, config_dir: Path, filename: str = "cloudflare_token"):
        self.config_dir = Path(config_dir)
        self.token_file = self.config_dir / filename

    @property
    def is_legacy(self) -> bool:
        """True while the token still lives in the old single-file layout."""
        return self.config_dir.is_file()

    def load(self) -> Optional[str]:
        """Return the stored token, or None when nothing usable is stored."""
        try:
            if self.config_dir.is_file():
                return self._load_legacy()
            if not self.token_file.is_file():
                return None
            token = self.token_file.read_text().strip()
        except OSError as e:
            logger.warning(f"⚠ Could not read token file: {e}")
            return None
        return token or None

    def save(self, token: str) -> Path:
        """Persist the token with owner-only permissions."""
        if self.config_dir.exists() and not self.config_dir.is_dir():
            logger.debug(f"Replacing legacy config file {self.config_dir}")
            self.config_dir.unlink()

        self.config_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.config_dir, 0o700)

        fd = os.open(self.token_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as handle:
            handle.write(token.strip())
        os.chmod(self.token_file, 0o600)

        logger.info(f"✓ API token saved to {self.token_file}")
        return self.token_file

    def _load_legacy(self) -> Optional[str]:
        for line in self.config_dir.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            if key.strip() == LEGACY_TOKEN_KEY and value.strip():
                return value.strip()
        return None
