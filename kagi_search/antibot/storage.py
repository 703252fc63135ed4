"""Persistence of browser session state and its companion fingerprint."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from playwright.sync_api import BrowserContext
from pydantic import ValidationError

from ..errors import PersistenceWarning
from ..models import FingerprintDocument, FingerprintProfile

LOGGER = logging.getLogger(__name__)

FINGERPRINT_SUFFIX = "-fingerprint.json"


def fingerprint_path_for(state_path: Path | str) -> Path:
    """Companion path: ``browser-state.json`` -> ``browser-state-fingerprint.json``."""
    path = Path(state_path)
    return path.with_name(f"{path.stem}{FINGERPRINT_SUFFIX}")


@dataclass
class PersistedState:
    """What a previous run left on disk."""

    storage_state: Optional[Path] = None
    fingerprint: Optional[FingerprintProfile] = None

    @property
    def has_session(self) -> bool:
        return self.storage_state is not None


class StateStore:
    """Load and save the two state artifacts derived from one base path."""

    def __init__(self, state_file: Path | str) -> None:
        """Initialize state store.

        Parameters
        ----------
        state_file : Path | str
            Playwright storage-state file; the fingerprint lives beside it
        """
        self.state_path = Path(state_file).expanduser()
        self.fingerprint_path = fingerprint_path_for(self.state_path)

    def load(self) -> PersistedState:
        """Read whatever artifacts exist.

        Returns
        -------
        PersistedState
            Session path if the state file exists, fingerprint if the
            companion file exists and parses
        """
        state = PersistedState()

        if self.state_path.exists():
            LOGGER.info("Found browser state file %s, reusing session", self.state_path)
            state.storage_state = self.state_path
        else:
            LOGGER.info(
                "No browser state file at %s, a new session will be created",
                self.state_path,
            )

        state.fingerprint = self._load_fingerprint()
        return state

    def _load_fingerprint(self) -> Optional[FingerprintProfile]:
        if not self.fingerprint_path.exists():
            return None
        try:
            raw = self.fingerprint_path.read_text(encoding="utf-8")
            document = FingerprintDocument.model_validate_json(raw)
        except (OSError, ValidationError, ValueError) as exc:
            LOGGER.warning(
                "Could not load fingerprint %s, a new one will be generated: %s",
                self.fingerprint_path,
                exc,
            )
            return None

        if document.fingerprint is not None:
            LOGGER.info("Loaded saved browser fingerprint from %s", self.fingerprint_path)
        return document.fingerprint

    def save(
        self,
        context: BrowserContext,
        fingerprint: FingerprintProfile,
        *,
        persist_enabled: bool = True,
    ) -> bool:
        """Persist session state and, if absent, the fingerprint.

        Parameters
        ----------
        context : BrowserContext
            Context whose cookies/localStorage are written
        fingerprint : FingerprintProfile
            Profile used for this session
        persist_enabled : bool
            When False nothing is written

        Returns
        -------
        bool
            True if the fingerprint file was created by this call

        Raises
        ------
        PersistenceWarning
            If either artifact cannot be written
        """
        if not persist_enabled:
            LOGGER.debug("State persistence disabled, skipping save")
            return False

        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            context.storage_state(path=str(self.state_path))
        except Exception as exc:
            raise PersistenceWarning(f"failed to save browser state: {exc}") from exc
        LOGGER.info("Saved browser state to %s", self.state_path)

        return self.save_fingerprint(fingerprint)

    def save_fingerprint(self, fingerprint: FingerprintProfile) -> bool:
        """Write the fingerprint file unless one already exists."""
        document = FingerprintDocument(fingerprint=fingerprint)
        payload = json.dumps(document.model_dump(mode="json", by_alias=True), indent=2)
        try:
            # "x" fails if another run created the file first.
            with open(self.fingerprint_path, "x", encoding="utf-8") as f:
                f.write(payload)
        except FileExistsError:
            LOGGER.debug("Fingerprint %s already exists, keeping it", self.fingerprint_path)
            return False
        except OSError as exc:
            raise PersistenceWarning(f"failed to save fingerprint: {exc}") from exc

        LOGGER.info("Saved browser fingerprint to %s", self.fingerprint_path)
        return True
