"""
Vault Store Adapter: file-backed SessionPersistenceAdapter.

Libraries are YAML files (``<library_id>.yaml`` / ``.yml``) or Markdown notes
with YAML frontmatter (``<library_id>.md``), each holding a ``cards:`` list.
Progress is one JSON document per (user, library) pair.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml  # type: ignore

from smartlearn.application.learn.codec import from_document, to_document
from smartlearn.domain.learn.errors import MalformedStateError, NotFoundError
from smartlearn.domain.learn.models import Card, CardDifficulty, ProgressRecord, SerializedState
from smartlearn.domain.learn.ports import SessionPersistenceAdapter
from smartlearn.infrastructure.utils.text import load_yaml, parse_frontmatter

logger = logging.getLogger(__name__)

LIBRARY_SUFFIXES = (".yaml", ".yml", ".md")
_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def _check_id(kind: str, value: str) -> str:
    if not _SAFE_ID_RE.match(value) or ".." in value:
        raise NotFoundError(f"Invalid {kind} id {value!r}")
    return value


def parse_cards(meta: dict[str, Any], source: str) -> list[Card]:
    """
    Build Card objects from a parsed ``cards:`` list.

    Entries without front/back are skipped with a warning. Missing ids fall
    back to the 1-based position in the list.
    """
    raw_cards = meta.get("cards", [])
    if not isinstance(raw_cards, list):
        logger.warning(f"[vault] {source}: 'cards' is not a list")
        return []

    default_domain = meta.get("domain")
    cards: list[Card] = []
    seen: set[str] = set()

    for position, entry in enumerate(raw_cards, start=1):
        if not isinstance(entry, dict):
            continue

        front = entry.get("front")
        back = entry.get("back")
        if front is None or back is None:
            logger.warning(f"[vault] {source}: card #{position} has no front/back, skipped")
            continue

        card_id = str(entry.get("id", position))
        if card_id in seen:
            logger.warning(f"[vault] {source}: duplicate card id {card_id!r}, skipped")
            continue
        seen.add(card_id)

        difficulty = entry.get("difficulty")
        try:
            difficulty = CardDifficulty(difficulty) if difficulty else None
        except ValueError:
            logger.warning(f"[vault] {source}: unknown difficulty {difficulty!r} on {card_id}")
            difficulty = None

        domain = entry.get("domain", default_domain)
        cards.append(
            Card(
                id=card_id,
                front=str(front),
                back=str(back),
                domain=str(domain) if domain is not None else None,
                difficulty=difficulty,
            )
        )

    return cards


class VaultStoreAdapter(SessionPersistenceAdapter):
    """
    Reads libraries from a directory and keeps progress as JSON files.
    """

    def __init__(self, library_dir: Path, progress_dir: Path):
        self.library_dir = Path(library_dir)
        self.progress_dir = Path(progress_dir)

    def _library_path(self, library_id: str) -> Path | None:
        _check_id("library", library_id)
        for suffix in LIBRARY_SUFFIXES:
            path = self.library_dir / f"{library_id}{suffix}"
            if path.is_file():
                return path
        return None

    def _progress_path(self, user_id: str, library_id: str) -> Path:
        _check_id("user", user_id)
        _check_id("library", library_id)
        return self.progress_dir / f"{user_id}__{library_id}.json"

    def list_libraries(self) -> list[str]:
        if not self.library_dir.is_dir():
            return []
        return sorted(
            {p.stem for p in self.library_dir.iterdir() if p.suffix in LIBRARY_SUFFIXES}
        )

    async def load_library_cards(self, library_id: str) -> list[Card]:
        path = self._library_path(library_id)
        if path is None:
            raise NotFoundError(f"Library {library_id!r} not found in {self.library_dir}")

        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix == ".md":
                meta, _body = parse_frontmatter(text)
            else:
                meta = load_yaml(text) or {}
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise NotFoundError(f"Library {library_id!r} is unreadable: {e}") from e

        if not isinstance(meta, dict):
            raise NotFoundError(f"Library {library_id!r} has no 'cards' mapping")

        cards = parse_cards(meta, path.name)
        logger.debug(f"[vault] Loaded {len(cards)} cards from {path.name}")
        return cards

    async def load_progress(self, user_id: str, library_id: str) -> SerializedState | None:
        path = self._progress_path(user_id, library_id)
        if not path.exists():
            return None

        try:
            doc = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise MalformedStateError(f"Unreadable progress file {path.name}: {e}") from e

        if not isinstance(doc, dict) or "engine_state" not in doc:
            raise MalformedStateError(f"Progress file {path.name} has no engine_state")
        return from_document(doc["engine_state"])

    async def save_progress(self, record: ProgressRecord) -> None:
        path = self._progress_path(record.user_id, record.library_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = {
            "user_id": record.user_id,
            "library_id": record.library_id,
            "engine_state": to_document(record.engine_state),
            "updated_at": record.updated_at,
        }
        # Write to a sibling temp file, then swap it in.
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(path)
        logger.debug(f"[vault] Saved progress to {path.name}")
