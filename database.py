"""
File-backed persistence for the kiosk: the products list, the config document
and the admin credential.

Each document is rewritten whole on every save. There is no locking around
the files, so two admin sessions saving at once race and the last writer wins.
"""
import copy
import json
import os
import secrets
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import set_key

from observability import build_logger
from schemas import DEFAULT_CATEGORIES, DEFAULT_THEME, KioskStatus

logger = build_logger(__name__)

ADMIN_PASS_KEY = "ADMIN_PASS"


class StorageError(RuntimeError):
    pass


def read_json(path: Path, fallback: Any) -> Any:
    """
    Reads a JSON document. A missing file yields a copy of ``fallback``;
    any other read or parse failure raises StorageError.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return copy.deepcopy(fallback)
    except (json.JSONDecodeError, OSError) as e:
        raise StorageError(f"Unable to read {path.name}: {e}") from e


def write_json(path: Path, payload: Any) -> None:
    """
    Atomic write: write to temp file then rename.
    """
    tmp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile("w", dir=path.parent, delete=False, encoding="utf-8") as tmp:
            tmp_path = tmp.name
            json.dump(payload, tmp, indent=2)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise StorageError(f"Unable to write {path.name}: {e}") from e


def default_config() -> Dict[str, Any]:
    return {
        "status": KioskStatus.LIVE.value,
        "categories": list(DEFAULT_CATEGORIES),
        "theme": dict(DEFAULT_THEME),
    }


def clean_categories(categories: Any) -> List[str]:
    """Trims, drops blanks and de-duplicates (case-sensitive, first seen wins)."""
    seen: List[str] = []
    for cat in categories or []:
        name = "" if cat is None else str(cat).strip()
        if name and name not in seen:
            seen.append(name)
    return seen


def apply_config_defaults(raw: Any) -> Dict[str, Any]:
    source = raw if isinstance(raw, dict) else {}
    merged = {**default_config(), **source}

    categories = source.get("categories")
    merged["categories"] = clean_categories(categories if isinstance(categories, list) else DEFAULT_CATEGORIES)
    if not merged["categories"]:
        merged["categories"] = list(DEFAULT_CATEGORIES)

    theme = source.get("theme")
    merged["theme"] = {**DEFAULT_THEME, **(theme if isinstance(theme, dict) else {})}

    if merged.get("status") not in [s.value for s in KioskStatus]:
        merged["status"] = KioskStatus.LIVE.value
    return merged


class ProductStore:
    def __init__(self, path: Path):
        self.path = path

    def load(self) -> List[Dict[str, Any]]:
        data = read_json(self.path, [])
        if not isinstance(data, list):
            raise StorageError(f"{self.path.name} does not hold a list")
        return data

    def replace(self, products: List[Dict[str, Any]]) -> None:
        write_json(self.path, products)
        logger.info(f"Saved {len(products)} products to {self.path}")


class ConfigStore:
    def __init__(self, path: Path):
        self.path = path

    def load(self) -> Dict[str, Any]:
        return apply_config_defaults(read_json(self.path, default_config()))

    def replace(self, config: Dict[str, Any]) -> None:
        write_json(self.path, config)
        logger.info(f"Saved config (status={config.get('status')}) to {self.path}")


class CredentialStore:
    """
    Holds the shared admin PIN for the lifetime of the process.

    ``replace`` swaps the in-memory PIN first and then tries to write it back
    to the env file. A failed write is only logged, so after a restart the
    previous PIN from the env file would be in effect again.
    """

    def __init__(self, pin: str, env_path: Path):
        self._pin = pin
        self.env_path = env_path

    def matches(self, candidate: Optional[Any]) -> bool:
        if not candidate or not isinstance(candidate, str):
            return False
        return secrets.compare_digest(candidate.encode("utf-8"), self._pin.encode("utf-8"))

    def replace(self, new_pin: str) -> None:
        self._pin = new_pin
        try:
            set_key(str(self.env_path), ADMIN_PASS_KEY, new_pin, quote_mode="never")
        except OSError as e:
            logger.error(f"Failed to update {self.env_path}: {e}")
