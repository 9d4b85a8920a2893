from __future__ import annotations

import logging
import re
import time
from pathlib import Path

import requests

logger = logging.getLogger(__name__)

USER_AGENT = "examtrack/0.1 (+schedule viewer)"
DEFAULT_TIMEOUT = 15.0
DEFAULT_RETRIES = 3


class FetchError(RuntimeError):
    pass


def is_remote_source(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def resolve_input_path(path: Path, search_roots: list[Path] | None = None) -> Path:
    if path.is_absolute():
        return path
    primary = (Path.cwd() / path).resolve()
    if primary.exists():
        return primary
    for root in search_roots or []:
        candidate = (root / path).resolve()
        if candidate.exists():
            return candidate
    return primary


def parse_table_text(text: str, delimiter: str = ",") -> list[list[str]]:
    """Split delimited text into rows of stripped fields. No quoting support."""
    body = text.strip()
    if not body:
        return []
    return [[field.strip() for field in line.split(delimiter)] for line in re.split(r"\r?\n", body)]


def _decode(payload: bytes, origin: str) -> str:
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as error:
        raise FetchError(f"Could not decode {origin} as UTF-8: {error}") from error


def _fetch_remote(url: str, timeout: float, retries: int) -> str:
    attempts = max(1, retries)
    last_error = "no attempt made"
    for attempt in range(attempts):
        logger.debug("Fetching %s (attempt %d/%d)", url, attempt + 1, attempts)
        try:
            response = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        except requests.RequestException as error:
            last_error = str(error)
        else:
            if response.status_code == 200:
                return _decode(response.content, url)
            last_error = f"HTTP {response.status_code}"
        logger.warning("Attempt %d/%d failed for %s: %s", attempt + 1, attempts, url, last_error)
        if attempt < attempts - 1:
            time.sleep(2**attempt)
    raise FetchError(f"Could not load {url}: {last_error}")


def fetch_table_text(
    source: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    search_roots: list[Path] | None = None,
) -> str:
    if is_remote_source(source):
        return _fetch_remote(source, timeout, retries)
    path = resolve_input_path(Path(source), search_roots=search_roots)
    logger.debug("Reading %s", path)
    try:
        payload = path.read_bytes()
    except FileNotFoundError as error:
        raise FetchError(f"File not found: {path}") from error
    except OSError as error:
        raise FetchError(f"Could not read {path}: {error}") from error
    return _decode(payload, str(path))


def load_table(
    source: str,
    *,
    delimiter: str = ",",
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    search_roots: list[Path] | None = None,
) -> list[list[str]]:
    text = fetch_table_text(source, timeout=timeout, retries=retries, search_roots=search_roots)
    return parse_table_text(text, delimiter)
