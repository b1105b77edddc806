"""I/O utilities for model artifacts, files and logging."""

import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import parse_qs, urlparse

import requests
from huggingface_hub import hf_hub_download
from rich.console import Console
from rich.logging import RichHandler

from ..errors import ModelLoadError

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "oncolite"
HF_SCHEME = "hf://"


def setup_logger(name: str = "oncolite", level: Optional[int] = None) -> logging.Logger:
    """Setup logger with rich formatting."""
    if level is None:
        level = logging.getLevelName(os.getenv("ONCOLITE_LOG_LEVEL", "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    # Log to stderr so structured CLI output stays clean
    console = Console(stderr=True)
    handler = RichHandler(console=console, rich_tracebacks=True)
    formatter = logging.Formatter(
        fmt="%(message)s",
        datefmt="[%X]"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


logger = setup_logger()


def safe_create_dir(path: Union[str, Path]) -> Path:
    """Safely create directory if it doesn't exist."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def signed_url_expiry(url: str) -> Optional[datetime]:
    """Return the expiry embedded in a signed (SAS-style ``se=``) URL, if any."""
    query = parse_qs(urlparse(url).query)
    values = query.get("se")
    if not values:
        return None
    raw = values[0].replace("Z", "+00:00")
    try:
        expiry = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry


def check_signed_url(url: str, now: Optional[datetime] = None) -> None:
    """
    Refuse expired signed URLs and warn about time-limited ones.

    Args:
        url: Model URL
        now: Reference time (defaults to the current UTC time)

    Raises:
        ModelLoadError: If the URL carries an expiry that has passed
    """
    expiry = signed_url_expiry(url)
    if expiry is None:
        return

    now = now or datetime.now(timezone.utc)
    if expiry <= now:
        raise ModelLoadError(f"Signed model URL expired at {expiry.isoformat()}")

    logger.warning(
        f"Model URL is signed and stops working at {expiry.isoformat()}; "
        "prefer a stable endpoint or a local artifact"
    )


def download_file(url: str, destination: Path, chunk_size: int = 8192, timeout: float = 60.0) -> Path:
    """
    Download file from URL to destination.

    Args:
        url: URL to download from
        destination: Destination path
        chunk_size: Chunk size for streaming download
        timeout: Socket timeout in seconds

    Returns:
        Path of the downloaded file

    Raises:
        ModelLoadError: If the download fails
    """
    tmp_path = destination.with_suffix(destination.suffix + ".part")
    try:
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()

        safe_create_dir(destination.parent)

        with open(tmp_path, 'wb') as f:
            for chunk in response.iter_content(chunk_size=chunk_size):
                f.write(chunk)

        tmp_path.replace(destination)
        return destination

    except (requests.RequestException, OSError) as e:
        tmp_path.unlink(missing_ok=True)
        raise ModelLoadError(f"Error downloading {urlparse(url)._replace(query='').geturl()}: {e}") from e


def download_huggingface_model(
    repo_id: str,
    filename: str,
    cache_dir: Optional[Path] = None
) -> Path:
    """
    Download model from Hugging Face Hub.

    Args:
        repo_id: Hugging Face repository ID
        filename: Model filename inside the repository
        cache_dir: Cache directory (uses default if None)

    Returns:
        Path to downloaded model file

    Raises:
        ModelLoadError: If the file cannot be fetched
    """
    if cache_dir is None:
        cache_dir = DEFAULT_CACHE_DIR

    try:
        model_path = hf_hub_download(
            repo_id=repo_id,
            filename=filename,
            cache_dir=cache_dir,
        )
    except Exception as e:
        raise ModelLoadError(f"Error downloading {filename} from {repo_id}: {e}") from e

    return Path(model_path)


def get_model_path(location: str, cache_dir: Optional[Path] = None) -> Path:
    """
    Resolve a model location to a local file, downloading if necessary.

    ``location`` is a local path, an ``http(s)://`` URL or
    ``hf://<repo_id>/<filename>``.

    Raises:
        ModelLoadError: If the location cannot be resolved
    """
    if cache_dir is None:
        cache_dir = DEFAULT_CACHE_DIR
    cache_dir = Path(cache_dir)

    if location.startswith(HF_SCHEME):
        parts = location[len(HF_SCHEME):].split("/")
        if len(parts) < 3 or not all(parts):
            raise ModelLoadError(f"Expected hf://<owner>/<repo>/<filename>, got {location}")
        repo_id = "/".join(parts[:2])
        filename = "/".join(parts[2:])
        return download_huggingface_model(repo_id, filename, cache_dir=cache_dir)

    scheme = urlparse(location).scheme
    if scheme in ("http", "https"):
        check_signed_url(location)

        # Cache by URL without its query string, so re-signed URLs share a file
        stable = urlparse(location)._replace(query="", fragment="").geturl()
        digest = hashlib.sha256(stable.encode("utf-8")).hexdigest()[:16]
        name = Path(urlparse(location).path).name or "model.pt"
        weights_path = cache_dir / f"{digest}_{name}"

        if weights_path.exists():
            return weights_path

        logger.info(f"Downloading model from {stable}")
        return download_file(location, weights_path)

    path = Path(location).expanduser()
    if not path.exists():
        raise ModelLoadError(f"Model file {path} does not exist")
    return path


def save_json(data: Any, path: Union[str, Path]) -> None:
    """Save data to JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format."""
    if size_bytes == 0:
        return "0B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size_bytes >= 1024 and i < len(size_names) - 1:
        size_bytes /= 1024.0
        i += 1

    return f"{size_bytes:.1f}{size_names[i]}"
