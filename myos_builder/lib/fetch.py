from __future__ import annotations

import logging
import shutil
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from tqdm import tqdm
from urllib3.util.retry import Retry

from ..errors import CommandError, DownloadFailure, ExtractionFailure
from .cache import present
from .command import run_cmd

logger = logging.getLogger(__name__)

DL_CHUNK_SIZE = 1024 * 1024

# -- Retry strategy and session reuse for connection pooling.

retry_strategy = Retry(
    total=3,
    status_forcelist=[429, 500, 502, 503, 504],
    backoff_factor=0.3,
)
adapter = HTTPAdapter(max_retries=retry_strategy)

session = requests.Session()
session.mount("http://", adapter)
session.mount("https://", adapter)


def _describe(e: requests.exceptions.RequestException) -> str:
    if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
        return f"HTTP {e.response.status_code}"
    if isinstance(e, requests.exceptions.SSLError):
        return "SSL error"
    if isinstance(e, requests.exceptions.Timeout):
        return "Timeout"
    if isinstance(e, requests.exceptions.ConnectionError):
        if "NameResolutionError" in str(e):
            return "DNS resolution failed"
        return "Connection failed"
    return e.__class__.__name__


def download_file(url: str, destination: Path, *, quiet: bool = False) -> Path:
    """Stream ``url`` into ``destination``.

    Data goes to ``<destination>.part`` first and is renamed on completion.
    """

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    part = destination.with_name(destination.name + ".part")

    try:
        response = session.get(url, timeout=20, stream=True)
        response.raise_for_status()
        total = int(response.headers.get("content-length") or 0) or None

        with open(part, "wb") as f, tqdm(
            total=total,
            unit="B",
            unit_scale=True,
            desc=destination.name,
            disable=quiet,
        ) as bar:
            for chunk in response.iter_content(chunk_size=DL_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    bar.update(len(chunk))
    except requests.exceptions.RequestException as e:
        part.unlink(missing_ok=True)
        raise DownloadFailure(f"{_describe(e)} while downloading {url}") from e
    except OSError as e:
        part.unlink(missing_ok=True)
        raise DownloadFailure(f"Cannot write {destination}: {e}") from e

    part.replace(destination)
    logger.info("Downloaded %s -> %s", url, str(destination))
    return destination


def fetch_archive(url: str, destination: Path, *, dry_run: bool = False) -> Path:
    """Download ``url`` unless ``destination`` is already in the cache."""

    destination = Path(destination)
    if present(destination):
        logger.info("Cached: %s", str(destination))
        return destination
    if dry_run:
        logger.info("Would download %s -> %s", url, str(destination))
        return destination
    return download_file(url, destination)


def extract_archive(archive: Path, dest_dir: Path, top_dir: str, *, dry_run: bool = False) -> Path:
    """Unpack ``archive`` so that ``dest_dir/top_dir`` appears atomically.

    The archive is unpacked into a hidden staging directory first; the
    top-level directory is renamed into place only once tar succeeded.
    """

    archive = Path(archive)
    dest_dir = Path(dest_dir)
    out = dest_dir / top_dir
    if present(out):
        logger.info("Already extracted: %s", str(out))
        return out
    if dry_run:
        logger.info("Would extract %s -> %s", str(archive), str(out))
        return out
    if not archive.is_file():
        raise ExtractionFailure(f"Archive missing: {archive}")

    staging = dest_dir / f".extract-{top_dir}"
    if staging.exists():
        shutil.rmtree(staging)
    staging.mkdir(parents=True)
    try:
        run_cmd(["tar", "-xf", str(archive), "-C", str(staging)])
        unpacked = staging / top_dir
        if not unpacked.is_dir():
            raise ExtractionFailure(f"{archive.name} does not contain {top_dir}/")
        unpacked.rename(out)
    except CommandError as e:
        raise ExtractionFailure(f"Extraction failed for {archive}") from e
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    logger.info("Extracted %s -> %s", str(archive), str(out))
    return out


def git_clone(url: str, destination: Path, *, dry_run: bool = False) -> Path:
    destination = Path(destination)
    if present(destination):
        logger.info("Already cloned: %s", str(destination))
        return destination
    try:
        run_cmd(["git", "clone", "--depth", "1", url, str(destination)], dry_run=dry_run)
    except CommandError as e:
        shutil.rmtree(destination, ignore_errors=True)
        raise DownloadFailure(f"git clone failed for {url}") from e
    return destination
