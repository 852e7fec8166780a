"""
HTTP downloads with progress reporting and mirror fallback.
"""

import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import List, Sequence

from tqdm import tqdm

from bibo.errors import DownloadFailedError

logger = logging.getLogger(__name__)

USER_AGENT = "Bibo-TTS/1.0"

_CHUNK_SIZE = 64 * 1024


def _remove_partial(dest: Path) -> None:
    try:
        dest.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug("Could not remove partial download %s: %s", dest, e)


def download_file(url: str, dest: Path, quiet: bool = False) -> None:
    """
    Stream *url* into *dest*.

    A byte progress bar is shown unless *quiet* is set or the server
    sends no ``Content-Length``.

    Raises:
        DownloadFailedError: On network errors, non-2xx responses or
            stream/write errors.  The partial file is removed first.
    """
    dest = Path(dest)
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    logger.debug("GET %s -> %s", url, dest)

    try:
        with urllib.request.urlopen(request) as response:
            status = getattr(response, "status", 200)
            if not 200 <= status < 300:
                raise DownloadFailedError(f"HTTP {status} from {url}")

            total = int(response.headers.get("Content-Length") or 0)
            progress = tqdm(
                total=total,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                ncols=72,
                leave=False,
                disable=quiet or total <= 0,
            )
            with progress, open(dest, "wb") as fh:
                while True:
                    chunk = response.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    fh.write(chunk)
                    progress.update(len(chunk))

    except DownloadFailedError:
        _remove_partial(dest)
        raise
    except urllib.error.HTTPError as e:
        _remove_partial(dest)
        raise DownloadFailedError(f"HTTP {e.code} from {url}") from e
    except (urllib.error.URLError, OSError, ValueError) as e:
        _remove_partial(dest)
        raise DownloadFailedError(f"{url}: {e}") from e


def download_with_mirrors(urls: Sequence[str], dest: Path, quiet: bool = False) -> str:
    """
    Try each URL in order until one downloads successfully.

    Returns:
        The URL that succeeded.

    Raises:
        DownloadFailedError: If every source fails; the message lists
            each failure reason.
    """
    failures: List[str] = []
    for url in urls:
        if not quiet:
            logger.info("   Source: %s", url)
        try:
            download_file(url, dest, quiet=quiet)
            return url
        except DownloadFailedError as e:
            logger.warning("   %s", e)
            failures.append(str(e))

    raise DownloadFailedError(
        f"all {len(failures)} source(s) failed for {Path(dest).name}: "
        + "; ".join(failures)
    )
