"""
Archive extraction via the system ``tar`` command.
"""

import logging
import subprocess
from pathlib import Path

from bibo.errors import BiboError

logger = logging.getLogger(__name__)


def extract_tar_bz2(archive: Path, dest: Path, strip_components: int = 0) -> None:
    """
    Unpack a ``.tar.bz2`` archive into *dest*.

    Args:
        archive:          Archive file to unpack.
        dest:             Existing destination directory.
        strip_components: Leading path components to drop from members.

    Raises:
        BiboError: If ``tar`` cannot be started or exits non-zero; the
            message carries tar's stderr.
    """
    cmd = ["tar", "-xjf", str(archive), "-C", str(dest)]
    if strip_components > 0:
        cmd.append(f"--strip-components={strip_components}")

    logger.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True)
    except OSError as e:
        raise BiboError(f"Failed to run tar: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise BiboError(f"tar extraction failed: {stderr}")
