"""
Seller / rental enquiries submitted from the public site.

Each submission is written to its own JSON file in the sellers directory:
  {epoch ms}_{name with whitespace replaced by underscores}.json
"""
import json
import logging
import re
import time
from pathlib import Path

from listings_api.core.errors import StorageError
from listings_api.schemas.property import SellerSubmission
from listings_api.services.media import safe_filename

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def submission_filename(name: str, stamp_ms: int) -> str:
    return f"{stamp_ms}_{safe_filename(_WHITESPACE.sub('_', name.strip()))}.json"


def save_submission(sellers_dir: Path | str, submission: SellerSubmission) -> Path:
    dir_path = Path(sellers_dir)
    path = dir_path / submission_filename(submission.name, time.time_ns() // 1_000_000)
    try:
        dir_path.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(submission.model_dump(exclude_none=True), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        raise StorageError(f"Could not save submission: {exc}") from exc

    logger.info("Saved seller submission from %s as %s", submission.name, path.name)
    return path
