"""Identity check between the requested video and the one the model analysed."""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import MismatchError, NotFoundError
from core.models import AnalysisRecord
from core.youtube import NOT_FOUND

logger = logging.getLogger(__name__)


def verify_identity(requested_id: Optional[str], record: AnalysisRecord) -> AnalysisRecord:
    """Return *record* unchanged if it belongs to *requested_id*.

    No check is made when either ID is absent.

    Raises:
        NotFoundError: The model reported the ``NOT_FOUND`` sentinel.
        MismatchError: The model resolved a different video ID.
    """
    resolved_id = record.video_id
    if not requested_id or not resolved_id:
        return record

    if resolved_id == NOT_FOUND:
        logger.warning("Model could not locate video_id=%s", requested_id)
        raise NotFoundError(requested_id, record.title)

    if resolved_id != requested_id:
        logger.warning("Video mismatch requested=%s resolved=%s", requested_id, resolved_id)
        raise MismatchError(requested_id, resolved_id)

    return record
