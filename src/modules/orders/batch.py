"""Batch number generation for the PCP -> production transition.

Format: ``LOTE-YYYYMMDDHHMM`` using the local time of the configured
``TIME_ZONE``.  Two confirmations inside the same minute receive the
same number; audit reports rely on this exact format, so no counter
is appended.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.utils import timezone

BATCH_PREFIX = "LOTE-"


def generate_batch_number(moment: Optional[datetime] = None) -> str:
    """Return the batch number for the confirmation instant ``moment``."""
    if moment is None:
        moment = timezone.now()
    if timezone.is_aware(moment):
        moment = timezone.localtime(moment)
    return f"{BATCH_PREFIX}{moment:%Y%m%d%H%M}"
