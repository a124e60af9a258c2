"""Pick the uploads shown while reviewing a channel."""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from curator.services.youtube_uploads import Upload

TOP_VIEWED_COUNT = 3
RANDOM_SAMPLE_COUNT = 6


@dataclass(frozen=True, slots=True)
class SampledUpload:
    upload: Upload
    is_top_viewed: bool


def sample_uploads(uploads: Sequence[Upload], *, rng: random.Random | None = None) -> list[SampledUpload]:
    """Return the most viewed uploads followed by a fresh random sample of the rest.

    Uploads without a view count never count as top viewed. Ties keep their
    playlist order.
    """

    rng = rng or random.Random()
    with_views = [(index, upload) for index, upload in enumerate(uploads) if upload.view_count is not None]
    ranked = sorted(with_views, key=lambda pair: pair[1].view_count, reverse=True)
    top = ranked[:TOP_VIEWED_COUNT]
    top_indices = {index for index, _ in top}

    remainder = [upload for index, upload in enumerate(uploads) if index not in top_indices]
    picked = rng.sample(remainder, min(RANDOM_SAMPLE_COUNT, len(remainder)))

    return [SampledUpload(upload=upload, is_top_viewed=True) for _, upload in top] + [
        SampledUpload(upload=upload, is_top_viewed=False) for upload in picked
    ]
