from __future__ import annotations

import hashlib
import logging
import re

from studio_genai.errors import classify_transport_error
from studio_genai.providers.base import Evaluation, ImageEvaluator
from studio_genai.results import DEMO_MODE, EMPTY_RESPONSE, UPSTREAM_ERROR, Fallback, Ok, Outcome

logger = logging.getLogger(__name__)

QUICK_ADVICE = "Boost contrast on keywords, keep face brighter, tighten spacing."

_SCORE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*/\s*10|score\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


def quick_heuristic(image_url: str) -> Evaluation:
    # Stable per image so repeated requests agree.
    digest = hashlib.sha256((image_url or "").encode("utf-8")).digest()
    return Evaluation(score=float(6 + digest[0] % 5), advice=QUICK_ADVICE)


def parse_score(text: str, default: float) -> float:
    match = _SCORE_RE.search(text or "")
    if not match:
        return default
    return min(10.0, max(1.0, float(match.group(1) or match.group(2))))


async def evaluate_thumbnail(evaluator: ImageEvaluator | None, image_url: str) -> Outcome[Evaluation]:
    quick = quick_heuristic(image_url)
    if evaluator is None:
        return Fallback(quick, DEMO_MODE)
    try:
        text = await evaluator.evaluate(image_url)
    except Exception as exc:
        category, message = classify_transport_error(exc)
        logger.warning("thumbnail evaluation failed (%s): %s", category, message)
        return Fallback(quick, UPSTREAM_ERROR, message)
    if not (text or "").strip():
        return Fallback(quick, EMPTY_RESPONSE)
    return Ok(Evaluation(score=parse_score(text, quick.score), advice=text.strip()))
