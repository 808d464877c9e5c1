# flashcards/generation.py
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

import httpx

from .conf import get_setting

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "Flashcard generated from input text"

SYSTEM_PROMPT = """You are a flashcard generation assistant. Your task is to create high-quality flashcards from the provided text.

Rules:
- Generate 5-15 flashcards depending on content length and complexity
- Each flashcard should test a single concept
- Questions should be clear and concise
- Answers should be accurate and complete but not overly verbose
- Focus on key concepts, definitions, and important facts
- Avoid yes/no questions

Return a JSON object with this exact format:
{
  "flashcards": [
    {
      "front": "Clear, specific question",
      "back": "Accurate, concise answer",
      "prompt": "Brief explanation of what this flashcard tests"
    }
  ]
}"""


class GenerationError(Exception):
    pass


@dataclass
class GenerationResult:
    candidates: List[Dict[str, str]] = field(default_factory=list)
    duration_ms: int = 0


def parse_candidates(content: str) -> List[Dict[str, str]]:
    """
    Parse the model's JSON reply into [{front, back, prompt}].
    Entries without string front/back, or over the column bounds, are dropped.
    """
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Failed to parse AI response: {e}") from e

    items = parsed.get("flashcards") if isinstance(parsed, dict) else None
    if not isinstance(items, list) or not items:
        raise GenerationError("AI response did not contain a valid flashcards array")

    front_max = get_setting("FRONT_MAX_LENGTH")
    back_max = get_setting("BACK_MAX_LENGTH")
    out: List[Dict[str, str]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        front, back, prompt = item.get("front"), item.get("back"), item.get("prompt")
        if not isinstance(front, str) or not isinstance(back, str):
            continue
        front, back = front.strip(), back.strip()
        if not front or not back or len(front) > front_max or len(back) > back_max:
            continue
        if not isinstance(prompt, str) or not prompt.strip():
            prompt = DEFAULT_PROMPT
        out.append({"front": front, "back": back, "prompt": prompt.strip()})

    dropped = len(items) - len(out)
    if dropped:
        logger.warning("discarded %d malformed flashcards from AI response", dropped)
    if not out:
        raise GenerationError("No valid flashcards in AI response after validation")
    return out


def call_openrouter(input_text: str, model: str) -> str:
    """POST one chat completion and return the assistant message content."""
    key = get_setting("OPENROUTER_API_KEY")
    if not key:
        raise GenerationError("OPENROUTER_API_KEY is not configured")

    try:
        response = httpx.post(
            f"{get_setting('OPENROUTER_BASE_URL')}/chat/completions",
            headers={"Authorization": f"Bearer {key}", "X-Title": "StudyDeck"},
            json={
                "model": model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": f"Generate flashcards from this text:\n\n{input_text}"},
                ],
                "temperature": 0.7,
                "max_tokens": 2000,
                "response_format": {"type": "json_object"},
            },
            timeout=get_setting("OPENROUTER_TIMEOUT"),
        )
        response.raise_for_status()
        data: Any = response.json()
    except httpx.HTTPStatusError as e:
        raise GenerationError(f"HTTP {e.response.status_code}: {e.response.text[:200]}") from e
    except (httpx.HTTPError, ValueError) as e:
        raise GenerationError(str(e)) from e

    try:
        content = data["choices"][0]["message"]["content"]
    except (AttributeError, TypeError, KeyError, IndexError) as e:
        raise GenerationError("Unexpected OpenRouter response shape") from e
    if not isinstance(content, str) or not content:
        raise GenerationError("No content in OpenRouter response")
    return content


def generate_candidates(input_text: str, model: str) -> GenerationResult:
    start = time.perf_counter()
    content = call_openrouter(input_text, model)
    candidates = parse_candidates(content)
    duration_ms = int((time.perf_counter() - start) * 1000)
    logger.info("generated %d candidates with %s in %d ms", len(candidates), model, duration_ms)
    return GenerationResult(candidates=candidates, duration_ms=duration_ms)
