"""OpenAI integration for turning caregiver text into candidate log actions."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from openai import OpenAI, OpenAIError

from .config import CONFIG
from .errors import CompletionServiceError

logger = logging.getLogger(__name__)

_client: Optional[OpenAI] = None

SYSTEM_PROMPT = """
You are a medical logging assistant for a critically ill child.
Your job is to parse freeform caregiver messages into structured log entries.

Return ONLY a valid JSON object with this structure:
{
  "actions": [
    {"type": "input", "fluid_type": "<water | juice | vitamin_water | milk | pediasure | yogurt_drink>", "amount_ml": <number or null>},
    {"type": "output", "fluid_type": "<urine | poop | vomit>", "amount_ml": <number or null>},
    {"type": "wellness", "check_time": "<5pm | 10pm>", "appetite": <1-10 or null>, "energy": <1-10 or null>, "mood": <1-10 or null>, "cyanosis": <1-10 or null>},
    {"type": "gag", "count": <integer, minimum 1>},
    {"type": "weight", "weight_value": <number exactly as written>, "weight_unit": "<kg | lb | null>"}
  ],
  "date_offset": 0,
  "unparseable": false,
  "raw_message": "<echo the message>"
}

Rules:
- One message can produce several actions ("89ml urine and 100ml water" -> one output + one input).
- Synonyms: "pee" / "peed" / "wet diaper" -> urine (output); "pedi" -> pediasure; "formula" -> pediasure;
  "vitamin water" -> vitamin_water; "yogurt drink" / "drinkable yogurt" -> yogurt_drink.
- "poop" / "pooped" / "BM" / "bowel movement" / "stool" -> output "poop". Amount is usually null unless stated.
- Gag: "gagged" / "gag x2" / "she gagged once" / "gagging episode" -> type "gag" with count.
- Wellness: extract appetite, energy, mood, cyanosis scores (1-10). "cyan" = cyanosis.
  Infer check_time from context or default to "5pm".
- Amounts: "about", "roughly", "approximately", "~" are fine; use the number.
- amount_ml is REQUIRED for every input and every non-poop output. Never invent an amount;
  if none is stated, still return the action with amount_ml null.
- Weight: "weight 14.2" / "she weighs 14.2" / "31 lbs" -> type "weight". Copy the number exactly as written
  into weight_value and the unit as written into weight_unit ("kg", "lb", or null). Do NOT convert units.
- If the message contains NO recognizable entries, set "unparseable": true and "actions": [].
- Yesterday: if the message clearly refers to something that happened yesterday ("yesterday: ...",
  "log for yesterday", "for yesterday"), set "date_offset": -1. Otherwise 0.
- Do NOT include any explanation or markdown. Return raw JSON only.
"""


def _get_client() -> OpenAI:
    global _client
    if _client is None:
        if not CONFIG.openai_api_key:
            raise CompletionServiceError("OpenAI API key is not configured")
        _client = OpenAI(api_key=CONFIG.openai_api_key, timeout=CONFIG.openai_timeout_seconds)
    return _client


def _content_text(raw_content: Any) -> str:
    if raw_content is None:
        return ""
    if isinstance(raw_content, str):
        return raw_content
    chunks: List[str] = []
    for part in raw_content:
        text = getattr(part, "text", None)
        if text is None and isinstance(part, dict):
            text = part.get("text")
        if text:
            chunks.append(text)
    return "".join(chunks)


def request_completion(message: str) -> str:
    """Send one caregiver message and return the raw model output.

    Raises ``CompletionServiceError`` when the service cannot be used. The
    returned text is not validated here.
    """

    try:
        client = _get_client()
        response = client.chat.completions.create(
            model=CONFIG.openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": message},
            ],
            temperature=0.1,
            max_tokens=800,
            response_format={"type": "json_object"},
        )
    except OpenAIError as exc:
        logger.exception("OpenAI chat API failed", exc_info=exc)
        raise CompletionServiceError(f"OpenAI API error: {exc}") from exc

    try:
        raw_content = response.choices[0].message.content
    except (AttributeError, IndexError, KeyError):
        logger.warning("Unexpected OpenAI response format", extra={"model": CONFIG.openai_model})
        return ""
    return _content_text(raw_content)
