"""Rule-based intent classification and item-mention extraction.

Role:
    Turns a raw customer prompt into an intent label plus the item mentions the
    pricing engine consumes. Everything here is deterministic string heuristics;
    no model is consulted, and unrecognized input degrades to general_question.

Mention extraction:
    Pass 1: "<number> [x] <text>" segments, split on "and <number>", ", <number>",
        a bare "and ", or end of prompt.
    Pass 2 (only when pass 1 found nothing): first 3-token window containing a
        product keyword, widened by one token before and up to four tokens from the
        hit, taken as one mention without quantity.

Intent precedence:
    order verb + confirm verb -> place_order
    order verb                -> check_availability
    mentions + stock keyword  -> check_availability
    mentions                  -> product_inquiry
    otherwise                 -> general_question
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .models import ItemMention
from .utils import tokenize

logger = logging.getLogger("order_engine.intent")

QUANTITY_ITEM_RE = re.compile(
    r"(\d+)\s*x?\s*([^,\n]+?)(?=\s+and\s+\d+|\s*,\s*\d+|\s*$|and\s|$)",
    re.IGNORECASE,
)
PRODUCT_KEYWORDS = ["lego", "playmobil", "monopoly", "barbie", "hot wheels", "toy", "game", "set"]
ORDER_TERMS = ("order", "buy", "purchase")
CONFIRM_TERMS = ("confirm", "place", "complete")
AVAILABILITY_TERMS = ("available", "stock", "check")

KEYWORD_WINDOW = 3
MIN_QUANTITY_QUERY_LEN = 3
MIN_KEYWORD_QUERY_LEN = 4

INTENT_CONFIDENCE = {
    "place_order": 0.9,
    "check_availability": 0.8,
    "product_inquiry": 0.7,
    "general_question": 0.5,
}


@dataclass
class Classification:
    """Structured intent decision for one prompt."""
    intent: str = "general_question"
    mentions: List[ItemMention] = field(default_factory=list)
    confidence: float = INTENT_CONFIDENCE["general_question"]


def extract_quantity_mentions(prompt: str) -> List[ItemMention]:
    """Purpose: Extract "<number> [x] <product text>" mentions from a prompt.
    Inputs/Outputs: Input is the raw prompt; output is a list of ItemMention with quantity.
    Side Effects / State: None; pure function.
    Dependencies: Uses QUANTITY_ITEM_RE.
    Failure Modes: Captures of two characters or fewer are dropped.
    If Removed: Multi-item prompts ("2 LEGO Creator sets and 1 Barbie") lose quantities.
    Testing Notes: Validate "and"/comma separated lists and trailing text.
    """
    # Walk every quantity-led segment in order of appearance.
    mentions: List[ItemMention] = []
    for match in QUANTITY_ITEM_RE.finditer(prompt or ""):
        query = match.group(2).strip()
        if len(query) < MIN_QUANTITY_QUERY_LEN:
            continue
        mentions.append(ItemMention(query=query, quantity=int(match.group(1))))
    return mentions


def extract_keyword_mention(prompt: str) -> List[ItemMention]:
    """Purpose: Fallback extraction of one mention around the first product keyword.
    Inputs/Outputs: Input is the raw prompt; output is a list with at most one mention.
    Side Effects / State: None; pure function.
    Dependencies: Uses tokenize and PRODUCT_KEYWORDS.
    Failure Modes: Returns an empty list when no window contains a keyword.
    If Removed: Prompts like "do you have playmobil castles?" yield no mentions.
    Testing Notes: Keyword at the first token, mid-sentence, and at the end.
    """
    # Stop at the first window whose padded context is long enough.
    words = tokenize(prompt)
    for index in range(len(words)):
        window = " ".join(words[index : index + KEYWORD_WINDOW])
        if not any(keyword in window for keyword in PRODUCT_KEYWORDS):
            continue
        start = max(0, index - 1)
        end = min(len(words), index + 4)
        query = " ".join(words[start:end])
        if len(query) >= MIN_KEYWORD_QUERY_LEN:
            return [ItemMention(query=query)]
    return []


def extract_mentions(prompt: str) -> List[ItemMention]:
    return extract_quantity_mentions(prompt) or extract_keyword_mention(prompt)


def decide_intent(prompt: str, has_mentions: bool) -> Tuple[str, float]:
    """Purpose: Map keyword presence and mention presence to an intent label.
    Inputs/Outputs: Inputs are the raw prompt and whether mentions were found; output is
        (intent, confidence).
    Side Effects / State: None; pure function.
    Dependencies: Uses ORDER_TERMS, CONFIRM_TERMS, AVAILABILITY_TERMS.
    Failure Modes: Substring checks also fire inside longer words ("reorder").
    If Removed: The workflow cannot route between checking and placing orders.
    Testing Notes: Cover each precedence branch with a one-line prompt.
    """
    # Order verbs dominate; mentions only matter when no order verb is present.
    lowered = (prompt or "").lower()
    if any(term in lowered for term in ORDER_TERMS):
        if any(term in lowered for term in CONFIRM_TERMS):
            intent = "place_order"
        else:
            intent = "check_availability"
    elif has_mentions and any(term in lowered for term in AVAILABILITY_TERMS):
        intent = "check_availability"
    elif has_mentions:
        intent = "product_inquiry"
    else:
        intent = "general_question"
    return intent, INTENT_CONFIDENCE[intent]


def classify_prompt(prompt: Optional[str]) -> Classification:
    """Classify a prompt and extract its item mentions."""
    text = prompt or ""
    mentions = extract_mentions(text)
    intent, confidence = decide_intent(text, bool(mentions))
    return Classification(intent=intent, mentions=mentions, confidence=confidence)


class IntentClassifier:
    """Front door for prompt classification with logging."""

    def classify(self, prompt: Optional[str]) -> Classification:
        classification = classify_prompt(prompt)
        logger.info(
            "intent=%s confidence=%.1f mentions=%d",
            classification.intent,
            classification.confidence,
            len(classification.mentions),
        )
        logger.debug("mentions=%s", [mention.model_dump() for mention in classification.mentions])
        return classification
